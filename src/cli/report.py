"""
File reports for closed trades: CSV rows and a cumulative PnL chart.
"""

from __future__ import annotations

import csv
import logging
from decimal import Decimal
from pathlib import Path
from typing import Sequence

from ledger_core.contracts import ClosedTrade

logger = logging.getLogger("fillbook.report")

CSV_COLUMNS = [
    "symbol",
    "entry_time",
    "exit_time",
    "quantity",
    "entry_price",
    "exit_price",
    "average_cost",
    "realized_pnl",
]


def write_trades_csv(trades: Sequence[ClosedTrade], path: str | Path) -> Path:
    """One row per closed trade, ordered as given. Timestamps are ISO 8601 UTC."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)
        for t in trades:
            writer.writerow([
                t.symbol,
                t.entry_time.isoformat(),
                t.exit_time.isoformat(),
                str(t.quantity),
                str(t.entry_price),
                str(t.exit_price),
                str(t.average_cost),
                str(t.realized_pnl),
            ])
    logger.info("Wrote %d trades to %s", len(trades), out)
    return out


def cumulative_pnl(trades: Sequence[ClosedTrade]) -> list[tuple]:
    """(exit_time, running total) in exit-time order."""
    running = Decimal("0")
    points = []
    for t in sorted(trades, key=lambda t: (t.exit_time, t.symbol)):
        running += t.realized_pnl
        points.append((t.exit_time, running))
    return points


def _import_pyplot():
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        return plt
    except ImportError:
        raise ImportError(
            "matplotlib is required for plotting. "
            "Install with: pip install 'fillbook[plot]'"
        )


def plot_cumulative_pnl(
    trades: Sequence[ClosedTrade],
    path: str | Path,
    title: str = "Cumulative realized PnL",
) -> Path:
    """Step chart of running realized PnL by exit time, saved as an image."""
    plt = _import_pyplot()
    points = cumulative_pnl(trades)
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(10, 5))
    if points:
        xs = [p[0] for p in points]
        ys = [float(p[1]) for p in points]
        ax.step(xs, ys, where="post", label="Realized PnL")
        ax.axhline(0, color="grey", linewidth=0.8)
    ax.set_title(title)
    ax.set_xlabel("Exit time")
    ax.set_ylabel("PnL")
    fig.autofmt_xdate()
    fig.savefig(out)
    plt.close(fig)
    logger.info("Wrote PnL chart to %s", out)
    return out
