"""
Human-readable trade report for the terminal.

Every closed trade shows its holding window, size, entry -> exit and
realized PnL. Orphan sells, oversells and open positions are listed
separately so nothing is dropped silently.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Sequence
from zoneinfo import ZoneInfo

from ledger_core.contracts import (
    ClosedTrade,
    OpenPosition,
    OrphanEvent,
    OversellAnomaly,
    ReconstructionResult,
)
from ledger_core.stats import TradeSummary

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def fmt_time(ts: datetime, tz: str = "UTC") -> str:
    return ts.astimezone(ZoneInfo(tz)).strftime(DATE_FORMAT)


def fmt_qty(qty: Decimal) -> str:
    if qty == qty.to_integral_value():
        return str(int(qty))
    return str(qty.normalize())


def fmt_price(price: Decimal) -> str:
    return f"{price:.2f}"


def format_closed_trade(t: ClosedTrade, tz: str = "UTC") -> str:
    return (
        f"[{t.symbol}] {fmt_time(t.entry_time, tz)} - {fmt_time(t.exit_time, tz)}: "
        f"{fmt_qty(t.quantity)} @ {fmt_price(t.entry_price)} -> {fmt_price(t.exit_price)} "
        f"= {t.realized_pnl:+.2f}"
    )


def format_closed_trades(trades: Sequence[ClosedTrade], tz: str = "UTC") -> str:
    lines = ["Closed Trades:"]
    if not trades:
        lines.append("  (none)")
    for t in trades:
        lines.append("  " + format_closed_trade(t, tz))
    return "\n".join(lines)


def format_summary(summary: TradeSummary) -> str:
    win_rate = f"{summary.win_rate:.1%}" if summary.win_rate is not None else "n/a"
    lines = [
        "=== Summary ===",
        f"Trades       : {summary.trade_count} (W:{summary.wins} / L:{summary.losses} / BE:{summary.breakeven})",
        f"Total PnL    : {summary.total_pnl:+,.2f}",
        f"Win rate     : {win_rate}",
    ]
    if summary.trade_count:
        lines.append(f"Gross profit : {summary.gross_profit:+,.2f}")
        lines.append(f"Gross loss   : {summary.gross_loss:+,.2f}")
        lines.append("Per symbol   :")
        for symbol, pnl in summary.per_symbol_pnl:
            lines.append(f"  {symbol:8s} {pnl:+,.2f}")
    lines.append("===")
    return "\n".join(lines)


def format_orphans(orphans: Sequence[OrphanEvent], tz: str = "UTC") -> str:
    lines = [f"Orphan sells ({len(orphans)}): no tracked buy to match"]
    for o in orphans:
        e = o.event
        lines.append(
            f"  [{e.symbol}] {fmt_time(e.transaction_time, tz)} sell {fmt_qty(e.quantity)} @ {fmt_price(e.price)}"
        )
    return "\n".join(lines)


def format_anomalies(anomalies: Sequence[OversellAnomaly], tz: str = "UTC") -> str:
    lines = [f"Oversells ({len(anomalies)}): sell larger than open position"]
    for a in anomalies:
        e = a.event
        lines.append(
            f"  [{e.symbol}] {fmt_time(e.transaction_time, tz)} sell {fmt_qty(e.quantity)} "
            f"with {fmt_qty(a.open_quantity)} open (excess {fmt_qty(a.excess_quantity)})"
        )
    return "\n".join(lines)


def format_open_positions(positions: Sequence[OpenPosition], tz: str = "UTC") -> str:
    lines = [f"Open positions ({len(positions)}): not included in PnL"]
    for p in positions:
        lines.append(
            f"  [{p.symbol}] since {fmt_time(p.first_entry_time, tz)}: {fmt_qty(p.quantity_open)} open "
            f"@ avg {fmt_price(p.average_cost)}, realized so far {p.realized_pnl:+.2f}"
        )
    return "\n".join(lines)


def format_trade_report(
    result: ReconstructionResult,
    summary: TradeSummary,
    *,
    tz: str = "UTC",
    show_open: bool = True,
    rejected: int = 0,
    failed_symbols: Sequence[str] = (),
) -> str:
    """Full report: closed trades, summary, then anything that was not matched."""
    parts = [format_closed_trades(result.closed_trades, tz), "", format_summary(summary)]
    if result.orphans:
        parts += ["", format_orphans(result.orphans, tz)]
    if result.anomalies:
        parts += ["", format_anomalies(result.anomalies, tz)]
    if show_open and result.open_positions:
        parts += ["", format_open_positions(result.open_positions, tz)]
    if rejected:
        parts += ["", f"Rejected malformed records: {rejected}"]
    if failed_symbols:
        parts += ["", f"Symbols not reconstructed: {', '.join(failed_symbols)}"]
    return "\n".join(parts)
