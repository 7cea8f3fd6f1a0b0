"""Tests for CSV export and the cumulative PnL chart."""

import csv
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from cli.report import CSV_COLUMNS, cumulative_pnl, plot_cumulative_pnl, write_trades_csv
from ledger_core.contracts import ClosedTrade


def _trade(symbol: str, exit_minute: int, pnl: str) -> ClosedTrade:
    return ClosedTrade(
        symbol=symbol,
        quantity=Decimal("10"),
        entry_price=Decimal("100"),
        exit_price=Decimal("101"),
        average_cost=Decimal("100"),
        realized_pnl=Decimal(pnl),
        entry_time=datetime(2024, 1, 2, 14, 0, tzinfo=timezone.utc),
        exit_time=datetime(2024, 1, 2, 14, exit_minute, tzinfo=timezone.utc),
    )


def test_write_trades_csv(tmp_path) -> None:
    path = write_trades_csv([_trade("AAPL", 10, "10"), _trade("TSLA", 5, "-2.5")], tmp_path / "t.csv")
    with open(path, newline="") as f:
        rows = list(csv.DictReader(f))
    assert list(rows[0]) == CSV_COLUMNS
    assert [r["symbol"] for r in rows] == ["AAPL", "TSLA"]
    assert rows[1]["realized_pnl"] == "-2.5"
    assert rows[0]["exit_time"] == "2024-01-02T14:10:00+00:00"


def test_write_empty_csv(tmp_path) -> None:
    path = write_trades_csv([], tmp_path / "empty.csv")
    assert path.read_text().strip() == ",".join(CSV_COLUMNS)


def test_cumulative_pnl_by_exit_time() -> None:
    points = cumulative_pnl([_trade("AAPL", 10, "10"), _trade("TSLA", 5, "-2.5")])
    assert [p[1] for p in points] == [Decimal("-2.5"), Decimal("7.5")]


def test_plot_cumulative_pnl(tmp_path) -> None:
    pytest.importorskip("matplotlib")
    path = plot_cumulative_pnl([_trade("AAPL", 10, "10"), _trade("TSLA", 5, "-2.5")], tmp_path / "pnl.png")
    assert path.exists()
    assert path.stat().st_size > 0
