"""Tests for the terminal trade report."""

from datetime import datetime, timezone
from decimal import Decimal

from cli.output import (
    fmt_qty,
    format_closed_trade,
    format_summary,
    format_trade_report,
)
from ledger_core.contracts import ClosedTrade
from ledger_core.reconstructor import reconstruct
from ledger_core.stats import summarize


def _trade(symbol: str = "AAPL", pnl: str = "320") -> ClosedTrade:
    return ClosedTrade(
        symbol=symbol,
        quantity=Decimal("100"),
        entry_price=Decimal("10"),
        exit_price=Decimal("14"),
        average_cost=Decimal("10"),
        realized_pnl=Decimal(pnl),
        entry_time=datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc),
        exit_time=datetime(2024, 1, 2, 14, 40, tzinfo=timezone.utc),
    )


def test_closed_trade_line() -> None:
    assert format_closed_trade(_trade()) == (
        "[AAPL] 2024-01-02 14:30:00 - 2024-01-02 14:40:00: 100 @ 10.00 -> 14.00 = +320.00"
    )


def test_closed_trade_line_local_timezone() -> None:
    line = format_closed_trade(_trade(), tz="America/New_York")
    assert line.startswith("[AAPL] 2024-01-02 09:30:00 - 2024-01-02 09:40:00")


def test_fmt_qty() -> None:
    assert fmt_qty(Decimal("100.000")) == "100"
    assert fmt_qty(Decimal("0.50")) == "0.5"


def test_summary_block() -> None:
    text = format_summary(summarize([_trade(pnl="320"), _trade("TSLA", pnl="-20"), _trade("SPY", pnl="0")]))
    assert text.startswith("=== Summary ===")
    assert "Trades       : 3 (W:1 / L:1 / BE:1)" in text
    assert "Total PnL    : +300.00" in text
    assert "Win rate     : 50.0%" in text
    assert text.endswith("===")


def test_summary_no_trades() -> None:
    text = format_summary(summarize([]))
    assert "Trades       : 0" in text
    assert "Win rate     : n/a" in text
    assert "Per symbol" not in text


def test_full_report_lists_unmatched(fill) -> None:
    result = reconstruct({
        "AAPL": [fill("AAPL", "sell", 5, "10", 0)],
        "GME": [fill("GME", "buy", 10, "20", 1), fill("GME", "sell", 15, "25", 2)],
        "META": [fill("META", "buy", 3, "300", 3)],
    })
    text = format_trade_report(result, summarize(result.closed_trades), rejected=2, failed_symbols=["XYZ"])

    assert "[GME]" in text
    assert "Orphan sells (1)" in text
    assert "Oversells (1)" in text
    assert "excess 5" in text
    assert "Open positions (1): not included in PnL" in text
    assert "Rejected malformed records: 2" in text
    assert "Symbols not reconstructed: XYZ" in text


def test_open_positions_hidden(fill) -> None:
    result = reconstruct({"META": [fill("META", "buy", 3, "300", 0)]})
    text = format_trade_report(result, summarize(result.closed_trades), show_open=False)
    assert "Open positions" not in text
    assert "  (none)" in text
