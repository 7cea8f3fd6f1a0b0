"""Tests for closed-trade statistics."""

from datetime import datetime, timezone
from decimal import Decimal

from ledger_core.contracts import ClosedTrade
from ledger_core.stats import summarize

TS = datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc)


def _trade(symbol: str, pnl: str) -> ClosedTrade:
    return ClosedTrade(
        symbol=symbol,
        quantity=Decimal("1"),
        entry_price=Decimal("1"),
        exit_price=Decimal("1"),
        average_cost=Decimal("1"),
        realized_pnl=Decimal(pnl),
        entry_time=TS,
        exit_time=TS,
    )


def test_summarize() -> None:
    s = summarize([_trade("AAPL", "100"), _trade("AAPL", "-40"), _trade("TSLA", "25"), _trade("SPY", "0")])
    assert s.trade_count == 4
    assert s.total_pnl == Decimal("85")
    assert (s.wins, s.losses, s.breakeven) == (2, 1, 1)
    assert s.gross_profit == Decimal("125")
    assert s.gross_loss == Decimal("-40")
    assert s.win_rate == 2 / 3
    assert s.per_symbol_pnl == (("AAPL", Decimal("60")), ("SPY", Decimal("0")), ("TSLA", Decimal("25")))


def test_empty() -> None:
    s = summarize([])
    assert s.trade_count == 0
    assert s.total_pnl == 0
    assert s.win_rate is None


def test_only_breakeven_has_no_win_rate() -> None:
    assert summarize([_trade("SPY", "0")]).win_rate is None
