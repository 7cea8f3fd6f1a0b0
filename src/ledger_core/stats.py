"""
Aggregate statistics over closed trades: total PnL, wins/losses, win rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ledger_core.contracts import ClosedTrade


@dataclass(frozen=True)
class TradeSummary:
    trade_count: int
    total_pnl: Decimal
    wins: int
    losses: int
    breakeven: int
    gross_profit: Decimal
    gross_loss: Decimal
    per_symbol_pnl: tuple[tuple[str, Decimal], ...]

    @property
    def win_rate(self) -> float | None:
        """wins / (wins + losses). Breakeven trades are not counted; None if undefined."""
        decided = self.wins + self.losses
        if decided == 0:
            return None
        return self.wins / decided


def summarize(trades: Iterable[ClosedTrade]) -> TradeSummary:
    trades = list(trades)
    zero = Decimal("0")
    by_symbol: dict[str, Decimal] = {}
    for t in trades:
        by_symbol[t.symbol] = by_symbol.get(t.symbol, zero) + t.realized_pnl

    return TradeSummary(
        trade_count=len(trades),
        total_pnl=sum((t.realized_pnl for t in trades), zero),
        wins=sum(1 for t in trades if t.is_win),
        losses=sum(1 for t in trades if t.is_loss),
        breakeven=sum(1 for t in trades if t.realized_pnl == 0),
        gross_profit=sum((t.realized_pnl for t in trades if t.is_win), zero),
        gross_loss=sum((t.realized_pnl for t in trades if t.is_loss), zero),
        per_symbol_pnl=tuple(sorted(by_symbol.items())),
    )
