"""
Trade reconstructor: fold each symbol's fills into closed round trips.

Per symbol, fills are replayed in ascending transaction_time. A BUY with no
open position opens one; further BUYs add to it and re-average the cost over
the cumulative quantity bought; SELLs realize qty * (price - average_cost).
When the open quantity returns to exactly zero the cycle is emitted as a
ClosedTrade. A SELL with nothing open is an orphan. Positions still open at
the end are returned as open_positions, never as closed trades.

Pure: no I/O, no logging, no state outside the fold.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from fractions import Fraction
from typing import Iterable, Mapping, Sequence

from ledger_core.contracts import (
    ClosedTrade,
    FillEvent,
    FoldStep,
    OpenPosition,
    OrphanEvent,
    OversellAnomaly,
    OversellError,
    OversellPolicy,
    ReconstructionResult,
    Side,
)

_ZERO = Decimal("0")


def chronological(events: Iterable[FillEvent]) -> list[FillEvent]:
    """Stable sort by transaction_time; fills with equal timestamps keep delivery order."""
    return sorted(events, key=lambda e: e.transaction_time)


def _as_decimal(value: Fraction) -> Decimal:
    """Exact when the fraction terminates, else rounded once in the current context."""
    return Decimal(value.numerator) / Decimal(value.denominator)


def _open(event: FillEvent) -> OpenPosition:
    return OpenPosition(
        symbol=event.symbol,
        quantity_open=event.quantity,
        quantity_bought=event.quantity,
        total_cost_basis=event.notional,
        average_cost=event.price,
        realized_pnl=_ZERO,
        first_entry_time=event.transaction_time,
        entry_price=event.price,
    )


def _add(position: OpenPosition, event: FillEvent) -> OpenPosition:
    bought = position.quantity_bought + event.quantity
    cost = position.total_cost_basis + event.notional
    return replace(
        position,
        quantity_open=position.quantity_open + event.quantity,
        quantity_bought=bought,
        total_cost_basis=cost,
        average_cost=cost / bought,
    )


def _close(position: OpenPosition, event: FillEvent, realized: Decimal) -> ClosedTrade:
    return ClosedTrade(
        symbol=position.symbol,
        quantity=position.quantity_bought,
        entry_price=position.entry_price,
        exit_price=event.price,
        average_cost=position.average_cost,
        realized_pnl=realized,
        entry_time=position.first_entry_time,
        exit_time=event.transaction_time,
    )


def _reduce(
    position: OpenPosition,
    event: FillEvent,
    policy: OversellPolicy,
) -> FoldStep:
    matched = event.quantity
    anomaly = None
    if event.quantity > position.quantity_open:
        if policy is OversellPolicy.RAISE:
            raise OversellError(event.symbol, event.id, position.quantity_open, event.quantity)
        matched = position.quantity_open
        anomaly = OversellAnomaly(
            event=event,
            open_quantity=position.quantity_open,
            excess_quantity=event.quantity - position.quantity_open,
        )

    # average_cost may be rounded; realize against the exact cost basis ratio.
    exact_cost = Fraction(position.total_cost_basis) / Fraction(position.quantity_bought)
    exact = position.realized_exact + Fraction(matched) * (Fraction(event.price) - exact_cost)
    realized = _as_decimal(exact)
    remaining = position.quantity_open - matched
    if remaining == 0:
        return FoldStep(position=None, closed=_close(position, event, realized), anomaly=anomaly)
    return FoldStep(
        position=replace(
            position, quantity_open=remaining, realized_pnl=realized, realized_exact=exact
        ),
        anomaly=anomaly,
    )


def apply_fill(
    position: OpenPosition | None,
    event: FillEvent,
    *,
    oversell_policy: OversellPolicy = OversellPolicy.FLAG,
) -> FoldStep:
    """One step of the fold. Returns the next accumulator and whatever was emitted."""
    if event.side is Side.BUY:
        if position is None:
            return FoldStep(position=_open(event))
        return FoldStep(position=_add(position, event))
    if event.side is Side.SELL:
        if position is None:
            return FoldStep(position=None, orphan=OrphanEvent(event))
        return _reduce(position, event, oversell_policy)
    return FoldStep(position=position, ignored=True)


def reconstruct_symbol(
    events: Sequence[FillEvent],
    *,
    oversell_policy: OversellPolicy = OversellPolicy.FLAG,
) -> ReconstructionResult:
    """Reconstruct one symbol's fills. All events must share the same symbol."""
    closed: list[ClosedTrade] = []
    orphans: list[OrphanEvent] = []
    anomalies: list[OversellAnomaly] = []
    position: OpenPosition | None = None

    symbols = {e.symbol for e in events}
    if len(symbols) > 1:
        raise ValueError(f"reconstruct_symbol got fills for several symbols: {sorted(symbols)}")

    for event in chronological(events):
        step = apply_fill(position, event, oversell_policy=oversell_policy)
        position = step.position
        if step.closed is not None:
            closed.append(step.closed)
        if step.orphan is not None:
            orphans.append(step.orphan)
        if step.anomaly is not None:
            anomalies.append(step.anomaly)

    return ReconstructionResult(
        closed_trades=tuple(closed),
        orphans=tuple(orphans),
        open_positions=(position,) if position is not None else (),
        anomalies=tuple(anomalies),
    )


def merge_results(results: Iterable[ReconstructionResult]) -> ReconstructionResult:
    closed: list[ClosedTrade] = []
    orphans: list[OrphanEvent] = []
    open_positions: list[OpenPosition] = []
    anomalies: list[OversellAnomaly] = []
    for r in results:
        closed.extend(r.closed_trades)
        orphans.extend(r.orphans)
        open_positions.extend(r.open_positions)
        anomalies.extend(r.anomalies)
    return ReconstructionResult(
        closed_trades=tuple(closed),
        orphans=tuple(orphans),
        open_positions=tuple(open_positions),
        anomalies=tuple(anomalies),
    )


def reconstruct(
    events_by_symbol: Mapping[str, Sequence[FillEvent]],
    *,
    oversell_policy: OversellPolicy | str = OversellPolicy.FLAG,
) -> ReconstructionResult:
    """
    Reconstruct closed trades for every symbol.

    Symbols are processed independently and in sorted order, so the output
    does not depend on the mapping's iteration order. Raises OversellError
    only when oversell_policy is "raise".
    """
    policy = OversellPolicy(oversell_policy)
    return merge_results(
        reconstruct_symbol(events_by_symbol[symbol], oversell_policy=policy)
        for symbol in sorted(events_by_symbol)
    )
