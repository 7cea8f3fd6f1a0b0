"""
Data contracts for ledger-core: FillEvent in, ClosedTrade / OrphanEvent /
OversellAnomaly / OpenPosition out.

No I/O; these are plain frozen dataclasses. Prices, quantities and PnL are
Decimal. Realized PnL is accumulated as an exact fraction and converted to
Decimal once per value, so a sum of matched lots comes out exact whenever
the result terminates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from fractions import Fraction


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ReconstructionError(Exception):
    """Base class for failures raised by ledger-core."""


class MalformedEventError(ReconstructionError, ValueError):
    """A fill record is missing required fields or has a non-positive qty/price."""

    def __init__(self, message: str, *, event_id: str | None = None) -> None:
        super().__init__(message)
        self.event_id = event_id


class OversellError(ReconstructionError):
    """A SELL exceeds the open quantity and the policy says to fail."""

    def __init__(self, symbol: str, event_id: str, open_quantity: Decimal, sell_quantity: Decimal) -> None:
        super().__init__(
            f"{symbol}: sell {sell_quantity} exceeds open quantity {open_quantity} (fill {event_id})"
        )
        self.symbol = symbol
        self.event_id = event_id
        self.open_quantity = open_quantity
        self.sell_quantity = sell_quantity


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Side(str, Enum):
    """Fill side as reported by the broker. Only BUY and SELL are reconstructed;
    OTHER stands for any side string the broker sends that is not listed here."""

    BUY = "buy"
    SELL = "sell"
    SELL_SHORT = "sell_short"
    OTHER = "other"


class OversellPolicy(str, Enum):
    """What to do when a SELL is larger than the open position."""

    FLAG = "flag"
    RAISE = "raise"


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FillEvent:
    """One broker fill. quantity > 0 and price > 0 are enforced on construction."""

    id: str
    symbol: str
    side: Side
    quantity: Decimal
    price: Decimal
    transaction_time: datetime
    order_id: str | None = None
    order_status: str | None = None
    leaves_qty: Decimal | None = None
    cum_qty: Decimal | None = None
    activity_type: str = "FILL"
    fill_type: str | None = None

    def __post_init__(self) -> None:
        if not self.symbol:
            raise MalformedEventError("fill has no symbol", event_id=self.id)
        if self.quantity <= 0:
            raise MalformedEventError(
                f"{self.symbol}: non-positive quantity {self.quantity}", event_id=self.id
            )
        if self.price <= 0:
            raise MalformedEventError(
                f"{self.symbol}: non-positive price {self.price}", event_id=self.id
            )
        if self.transaction_time.tzinfo is None:
            raise MalformedEventError(
                f"{self.symbol}: transaction_time must be timezone-aware", event_id=self.id
            )

    @property
    def notional(self) -> Decimal:
        return self.quantity * self.price


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OpenPosition:
    """
    Long position accumulated since the symbol was last flat.

    quantity_bought is the cumulative BUY quantity since flat; average_cost is
    total_cost_basis / quantity_bought and only changes on BUY. realized_exact
    carries realized_pnl without rounding.
    """

    symbol: str
    quantity_open: Decimal
    quantity_bought: Decimal
    total_cost_basis: Decimal
    average_cost: Decimal
    realized_pnl: Decimal
    first_entry_time: datetime
    entry_price: Decimal
    realized_exact: Fraction = field(default=Fraction(0), repr=False)


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClosedTrade:
    """One flat-to-flat cycle."""

    symbol: str
    quantity: Decimal
    entry_price: Decimal
    exit_price: Decimal
    average_cost: Decimal
    realized_pnl: Decimal
    entry_time: datetime
    exit_time: datetime

    @property
    def is_win(self) -> bool:
        return self.realized_pnl > 0

    @property
    def is_loss(self) -> bool:
        return self.realized_pnl < 0


@dataclass(frozen=True)
class OrphanEvent:
    """A SELL seen while no position was open for its symbol."""

    event: FillEvent

    @property
    def symbol(self) -> str:
        return self.event.symbol


@dataclass(frozen=True)
class OversellAnomaly:
    """A SELL larger than the open quantity. Only open_quantity was matched."""

    event: FillEvent
    open_quantity: Decimal
    excess_quantity: Decimal

    @property
    def symbol(self) -> str:
        return self.event.symbol


@dataclass(frozen=True)
class ReconstructionResult:
    closed_trades: tuple[ClosedTrade, ...] = ()
    orphans: tuple[OrphanEvent, ...] = ()
    open_positions: tuple[OpenPosition, ...] = ()
    anomalies: tuple[OversellAnomaly, ...] = ()

    @property
    def total_realized_pnl(self) -> Decimal:
        return sum((t.realized_pnl for t in self.closed_trades), Decimal("0"))


@dataclass(frozen=True)
class FoldStep:
    """Result of applying one fill: the new accumulator plus anything emitted."""

    position: OpenPosition | None
    closed: ClosedTrade | None = None
    orphan: OrphanEvent | None = None
    anomaly: OversellAnomaly | None = None
    ignored: bool = False
