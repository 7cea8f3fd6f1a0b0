"""
ledger-core: pure closed-trade reconstruction from broker fills.

No I/O, no network, no side effects. Consumes FillEvents grouped by symbol,
produces ClosedTrades, orphan sells, oversell anomalies and open positions.
Fully deterministic and unit-testable.
"""

from ledger_core.contracts import (
    ClosedTrade,
    FillEvent,
    MalformedEventError,
    OpenPosition,
    OrphanEvent,
    OversellAnomaly,
    OversellError,
    OversellPolicy,
    ReconstructionError,
    ReconstructionResult,
    Side,
)
from ledger_core.reconstructor import apply_fill, reconstruct, reconstruct_symbol
from ledger_core.stats import TradeSummary, summarize

__all__ = [
    "apply_fill",
    "ClosedTrade",
    "FillEvent",
    "MalformedEventError",
    "OpenPosition",
    "OrphanEvent",
    "OversellAnomaly",
    "OversellError",
    "OversellPolicy",
    "reconstruct",
    "reconstruct_symbol",
    "ReconstructionError",
    "ReconstructionResult",
    "Side",
    "summarize",
    "TradeSummary",
]
