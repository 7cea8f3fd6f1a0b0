"""
Fetch OHLCV bars and snapshots from a data source. Configurable adapter; sync.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Sequence


@dataclass(frozen=True)
class Bar:
    """One OHLCV bar. Timestamp in UTC."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int
    symbol: str


@dataclass
class FetchResult:
    """Result of a fetch: bars and optional next cursor for pagination."""

    bars: list[Bar]
    symbol: str
    timeframe: str
    next_cursor: str | None = None


class BarFetcher(Protocol):
    """Protocol for bar fetchers. Implement per provider."""

    def fetch(
        self,
        symbol: str,
        timeframe: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> FetchResult:
        """Fetch bars; normalize timestamps to UTC. Returns FetchResult."""
        ...


class SnapshotFetcher(Protocol):
    """Protocol for snapshot fetchers: latest daily bar for many symbols in one call."""

    def fetch(self, symbols: Sequence[str]) -> dict[str, Bar]:
        ...


class MockBarFetcher:
    """Returns canned bars (or none); for tests and when no API is configured."""

    def __init__(self, bars: dict[str, list[Bar]] | None = None) -> None:
        self._bars = bars or {}

    def fetch(
        self,
        symbol: str,
        timeframe: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> FetchResult:
        return FetchResult(bars=list(self._bars.get(symbol, [])), symbol=symbol, timeframe=timeframe)


class MockSnapshotFetcher:
    def __init__(self, snapshots: dict[str, Bar] | None = None) -> None:
        self._snapshots = snapshots or {}

    def fetch(self, symbols: Sequence[str]) -> dict[str, Bar]:
        return {s: self._snapshots[s] for s in symbols if s in self._snapshots}
