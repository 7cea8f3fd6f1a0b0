"""
Alpaca market-data fetchers: bars and snapshots via the alpaca-py SDK.

Maps Alpaca Bar objects to data.fetcher.Bar (OHLCV, UTC timestamp, symbol).
Free tier uses IEX data; SIP requires Algo Trader Plus subscription.
"""

import logging
from datetime import datetime, timezone
from typing import Sequence

from data.fetcher import Bar, FetchResult

logger = logging.getLogger("fillbook.data")

_TIMEFRAME_MAP = {
    "1m": ("Minute", 1),
    "5m": ("Minute", 5),
    "15m": ("Minute", 15),
    "30m": ("Minute", 30),
    "1h": ("Hour", 1),
    "1d": ("Day", 1),
}

# Spellings used by the old download scripts.
_TIMEFRAME_ALIASES = {
    "1min": "1m",
    "5min": "5m",
    "15min": "15m",
    "30min": "30m",
    "60min": "1h",
    "1hour": "1h",
    "1day": "1d",
    "day": "1d",
}


def normalize_timeframe(tf_str: str) -> str:
    """Return the canonical timeframe key ('15Min' -> '15m'). Raises ValueError if unknown."""
    key = tf_str.strip()
    if key in _TIMEFRAME_MAP:
        return key
    alias = _TIMEFRAME_ALIASES.get(key.lower())
    if alias is None:
        raise ValueError(
            f"Unsupported timeframe '{tf_str}'. Supported: {list(_TIMEFRAME_MAP.keys())}"
        )
    return alias


def _parse_timeframe(tf_str: str):
    """Convert string timeframe to Alpaca TimeFrame object."""
    from alpaca.data.timeframe import TimeFrame, TimeFrameUnit

    unit_str, amount = _TIMEFRAME_MAP[normalize_timeframe(tf_str)]
    unit = getattr(TimeFrameUnit, unit_str)
    return TimeFrame(amount, unit)


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _to_bar(alpaca_bar, symbol: str) -> Bar:
    return Bar(
        timestamp=_utc(alpaca_bar.timestamp),
        open=float(alpaca_bar.open),
        high=float(alpaca_bar.high),
        low=float(alpaca_bar.low),
        close=float(alpaca_bar.close),
        volume=int(alpaca_bar.volume),
        symbol=symbol,
    )


def _data_client(api_key: str, api_secret: str):
    if not api_key or not api_secret:
        raise ValueError(
            "Alpaca API key and secret are required. "
            "Set APCA_API_KEY_ID and APCA_API_SECRET_KEY environment variables."
        )
    try:
        from alpaca.data.historical import StockHistoricalDataClient
    except ImportError:
        raise ImportError(
            "alpaca-py is required for the Alpaca fetchers. "
            "Install with: pip install alpaca-py"
        )
    return StockHistoricalDataClient(api_key, api_secret)


class AlpacaBarFetcher:
    """
    Fetch OHLCV bars from Alpaca Market Data API, one symbol per call.

    Uses StockHistoricalDataClient from alpaca-py; the SDK follows
    next_page_token until `limit` bars are collected.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        feed: str = "iex",
        adjustment: str = "all",
    ) -> None:
        self._client = _data_client(api_key, api_secret)
        self._feed = feed
        self._adjustment = adjustment

    def fetch(
        self,
        symbol: str,
        timeframe: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> FetchResult:
        """Fetch bars from Alpaca; normalize timestamps to UTC. Returns FetchResult."""
        from alpaca.data.enums import Adjustment, DataFeed
        from alpaca.data.requests import StockBarsRequest

        request_params = StockBarsRequest(
            symbol_or_symbols=symbol,
            timeframe=_parse_timeframe(timeframe),
            start=start,
            end=end,
            limit=limit,
            feed=DataFeed(self._feed.lower()),
            adjustment=Adjustment(self._adjustment.lower()),
        )
        response = self._client.get_stock_bars(request_params)
        raw_bars = response.data.get(symbol, []) if hasattr(response, "data") else response.get(symbol, [])
        bars = [_to_bar(b, symbol) for b in raw_bars]
        logger.info("Fetched %d bars for %s %s", len(bars), symbol, timeframe)
        return FetchResult(
            bars=bars,
            symbol=symbol,
            timeframe=timeframe,
            next_cursor=getattr(response, "next_page_token", None),
        )


class AlpacaSnapshotFetcher:
    """Fetch the current daily bar for many symbols with one snapshot request."""

    def __init__(self, api_key: str, api_secret: str, *, feed: str = "iex") -> None:
        self._client = _data_client(api_key, api_secret)
        self._feed = feed

    def fetch(self, symbols: Sequence[str]) -> dict[str, Bar]:
        from alpaca.data.enums import DataFeed
        from alpaca.data.requests import StockSnapshotRequest

        logger.info("Downloading snapshot for %d symbols", len(symbols))
        request_params = StockSnapshotRequest(
            symbol_or_symbols=list(symbols),
            feed=DataFeed(self._feed.lower()),
        )
        snapshots = self._client.get_stock_snapshot(request_params)
        out: dict[str, Bar] = {}
        for symbol in symbols:
            snap = snapshots.get(symbol)
            daily = getattr(snap, "daily_bar", None) if snap is not None else None
            if daily is None:
                logger.warning("No daily bar in snapshot for %s; skipping", symbol)
                continue
            out[symbol] = _to_bar(daily, symbol)
        return out
