"""
Data layer: fetch bars, snapshots and fill activities; load symbol lists;
write bar files; run chunked downloads.

Depends on ledger_core.contracts for FillEvent; no dependency from
ledger_core back to data.
"""

from data.activities import group_by_symbol, parse_fill, parse_fills
from data.bar_writer import write_bars_file
from data.batch import BatchReport, BatchRunner
from data.fetcher import Bar, BarFetcher, FetchResult, SnapshotFetcher
from data.symbols import load_symbols

__all__ = [
    "Bar",
    "BarFetcher",
    "BatchReport",
    "BatchRunner",
    "FetchResult",
    "group_by_symbol",
    "load_symbols",
    "parse_fill",
    "parse_fills",
    "SnapshotFetcher",
    "write_bars_file",
]


def get_alpaca_fetcher(api_key: str, api_secret: str, *, feed: str = "iex", adjustment: str = "all"):
    """Lazy import to avoid requiring alpaca-py when not used."""
    from data.alpaca_fetcher import AlpacaBarFetcher

    return AlpacaBarFetcher(api_key, api_secret, feed=feed, adjustment=adjustment)


def get_alpaca_snapshot_fetcher(api_key: str, api_secret: str, *, feed: str = "iex"):
    from data.alpaca_fetcher import AlpacaSnapshotFetcher

    return AlpacaSnapshotFetcher(api_key, api_secret, feed=feed)


def get_alpaca_activity_fetcher(api_key: str, api_secret: str, *, paper: bool = True):
    from data.activities import AlpacaActivityFetcher

    return AlpacaActivityFetcher(api_key, api_secret, paper=paper)
