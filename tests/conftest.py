"""Pytest fixtures: fill sequences and raw activity records for deterministic tests."""

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import count
from types import ModuleType, SimpleNamespace
from typing import Callable
from unittest.mock import MagicMock, patch

import pytest

from ledger_core.contracts import FillEvent, Side

BASE_TS = datetime(2024, 1, 2, 14, 30, 0, tzinfo=timezone.utc)


def _ts(minutes: int) -> datetime:
    return BASE_TS + timedelta(minutes=minutes)


@pytest.fixture
def fill() -> Callable[..., FillEvent]:
    """Factory: fill("AAPL", "buy", 100, "10", minute=0)."""
    ids = count(1)

    def make(symbol: str, side: str, qty, price, minute: int = 0) -> FillEvent:
        return FillEvent(
            id=f"fill-{next(ids)}",
            symbol=symbol,
            side=Side(side),
            quantity=Decimal(str(qty)),
            price=Decimal(str(price)),
            transaction_time=_ts(minute),
        )

    return make


@pytest.fixture
def raw_fill() -> Callable[..., dict]:
    """Factory for Alpaca FILL activity records as returned by /account/activities."""
    ids = count(1)

    def make(symbol: str = "AAPL", side: str = "buy", qty="10", price="150.25", **overrides) -> dict:
        n = next(ids)
        record = {
            "id": f"20240102143000000::{n:08d}",
            "activity_type": "FILL",
            "transaction_time": "2024-01-02T14:30:00.123456789Z",
            "type": "fill",
            "price": price,
            "qty": qty,
            "side": side,
            "symbol": symbol,
            "leaves_qty": "0",
            "order_id": f"order-{n}",
            "cum_qty": qty,
            "order_status": "filled",
        }
        record.update(overrides)
        return record

    return make


@pytest.fixture
def round_trip_fills(fill) -> list[FillEvent]:
    """AAPL: buy 100 @ 10, sell 40 @ 12, sell 60 @ 14 (one closed trade, pnl 320)."""
    return [
        fill("AAPL", "buy", 100, "10", minute=0),
        fill("AAPL", "sell", 40, "12", minute=5),
        fill("AAPL", "sell", 60, "14", minute=10),
    ]


@pytest.fixture
def alpaca_modules():
    """Mock the alpaca SDK modules so tests run without alpaca-py installed or network."""
    alpaca = ModuleType("alpaca")
    alpaca_data = ModuleType("alpaca.data")
    alpaca_data_historical = ModuleType("alpaca.data.historical")
    alpaca_data_requests = ModuleType("alpaca.data.requests")
    alpaca_data_timeframe = ModuleType("alpaca.data.timeframe")
    alpaca_data_enums = ModuleType("alpaca.data.enums")
    alpaca_trading = ModuleType("alpaca.trading")
    alpaca_trading_client = ModuleType("alpaca.trading.client")

    alpaca_data_historical.StockHistoricalDataClient = MagicMock()
    alpaca_data_requests.StockBarsRequest = MagicMock()
    alpaca_data_requests.StockSnapshotRequest = MagicMock()

    class FakeTimeFrameUnit:
        Minute = "Minute"
        Hour = "Hour"
        Day = "Day"

    alpaca_data_timeframe.TimeFrameUnit = FakeTimeFrameUnit
    alpaca_data_timeframe.TimeFrame = MagicMock()
    alpaca_data_enums.DataFeed = MagicMock(side_effect=lambda v: v)
    alpaca_data_enums.Adjustment = MagicMock(side_effect=lambda v: v)
    alpaca_trading_client.TradingClient = MagicMock()

    mods = {
        "alpaca": alpaca,
        "alpaca.data": alpaca_data,
        "alpaca.data.historical": alpaca_data_historical,
        "alpaca.data.requests": alpaca_data_requests,
        "alpaca.data.timeframe": alpaca_data_timeframe,
        "alpaca.data.enums": alpaca_data_enums,
        "alpaca.trading": alpaca_trading,
        "alpaca.trading.client": alpaca_trading_client,
    }
    with patch.dict(sys.modules, mods):
        sys.modules.pop("data.alpaca_fetcher", None)
        yield SimpleNamespace(
            data_client=alpaca_data_historical.StockHistoricalDataClient,
            bars_request=alpaca_data_requests.StockBarsRequest,
            snapshot_request=alpaca_data_requests.StockSnapshotRequest,
            timeframe=alpaca_data_timeframe.TimeFrame,
            trading_client=alpaca_trading_client.TradingClient,
        )
