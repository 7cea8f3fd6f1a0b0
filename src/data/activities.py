"""
Account activities: page through FILL activities and turn them into FillEvents.

Fetch:    AlpacaActivityFetcher.fetch_fills (GET /account/activities, page_token cursor).
Validate: parse_fill / parse_fills (JSON Schema + Decimal coercion). Malformed
          records are skipped and logged, never passed on to reconstruction.
Group:    group_by_symbol.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Protocol

import jsonschema

from ledger_core.contracts import FillEvent, MalformedEventError, Side

logger = logging.getLogger("fillbook.activities")

FILL_ACTIVITY = "FILL"

FILL_RECORD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "activity_type", "transaction_time", "price", "qty", "side", "symbol"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "activity_type": {"type": "string"},
        "transaction_time": {"type": "string", "minLength": 10},
        "type": {"type": ["string", "null"]},
        "price": {"type": ["string", "number"]},
        "qty": {"type": ["string", "number"]},
        "side": {"type": "string", "minLength": 1},
        "symbol": {"type": "string", "minLength": 1},
        "leaves_qty": {"type": ["string", "number", "null"]},
        "cum_qty": {"type": ["string", "number", "null"]},
        "order_id": {"type": ["string", "null"]},
        "order_status": {"type": ["string", "null"]},
    },
}

_VALIDATOR = jsonschema.Draft7Validator(FILL_RECORD_SCHEMA)
_FRACTION = re.compile(r"\.(\d+)")


class ActivityFetcher(Protocol):
    def fetch_fills(
        self,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        day: date | None = None,
        page_size: int = 100,
        max_records: int = 500,
    ) -> list[dict]:
        ...


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


class AlpacaActivityFetcher:
    """
    Page through account activities with alpaca-py's TradingClient.

    Pages are requested oldest-first; the cursor is the id of the last record
    of the previous page. Stops on a short page or after max_records.
    """

    def __init__(self, api_key: str, api_secret: str, *, paper: bool = True) -> None:
        if not api_key or not api_secret:
            raise ValueError(
                "Alpaca API key and secret are required. "
                "Set APCA_API_KEY_ID and APCA_API_SECRET_KEY environment variables."
            )
        try:
            from alpaca.trading.client import TradingClient
        except ImportError:
            raise ImportError(
                "alpaca-py is required for AlpacaActivityFetcher. "
                "Install with: pip install alpaca-py"
            )
        self._client = TradingClient(api_key, api_secret, paper=paper)

    def fetch_fills(
        self,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        day: date | None = None,
        page_size: int = 100,
        max_records: int = 500,
    ) -> list[dict]:
        params: dict[str, Any] = {
            "activity_types": FILL_ACTIVITY,
            "direction": "asc",
            "page_size": page_size,
        }
        if day is not None:
            params["date"] = day.isoformat()
        else:
            if start is not None:
                params["after"] = start.isoformat()
            if end is not None:
                params["until"] = end.isoformat()

        records: list[dict] = []
        page_token: str | None = None
        while len(records) < max_records:
            if page_token:
                params["page_token"] = page_token
            page = self._client.get("/account/activities", dict(params)) or []
            logger.debug(
                "get /account/activities (%s, page_size=%d, page_token=%s): %d activities",
                FILL_ACTIVITY, page_size, page_token, len(page),
            )
            records.extend(page)
            if len(page) < page_size:
                break
            page_token = page[-1].get("id")
            if not page_token:
                break

        fills = [r for r in records[:max_records] if str(r.get("activity_type", "")).upper() == FILL_ACTIVITY]
        logger.info("Fetched %d fill activities", len(fills))
        return fills


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------


def _decimal(record: dict, key: str) -> Decimal:
    raw = record.get(key)
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise MalformedEventError(f"{key}={raw!r} is not a number", event_id=record.get("id"))
    if not value.is_finite():
        raise MalformedEventError(f"{key}={raw!r} is not finite", event_id=record.get("id"))
    return value


def _optional_decimal(record: dict, key: str) -> Decimal | None:
    if record.get(key) in (None, ""):
        return None
    return _decimal(record, key)


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO 8601 timestamp ('Z' suffix, any fraction length) to aware UTC."""
    text = raw.strip().replace("Z", "+00:00")
    # fromisoformat only takes up to microseconds
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_fill(record: dict) -> FillEvent:
    """Convert one raw activity record into a FillEvent. Raises MalformedEventError."""
    event_id = record.get("id") if isinstance(record, dict) else None
    errors = sorted(_VALIDATOR.iter_errors(record), key=lambda e: list(e.path))
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.path) or "record"
        raise MalformedEventError(f"{where}: {first.message}", event_id=event_id)

    try:
        side = Side(record["side"].strip().lower())
    except ValueError:
        logger.debug("Fill %s has unrecognised side %r", event_id, record["side"])
        side = Side.OTHER

    try:
        ts = parse_timestamp(record["transaction_time"])
    except ValueError:
        raise MalformedEventError(
            f"bad transaction_time {record['transaction_time']!r}", event_id=event_id
        )

    return FillEvent(
        id=record["id"],
        symbol=record["symbol"].strip().upper(),
        side=side,
        quantity=_decimal(record, "qty"),
        price=_decimal(record, "price"),
        transaction_time=ts,
        order_id=record.get("order_id"),
        order_status=record.get("order_status"),
        leaves_qty=_optional_decimal(record, "leaves_qty"),
        cum_qty=_optional_decimal(record, "cum_qty"),
        activity_type=record["activity_type"],
        fill_type=record.get("type"),
    )


@dataclass
class ParseOutcome:
    events: list[FillEvent] = field(default_factory=list)
    rejected: list[tuple[dict, MalformedEventError]] = field(default_factory=list)


def parse_fills(records: Iterable[dict]) -> ParseOutcome:
    """Parse every record; malformed ones are logged and collected in `rejected`."""
    outcome = ParseOutcome()
    for record in records:
        try:
            outcome.events.append(parse_fill(record))
        except MalformedEventError as exc:
            logger.warning(
                "Rejected malformed fill id=%s symbol=%s: %s",
                exc.event_id, record.get("symbol") if isinstance(record, dict) else None, exc,
            )
            outcome.rejected.append((record, exc))
    return outcome


# ---------------------------------------------------------------------------
# Group
# ---------------------------------------------------------------------------


def group_by_symbol(events: Iterable[FillEvent]) -> dict[str, list[FillEvent]]:
    """Group fills by symbol, keeping delivery order within each symbol."""
    grouped: dict[str, list[FillEvent]] = {}
    for e in events:
        grouped.setdefault(e.symbol, []).append(e)
    return grouped
