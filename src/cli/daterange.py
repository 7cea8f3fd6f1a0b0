"""
Resolve --start / --end / --days into a UTC window.

Accepted date strings: 'YYYY-MM-DD' (midnight UTC) and 'YYYY-MM-DD HH:MM'
or 'YYYY-MM-DDTHH:MM' (UTC).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone


@dataclass(frozen=True)
class DateWindow:
    start: datetime
    end: datetime


def parse_date_arg(value: str) -> datetime:
    """Parse a CLI date argument to an aware UTC datetime. Raises ValueError."""
    text = value.strip()
    try:
        if len(text) == 10:
            return datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        if len(text) == 16:
            return datetime.strptime(text.replace("T", " "), "%Y-%m-%d %H:%M").replace(tzinfo=timezone.utc)
    except ValueError:
        pass
    raise ValueError(f"Invalid date format: '{value}' (use YYYY-MM-DD or 'YYYY-MM-DD HH:MM')")


def parse_day_arg(value: str) -> date:
    return parse_date_arg(value).date()


def resolve_window(
    start: str | None,
    end: str | None,
    days: int | None,
    *,
    default_days: int = 30,
    now: datetime | None = None,
) -> DateWindow:
    """
    --start wins (end defaults to now), then --days back from --end/now,
    then default_days back from now.
    """
    now = now or datetime.now(timezone.utc)
    end_dt = parse_date_arg(end) if end else now
    if start:
        start_dt = parse_date_arg(start)
    else:
        span = days if days is not None else default_days
        if span <= 0:
            raise ValueError(f"--days must be positive, got {span}")
        start_dt = end_dt - timedelta(days=span)
    if start_dt >= end_dt:
        raise ValueError(f"start {start_dt.isoformat()} is not before end {end_dt.isoformat()}")
    return DateWindow(start=start_dt, end=end_dt)
