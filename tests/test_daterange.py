"""Tests for --start / --end / --days resolution."""

from datetime import date, datetime, timezone

import pytest

from cli.daterange import parse_date_arg, parse_day_arg, resolve_window

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-01-02", datetime(2024, 1, 2, tzinfo=timezone.utc)),
        ("2024-01-02 09:30", datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc)),
        ("2024-01-02T09:30", datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc)),
    ],
)
def test_parse_date_arg(raw: str, expected: datetime) -> None:
    assert parse_date_arg(raw) == expected


@pytest.mark.parametrize("raw", ["2024-1-2", "01/02/2024", "2024-13-01", "2024-01-02 9:30pm", ""])
def test_parse_date_arg_invalid(raw: str) -> None:
    with pytest.raises(ValueError, match="Invalid date format"):
        parse_date_arg(raw)


def test_parse_day_arg() -> None:
    assert parse_day_arg("2021-03-04") == date(2021, 3, 4)


def test_default_window() -> None:
    w = resolve_window(None, None, None, default_days=30, now=NOW)
    assert w.end == NOW
    assert w.start == datetime(2024, 2, 14, 12, 0, tzinfo=timezone.utc)


def test_days_back_from_end() -> None:
    w = resolve_window(None, "2024-03-10", 5, now=NOW)
    assert w.start == datetime(2024, 3, 5, tzinfo=timezone.utc)
    assert w.end == datetime(2024, 3, 10, tzinfo=timezone.utc)


def test_start_wins_over_days() -> None:
    w = resolve_window("2024-03-01", None, 2, now=NOW)
    assert w.start == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert w.end == NOW


def test_start_after_end_rejected() -> None:
    with pytest.raises(ValueError, match="not before"):
        resolve_window("2024-03-10", "2024-03-01", None, now=NOW)


def test_non_positive_days_rejected() -> None:
    with pytest.raises(ValueError, match="--days"):
        resolve_window(None, None, 0, now=NOW)
