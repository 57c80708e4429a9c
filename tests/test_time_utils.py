from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tidings.errors import TimeExpressionError
from tidings.time_utils import ensure_utc, local_day_bounds_utc, local_timezone, resolve_time_expression

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("expr", "delta"),
    [
        ("now", timedelta(0)),
        ("1 hour ago", timedelta(hours=1)),
        ("2 days ago", timedelta(days=2)),
        ("3d ago", timedelta(days=3)),
        ("an hour ago", timedelta(hours=1)),
        ("10 minutes ago", timedelta(minutes=10)),
        ("2 weeks ago", timedelta(weeks=2)),
        ("last week", timedelta(weeks=1)),
        ("  1   Day   Ago ", timedelta(days=1)),
    ],
)
def test_relative_expressions(expr, delta):
    assert resolve_time_expression(expr, now=NOW) == NOW - delta


def test_calendar_units_use_relativedelta():
    assert resolve_time_expression("1 month ago", now=NOW) == datetime(2024, 4, 10, 12, 0, tzinfo=timezone.utc)
    assert resolve_time_expression("1 year ago", now=NOW) == datetime(2023, 5, 10, 12, 0, tzinfo=timezone.utc)


def test_today_and_yesterday_are_local_midnights():
    local_date = NOW.astimezone(local_timezone()).date()
    today_start, _ = local_day_bounds_utc(local_date)
    yesterday_start, _ = local_day_bounds_utc(local_date - timedelta(days=1))

    assert resolve_time_expression("today", now=NOW) == today_start
    assert resolve_time_expression("yesterday", now=NOW) == yesterday_start


def test_absolute_time_with_offset():
    assert resolve_time_expression("2024-01-02T03:04:05+02:00", now=NOW) == datetime(
        2024, 1, 2, 1, 4, 5, tzinfo=timezone.utc
    )


def test_absolute_date_without_zone_is_local_midnight():
    resolved = resolve_time_expression("2024-01-02", now=NOW)

    assert resolved.tzinfo == timezone.utc
    assert resolved.astimezone(local_timezone()).date().isoformat() == "2024-01-02"


@pytest.mark.parametrize("expr", ["", "   ", "whenever it suits", "5 fortnights ago"])
def test_unparseable_expressions_raise(expr):
    with pytest.raises(TimeExpressionError):
        resolve_time_expression(expr, now=NOW)


def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2024, 1, 1, 8, 0)

    assert ensure_utc(naive) == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("expr", ["99999999 days ago", "99999999 years ago"])
def test_out_of_range_shift_raises(expr):
    with pytest.raises(TimeExpressionError, match="out of range"):
        resolve_time_expression(expr, now=NOW)
