from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from .errors import TimeExpressionError

_RELATIVE_RE = re.compile(r"^(?P<amount>\d+|an?|one)\s*(?P<unit>[a-z]+?)s?\s+ago$")
_LAST_RE = re.compile(r"^last\s+(?P<unit>[a-z]+)$")

_UNITS = {
    "s": "seconds",
    "sec": "seconds",
    "second": "seconds",
    "m": "minutes",
    "min": "minutes",
    "minute": "minutes",
    "h": "hours",
    "hr": "hours",
    "hour": "hours",
    "d": "days",
    "day": "days",
    "w": "weeks",
    "wk": "weeks",
    "week": "weeks",
    "month": "months",
    "y": "years",
    "yr": "years",
    "year": "years",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_timezone():
    return datetime.now().astimezone().tzinfo or timezone.utc


def ensure_utc(dt: datetime) -> datetime:
    value = dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_day_bounds_utc(target_date: date) -> tuple[datetime, datetime]:
    local_tz = local_timezone()
    start_local = datetime.combine(target_date, time.min).replace(tzinfo=local_tz)
    end_local = start_local + timedelta(days=1)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def _local_date(now: datetime) -> date:
    return ensure_utc(now).astimezone(local_timezone()).date()


def _shift(now: datetime, amount: int, unit: str, expr: str) -> datetime | None:
    field = _UNITS.get(unit)
    if field is None:
        return None
    try:
        return now - relativedelta(**{field: amount})
    except (ValueError, OverflowError) as exc:
        raise TimeExpressionError(
            f"time `{expr}` is out of range", token=expr, expected="time or relative time"
        ) from exc


def resolve_time_expression(expr: str, now: datetime | None = None) -> datetime:
    """Resolve a relative ("2 days ago", "yesterday") or absolute time string.

    Absolute values without a timezone are read as local time. The result is
    always an aware UTC datetime.
    """
    reference = ensure_utc(now or utcnow())
    normalized = " ".join(expr.strip().lower().split())
    if not normalized:
        raise TimeExpressionError("empty time expression", token=expr, expected="time or relative time")

    if normalized == "now":
        return reference
    if normalized == "today":
        return local_day_bounds_utc(_local_date(reference))[0]
    if normalized == "yesterday":
        return local_day_bounds_utc(_local_date(reference) - timedelta(days=1))[0]

    match = _RELATIVE_RE.match(normalized)
    if match is not None:
        raw_amount = match.group("amount")
        amount = int(raw_amount) if raw_amount.isdigit() else 1
        shifted = _shift(reference, amount, match.group("unit"), expr)
        if shifted is not None:
            return shifted

    match = _LAST_RE.match(normalized)
    if match is not None:
        shifted = _shift(reference, 1, match.group("unit"), expr)
        if shifted is not None:
            return shifted

    local_midnight = datetime.combine(_local_date(reference), time.min)
    try:
        parsed = date_parser.parse(expr.strip(), default=local_midnight)
    except (ValueError, OverflowError) as exc:
        raise TimeExpressionError(
            f"unable to understand time `{expr}`", token=expr, expected="time or relative time"
        ) from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=local_timezone())
    return parsed.astimezone(timezone.utc)
