from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Iterator

from ..core.exceptions import ValidationError

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value: str) -> date:
    """Parse a strict YYYY-MM-DD string into a date.

    ``strptime`` alone accepts ``2025-3-1``; the regex keeps the form
    unambiguous.
    """

    v = (value or "").strip() if isinstance(value, str) else ""
    if not _ISO_DATE.match(v):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD", details={"value": value})
    try:
        return datetime.strptime(v, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Invalid calendar date", details={"value": value})


def coerce_date(value: date | str) -> date:
    if isinstance(value, datetime):
        raise ValidationError("Expected a calendar date without time of day")
    if isinstance(value, date):
        return value
    return parse_iso_date(value)


def format_iso_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Inclusive calendar-day iteration."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_weekend(value: date) -> bool:
    return value.weekday() >= 5


def today_local() -> date:
    """Current local date.

    Note: Wrapped so tests can patch it.
    """
    return date.today()


def now_local() -> datetime:
    return datetime.now()
