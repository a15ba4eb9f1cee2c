from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ..core.constants import DEFAULT_LEGACY_TIMEZONE
from .model import LegacyRosterRecord
from .repository import LegacyRosterRepository


def local_midnight_utc(day: date, tz: ZoneInfo) -> datetime:
    """Naive UTC instant of the local midnight that old write paths stored."""
    local = datetime.combine(day, time.min, tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def utc_day_bounds(day: date) -> tuple[datetime, datetime]:
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


class LegacyRosterStore:
    """Calendar-date facade over the legacy rows.

    All timezone handling for the legacy schema lives here so comparison
    logic above it only ever sees ``date`` values.
    """

    def __init__(self, legacy: LegacyRosterRepository, *, tz_name: str = DEFAULT_LEGACY_TIMEZONE):
        self._legacy = legacy
        self._tz = ZoneInfo(tz_name)

    @property
    def timezone(self) -> ZoneInfo:
        return self._tz

    def find_exact(self, *, class_id: str, department: str, day: date) -> Optional[LegacyRosterRecord]:
        return self._legacy.find_exact(
            class_assigned=class_id,
            department=department,
            recorded_at=local_midnight_utc(day, self._tz),
        )

    def _neighbour_midnights(self, day: date) -> tuple[datetime, ...]:
        """Exact local midnights of the adjacent days; those rows belong to them."""
        return tuple(local_midnight_utc(d, self._tz) for d in (day - timedelta(days=1), day + timedelta(days=1)))

    def find_in_utc_day(self, *, class_id: str, department: str, day: date) -> Optional[LegacyRosterRecord]:
        start, end = utc_day_bounds(day)
        return self._legacy.find_between(
            class_assigned=class_id,
            department=department,
            start=start,
            end=end,
            exclude=self._neighbour_midnights(day),
        )

    def exists(self, *, department: str, day: date, class_id: Optional[str] = None) -> bool:
        midnight = local_midnight_utc(day, self._tz)
        if self._legacy.exists_between(department=department, start=midnight, end=midnight, class_assigned=class_id):
            return True
        start, end = utc_day_bounds(day)
        return self._legacy.exists_between(
            department=department,
            start=start,
            end=end,
            class_assigned=class_id,
            exclude=self._neighbour_midnights(day),
        )
