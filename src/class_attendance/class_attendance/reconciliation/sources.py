from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ..attendance.repository import AttendanceRepository
from ..legacy.service import LegacyRosterStore
from ..roster.model import ClassContext
from .converters import snapshot_from_legacy, snapshot_from_record
from .model import DailySnapshot


class HistoricalAttendanceSource(Protocol):
    """One storage generation able to answer "what happened on this class-day"."""

    name: str

    def lookup(self, context: ClassContext, day: date, *, faculty_id: Optional[str] = None) -> Optional[DailySnapshot]:
        raise NotImplementedError


class CurrentRecordSource:
    name = "current"

    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    def lookup(self, context: ClassContext, day: date, *, faculty_id: Optional[str] = None) -> Optional[DailySnapshot]:
        if faculty_id is not None:
            record = self._attendance.get(class_id=context.class_id, attendance_date=day, faculty_id=faculty_id)
        else:
            found = self._attendance.find_for_class(class_id=context.class_id, attendance_date=day)
            record = found[0] if found else None
        return snapshot_from_record(record) if record else None


class LegacyExactSource:
    name = "legacy_exact"

    def __init__(self, store: LegacyRosterStore):
        self._store = store

    def lookup(self, context: ClassContext, day: date, *, faculty_id: Optional[str] = None) -> Optional[DailySnapshot]:
        legacy = self._store.find_exact(class_id=context.class_id, department=context.department, day=day)
        return snapshot_from_legacy(legacy, day) if legacy else None


class LegacyDayRangeSource:
    """Tolerates rows written at UTC midnight or other shifted instants."""

    name = "legacy_day_range"

    def __init__(self, store: LegacyRosterStore):
        self._store = store

    def lookup(self, context: ClassContext, day: date, *, faculty_id: Optional[str] = None) -> Optional[DailySnapshot]:
        legacy = self._store.find_in_utc_day(class_id=context.class_id, department=context.department, day=day)
        return snapshot_from_legacy(legacy, day) if legacy else None
