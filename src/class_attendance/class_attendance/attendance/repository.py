from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, AttendanceSummary


class AttendanceRepository(Protocol):
    def get(self, *, class_id: str, attendance_date: date, faculty_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_for_class(self, *, class_id: str, attendance_date: date) -> Sequence[AttendanceRecord]:
        """All faculty records for a class-day, earliest created first."""

        raise NotImplementedError

    def exists_for_class(self, *, class_id: str, attendance_date: date) -> bool:
        raise NotImplementedError

    def exists_for_department(self, *, department: str, attendance_date: date) -> bool:
        raise NotImplementedError

    def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        """Persist a new record.

        Raises ``AlreadyExists`` when ``(class_id, attendance_date, faculty_id)``
        is taken; the check is the storage unique key, not a prior read.
        """

        raise NotImplementedError

    def save(self, record: AttendanceRecord, *, expected_version: int) -> Optional[AttendanceRecord]:
        """Replace entries/totals/status if the stored version still matches.

        Returns the stored record (version bumped) or ``None`` on a lost race.
        """

        raise NotImplementedError

    def list_summaries(
        self,
        *,
        class_id: str,
        start_date: date,
        end_date: date,
        faculty_id: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[AttendanceSummary]:
        raise NotImplementedError
