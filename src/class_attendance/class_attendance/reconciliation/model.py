from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Mapping, Optional

from ..core.enums import DailyStatus


@dataclass(frozen=True)
class DailySnapshot:
    """One source's view of a class-day, keyed by roll number.

    The three roll sets are kept as stored so that a legacy row converted to
    a snapshot and back is unchanged.
    """

    class_id: str
    day: date
    source: str
    present: frozenset[str] = frozenset()
    absent: frozenset[str] = frozenset()
    od: frozenset[str] = frozenset()
    remarks: Mapping[str, str] = field(default_factory=dict)
    marked_by: Optional[str] = None
    timestamp: Optional[datetime] = None

    def roll_sets(self) -> tuple[frozenset[str], frozenset[str], frozenset[str]]:
        return self.present, self.absent, self.od

    def status_of(self, roll_number: str) -> DailyStatus:
        if roll_number in self.od:
            return DailyStatus.OD
        if roll_number in self.present:
            return DailyStatus.PRESENT
        if roll_number in self.absent:
            return DailyStatus.ABSENT
        return DailyStatus.NOT_MARKED


@dataclass(frozen=True)
class StudentDailyStatus:
    student_id: str
    roll_number: str
    name: str
    status: DailyStatus
    remarks: Optional[str] = None
    marked_by: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class UnifiedDailyRecord:
    """Reconciled class-day view over every enrolled student."""

    class_id: str
    day: date
    source: str
    students: tuple[StudentDailyStatus, ...] = ()

    def status_of(self, student_id: str) -> DailyStatus:
        for s in self.students:
            if s.student_id == student_id:
                return s.status
        return DailyStatus.NOT_MARKED

    def with_status(self, status: DailyStatus) -> list[StudentDailyStatus]:
        return [s for s in self.students if s.status == status]
