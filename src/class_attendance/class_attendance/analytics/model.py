from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.enums import DailyStatus


@dataclass(frozen=True)
class StudentRangeSummary:
    student_id: str
    roll_number: str
    name: str
    present_count: int = 0
    absent_count: int = 0
    days_with_data: int = 0
    attendance_percentage: float = 0.0

    @property
    def has_data(self) -> bool:
        return self.days_with_data > 0


@dataclass(frozen=True)
class AttendanceExtreme:
    student_id: str
    name: str
    percentage: float


@dataclass(frozen=True)
class ClassAnalytics:
    average_attendance: float = 0.0
    highest_attendance: Optional[AttendanceExtreme] = None
    lowest_attendance: Optional[AttendanceExtreme] = None
    students_with_data: int = 0


@dataclass(frozen=True)
class RangeReport:
    class_id: str
    start_date: date
    end_date: date
    working_days: tuple[date, ...] = ()
    students: tuple[StudentRangeSummary, ...] = ()
    class_analytics: ClassAnalytics = field(default_factory=ClassAnalytics)

    @property
    def total_working_days(self) -> int:
        return len(self.working_days)


@dataclass(frozen=True)
class StudentAttendanceReport:
    summary: StudentRangeSummary
    days: tuple[tuple[date, DailyStatus], ...] = ()
