from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from ..common.datetime_utils import coerce_date
from ..common.validators import require_date_range
from ..core.constants import DEFAULT_ANALYTICS_WORKERS
from ..core.enums import DailyStatus
from ..core.exceptions import NotFound, OperationCancelled
from ..holidays.service import HolidayService
from ..reconciliation.model import UnifiedDailyRecord
from ..reconciliation.service import ReconciliationResolver
from ..roster.model import ClassContext, Student
from ..roster.repository import RosterProvider
from .model import AttendanceExtreme, ClassAnalytics, RangeReport, StudentAttendanceReport, StudentRangeSummary

logger = logging.getLogger(__name__)

_ATTENDED = (DailyStatus.PRESENT, DailyStatus.OD)


def round_percentage(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    value = Decimal(numerator) * 100 / Decimal(denominator)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def summarize_student(student: Student, statuses: Sequence[DailyStatus]) -> StudentRangeSummary:
    present = sum(1 for s in statuses if s in _ATTENDED)
    absent = sum(1 for s in statuses if s == DailyStatus.ABSENT)
    with_data = sum(1 for s in statuses if s != DailyStatus.NOT_MARKED)
    return StudentRangeSummary(
        student_id=student.student_id,
        roll_number=student.roll_number,
        name=student.name,
        present_count=present,
        absent_count=absent,
        days_with_data=with_data,
        attendance_percentage=round_percentage(present, with_data),
    )


def class_analytics(summaries: Sequence[StudentRangeSummary]) -> ClassAnalytics:
    """Aggregates over students with data; ties keep the first student seen."""

    ranked = [s for s in summaries if s.has_data]
    if not ranked:
        return ClassAnalytics()

    highest = lowest = ranked[0]
    for s in ranked[1:]:
        if s.attendance_percentage > highest.attendance_percentage:
            highest = s
        if s.attendance_percentage < lowest.attendance_percentage:
            lowest = s

    total = sum(Decimal(str(s.attendance_percentage)) for s in ranked)
    average = (total / len(ranked)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return ClassAnalytics(
        average_attendance=float(average),
        highest_attendance=AttendanceExtreme(highest.student_id, highest.name, highest.attendance_percentage),
        lowest_attendance=AttendanceExtreme(lowest.student_id, lowest.name, lowest.attendance_percentage),
        students_with_data=len(ranked),
    )


class RangeAnalyticsService:
    """Working-day attendance metrics over a date range.

    Read-only: per-day resolution may fan out to a thread pool, and a set
    ``cancel`` event stops the run between days.
    """

    def __init__(
        self,
        resolver: ReconciliationResolver,
        holidays: HolidayService,
        roster: RosterProvider,
        *,
        max_workers: int = DEFAULT_ANALYTICS_WORKERS,
    ):
        self._resolver = resolver
        self._holidays = holidays
        self._roster = roster
        self._max_workers = max(1, int(max_workers))

    def working_days(self, context: ClassContext, start: date | str, end: date | str) -> list[date]:
        start = coerce_date(start)
        end = coerce_date(end)
        require_date_range(start, end)
        return self._holidays.working_days(start, end, context)

    def daily_records(
        self,
        context: ClassContext,
        start: date | str,
        end: date | str,
        *,
        faculty_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> dict[date, UnifiedDailyRecord]:
        """Resolved records for the working days that have data, by date."""

        days = self.working_days(context, start, end)
        roster = list(self._roster.list_enrolled(context))
        resolved = self._resolve_days(context, days, roster, faculty_id=faculty_id, cancel=cancel)
        return {d: r for d, r in resolved.items() if r is not None}

    def _resolve_days(
        self,
        context: ClassContext,
        days: Sequence[date],
        roster: Sequence[Student],
        *,
        faculty_id: Optional[str],
        cancel: Optional[threading.Event],
    ) -> dict[date, Optional[UnifiedDailyRecord]]:
        def _check_cancel() -> None:
            if cancel is not None and cancel.is_set():
                logger.info("Range analysis for %s cancelled", context.class_id)
                raise OperationCancelled("Range analysis cancelled")

        def _resolve(day: date) -> Optional[UnifiedDailyRecord]:
            _check_cancel()
            return self._resolver.resolve(context, day, faculty_id=faculty_id, roster=roster)

        if self._max_workers == 1 or len(days) <= 1:
            return {day: _resolve(day) for day in days}

        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="attendance-range") as pool:
            futures = {day: pool.submit(_resolve, day) for day in days}
            out: dict[date, Optional[UnifiedDailyRecord]] = {}
            try:
                for day in sorted(futures):
                    _check_cancel()
                    out[day] = futures[day].result()
            except BaseException:
                for f in futures.values():
                    f.cancel()
                raise
        return out

    def _collect(
        self,
        context: ClassContext,
        start: date | str,
        end: date | str,
        *,
        faculty_id: Optional[str],
        cancel: Optional[threading.Event],
    ) -> tuple[date, date, list[date], list[Student], dict[str, list[DailyStatus]]]:
        start = coerce_date(start)
        end = coerce_date(end)
        require_date_range(start, end)

        days = self._holidays.working_days(start, end, context)
        roster = list(self._roster.list_enrolled(context))
        series: dict[str, list[DailyStatus]] = {s.student_id: [] for s in roster}
        if not roster:
            logger.info("No students enrolled in %s; empty report", context.class_id)
            return start, end, [], roster, series

        resolved = self._resolve_days(context, days, roster, faculty_id=faculty_id, cancel=cancel)
        for day in days:
            record = resolved[day]
            for s in roster:
                series[s.student_id].append(record.status_of(s.student_id) if record else DailyStatus.NOT_MARKED)
        return start, end, days, roster, series

    def analyze(
        self,
        context: ClassContext,
        start: date | str,
        end: date | str,
        *,
        faculty_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> RangeReport:
        start, end, days, roster, series = self._collect(context, start, end, faculty_id=faculty_id, cancel=cancel)
        summaries = [summarize_student(s, series[s.student_id]) for s in roster]
        report = RangeReport(
            class_id=context.class_id,
            start_date=start,
            end_date=end,
            working_days=tuple(days),
            students=tuple(summaries),
            class_analytics=class_analytics(summaries),
        )
        logger.info(
            "Analyzed %s from %s to %s: %s working days, %s students",
            context.class_id,
            start,
            end,
            report.total_working_days,
            len(summaries),
        )
        return report

    def student_report(
        self,
        context: ClassContext,
        student_id: str,
        start: date | str,
        end: date | str,
        *,
        faculty_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> StudentAttendanceReport:
        start, end, days, roster, series = self._collect(context, start, end, faculty_id=faculty_id, cancel=cancel)
        student = next((s for s in roster if s.student_id == student_id), None)
        if student is None:
            raise NotFound("Student is not enrolled in this class", details={"student_id": student_id})

        statuses = series[student.student_id]
        return StudentAttendanceReport(
            summary=summarize_student(student, statuses),
            days=tuple(zip(days, statuses)),
        )
