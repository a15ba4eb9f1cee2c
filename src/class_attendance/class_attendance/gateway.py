from __future__ import annotations

import threading
from datetime import date
from typing import Any, Mapping, Optional, Sequence, Union

from .analytics.model import RangeReport, StudentAttendanceReport
from .analytics.service import RangeAnalyticsService
from .approvals.model import DecisionResult
from .approvals.service import ODApprovalWorkflow
from .attendance.model import AttendanceRecord, AttendanceSummary, SubmittedEntry
from .attendance.service import AttendanceService
from .common.datetime_utils import coerce_date
from .core.enums import DecisionOutcome, EntryStatus, HolidayScope
from .core.exceptions import NotFound, ValidationError
from .core.results import OperationResult, capture
from .holidays.model import Holiday, HolidayCheck, HolidaySummary
from .holidays.service import HolidayService
from .reconciliation.model import StudentDailyStatus, UnifiedDailyRecord
from .reconciliation.service import ReconciliationResolver
from .roster.model import ClassContext, FacultyIdentity

EntryInput = Union[SubmittedEntry, Mapping[str, Any]]


def parse_submitted_entries(items: Optional[Sequence[EntryInput]]) -> list[SubmittedEntry]:
    """Accept ``SubmittedEntry`` objects or ``{studentId, status, remarks}`` mappings."""

    if items is None:
        raise ValidationError("Students list is required")

    out: list[SubmittedEntry] = []
    for item in items:
        if isinstance(item, SubmittedEntry):
            out.append(item)
            continue
        if not isinstance(item, Mapping):
            raise ValidationError("Each student entry must be an object")

        student_id = item.get("studentId", item.get("student_id"))
        raw_status = str(item.get("status") or "").strip().lower()
        try:
            status = EntryStatus(raw_status)
        except ValueError:
            raise ValidationError("Invalid attendance status", details={"studentId": student_id, "status": item.get("status")})
        out.append(
            SubmittedEntry(
                student_id=str(student_id or "").strip(),
                status=status,
                remarks=item.get("remarks") or item.get("reason"),
            )
        )
    return out


def _outcome(value: Union[DecisionOutcome, str]) -> DecisionOutcome:
    try:
        return DecisionOutcome(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        raise ValidationError("Decision must be approved or rejected", details={"outcome": value})


def _scope(value: Union[HolidayScope, str]) -> HolidayScope:
    try:
        return HolidayScope(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        raise ValidationError("Holiday scope must be class or global", details={"scope": value})


class AttendanceGateway:
    """Operations exposed to collaborators.

    Every call returns an ``OperationResult``; business failures never raise.
    ``StorageError`` and ``OperationCancelled`` still propagate.
    """

    def __init__(
        self,
        *,
        attendance: AttendanceService,
        holidays: HolidayService,
        workflow: ODApprovalWorkflow,
        resolver: ReconciliationResolver,
        analytics: RangeAnalyticsService,
    ):
        self._attendance = attendance
        self._holidays = holidays
        self._workflow = workflow
        self._resolver = resolver
        self._analytics = analytics

    # attendance

    def mark_attendance(
        self,
        *,
        context: ClassContext,
        attendance_date: date | str,
        faculty: FacultyIdentity,
        entries: Optional[Sequence[EntryInput]],
        notes: Optional[str] = None,
    ) -> OperationResult[AttendanceRecord]:
        return capture(
            lambda: self._attendance.mark(
                context=context,
                attendance_date=attendance_date,
                faculty=faculty,
                entries=parse_submitted_entries(entries),
                notes=notes,
            )
        )

    def edit_attendance(
        self,
        *,
        class_id: str,
        attendance_date: date | str,
        faculty: FacultyIdentity,
        entries: Optional[Sequence[EntryInput]],
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> OperationResult[AttendanceRecord]:
        return capture(
            lambda: self._attendance.edit(
                class_id=class_id,
                attendance_date=attendance_date,
                faculty=faculty,
                entries=parse_submitted_entries(entries),
                notes=notes,
                today=today,
            )
        )

    def get_record(self, *, class_id: str, attendance_date: date | str, faculty_id: str) -> OperationResult[AttendanceRecord]:
        return capture(lambda: self._attendance.get(class_id=class_id, attendance_date=attendance_date, faculty_id=faculty_id))

    def is_marked(self, *, class_id: str, attendance_date: date | str, faculty_id: str) -> OperationResult[bool]:
        return capture(lambda: self._attendance.is_marked(class_id=class_id, attendance_date=attendance_date, faculty_id=faculty_id))

    def attendance_history(
        self,
        *,
        class_id: str,
        start_date: date | str,
        end_date: date | str,
        faculty_id: Optional[str] = None,
    ) -> OperationResult[Sequence[AttendanceSummary]]:
        return capture(
            lambda: self._attendance.history(
                class_id=class_id,
                start_date=start_date,
                end_date=end_date,
                faculty_id=faculty_id,
            )
        )

    # reconciled reads

    def get_attendance(
        self,
        *,
        context: ClassContext,
        attendance_date: date | str,
        faculty_id: Optional[str] = None,
    ) -> OperationResult[UnifiedDailyRecord]:
        def _run() -> UnifiedDailyRecord:
            day = coerce_date(attendance_date)
            record = self._resolver.resolve(context, day, faculty_id=faculty_id)
            if record is None:
                raise NotFound(
                    "No attendance found for this class and date",
                    details={"class_id": context.class_id, "date": day.isoformat()},
                )
            return record

        return capture(_run)

    def get_attendance_range(
        self,
        *,
        context: ClassContext,
        start_date: date | str,
        end_date: date | str,
        faculty_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> OperationResult[list[UnifiedDailyRecord]]:
        def _run() -> list[UnifiedDailyRecord]:
            found = self._analytics.daily_records(context, start_date, end_date, faculty_id=faculty_id, cancel=cancel)
            return [found[d] for d in sorted(found)]

        return capture(_run)

    def absentees(
        self,
        *,
        context: ClassContext,
        attendance_date: date | str,
        faculty_id: Optional[str] = None,
    ) -> OperationResult[list[StudentDailyStatus]]:
        return capture(lambda: self._resolver.absentees(context, attendance_date, faculty_id=faculty_id))

    def analyze_attendance(
        self,
        *,
        context: ClassContext,
        start_date: date | str,
        end_date: date | str,
        faculty_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> OperationResult[RangeReport]:
        return capture(lambda: self._analytics.analyze(context, start_date, end_date, faculty_id=faculty_id, cancel=cancel))

    def student_report(
        self,
        *,
        context: ClassContext,
        student_id: str,
        start_date: date | str,
        end_date: date | str,
        faculty_id: Optional[str] = None,
    ) -> OperationResult[StudentAttendanceReport]:
        return capture(
            lambda: self._analytics.student_report(context, student_id, start_date, end_date, faculty_id=faculty_id)
        )

    # holidays

    def declare_holiday(
        self,
        *,
        context: ClassContext,
        holiday_date: date | str,
        reason: str,
        scope: Union[HolidayScope, str],
        declared_by: str,
    ) -> OperationResult[Holiday]:
        return capture(
            lambda: self._holidays.declare(
                day=coerce_date(holiday_date),
                context=context,
                reason=reason,
                scope=_scope(scope),
                declared_by=declared_by,
            )
        )

    def list_holidays(
        self,
        *,
        context: ClassContext,
        start_date: date | str,
        end_date: date | str,
    ) -> OperationResult[Sequence[Holiday]]:
        return capture(lambda: self._holidays.list_in_range(coerce_date(start_date), coerce_date(end_date), context))

    def check_holiday(self, *, context: ClassContext, holiday_date: date | str) -> OperationResult[HolidayCheck]:
        return capture(lambda: self._holidays.is_holiday(coerce_date(holiday_date), context))

    def revoke_holiday(self, *, holiday_id: int, actor: str) -> OperationResult[None]:
        return capture(lambda: self._holidays.revoke(holiday_id=holiday_id, actor=actor))

    def update_holiday_reason(self, *, holiday_id: int, reason: str, actor: str) -> OperationResult[Holiday]:
        return capture(lambda: self._holidays.update_reason(holiday_id=holiday_id, reason=reason, actor=actor))

    def holiday_summary(
        self,
        *,
        context: ClassContext,
        start_date: date | str,
        end_date: date | str,
    ) -> OperationResult[HolidaySummary]:
        return capture(lambda: self._holidays.summary(coerce_date(start_date), coerce_date(end_date), context))

    def holiday_calendar(self, *, context: ClassContext, year: int, month: int) -> OperationResult[Sequence[Holiday]]:
        return capture(lambda: self._holidays.month_calendar(year, month, context))

    # approvals

    def resolve_od_request(
        self,
        *,
        request_id: str,
        outcome: Union[DecisionOutcome, str],
        decided_by: str,
        remarks: Optional[str] = None,
    ) -> OperationResult[DecisionResult]:
        return capture(
            lambda: self._workflow.apply_decision(
                request_id=request_id,
                outcome=_outcome(outcome),
                decided_by=decided_by,
                remarks=remarks,
            )
        )
