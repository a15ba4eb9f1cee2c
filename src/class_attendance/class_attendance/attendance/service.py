from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..approvals.service import ODApprovalWorkflow, status_after_change
from ..common.datetime_utils import coerce_date, today_local
from ..common.validators import require_date_range, require_max_length
from ..core.constants import (
    ALREADY_MARKED_REMARK,
    DEFAULT_HISTORY_LIMIT,
    LOST_RACE_REMARK,
    MAX_NOTES_LENGTH,
    MAX_REMARKS_LENGTH,
    RE_MARK_REMARK,
    WRITE_FAILED_REMARK,
)
from ..core.enums import EntryStatus, RecordStatus
from ..core.exceptions import (
    AlreadyExists,
    ConcurrentUpdate,
    HolidayConflict,
    ImmutableHistory,
    InvalidRoster,
    NotFound,
    ValidationError,
)
from ..holidays.service import HolidayService
from ..roster.model import ClassContext, FacultyIdentity, Student
from ..roster.repository import RosterProvider
from .model import AttendanceRecord, AttendanceSummary, EffectiveStatus, StudentAttendanceEntry, SubmittedEntry
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _require_active(faculty: FacultyIdentity) -> None:
    if not faculty or not faculty.is_active:
        raise ValidationError("Faculty account is not active")


def _entry_status(value) -> EntryStatus:
    try:
        return EntryStatus(value)
    except ValueError:
        raise ValidationError("Invalid attendance status", details={"status": value})


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        roster: RosterProvider,
        holidays: HolidayService,
        workflow: ODApprovalWorkflow,
    ):
        self._attendance = attendance
        self._roster = roster
        self._holidays = holidays
        self._workflow = workflow

    def _validate_submission(self, context: ClassContext, entries: Sequence[SubmittedEntry]) -> list[tuple[Student, SubmittedEntry]]:
        if not entries:
            raise ValidationError("At least one student entry is required")

        enrolled = {s.student_id: s for s in self._roster.list_enrolled(context)}
        seen: set[str] = set()
        unknown: list[str] = []
        inactive: list[str] = []
        duplicated: list[str] = []
        out: list[tuple[Student, SubmittedEntry]] = []

        for e in entries:
            sid = str(e.student_id or "").strip()
            if sid in seen:
                duplicated.append(sid)
                continue
            seen.add(sid)

            student = enrolled.get(sid)
            if student is None:
                unknown.append(sid)
                continue
            if not student.is_active:
                inactive.append(sid)
                continue

            require_max_length(e.remarks, "Remarks", MAX_REMARKS_LENGTH)
            out.append((student, SubmittedEntry(student_id=sid, status=_entry_status(e.status), remarks=e.remarks)))

        if unknown or inactive or duplicated:
            raise InvalidRoster(
                "Submitted students do not match the class roster",
                details={"unknown": unknown, "inactive": inactive, "duplicated": duplicated},
            )
        return out

    def mark(
        self,
        *,
        context: ClassContext,
        attendance_date: date | str,
        faculty: FacultyIdentity,
        entries: Sequence[SubmittedEntry],
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        attendance_date = coerce_date(attendance_date)
        _require_active(faculty)
        require_max_length(notes, "Notes", MAX_NOTES_LENGTH)

        check = self._holidays.is_holiday(attendance_date, context)
        if check.is_holiday:
            logger.warning("Refused attendance for %s on holiday %s", context.class_id, attendance_date)
            raise HolidayConflict(
                f"Cannot mark attendance on a holiday: {check.holiday.reason}",
                details={"date": attendance_date.isoformat(), "holiday_id": check.holiday.holiday_id},
            )

        validated = self._validate_submission(context, entries)

        if self._attendance.get(class_id=context.class_id, attendance_date=attendance_date, faculty_id=faculty.faculty_id):
            logger.warning("Attendance already marked for %s on %s by %s", context.class_id, attendance_date, faculty.faculty_id)
            raise AlreadyExists(
                "Attendance has already been marked for this class and date",
                details={"class_id": context.class_id, "date": attendance_date.isoformat()},
            )

        # Requests are committed on their own; any failure before the record
        # lands must close the ones already opened.
        opened: list[str] = []
        try:
            built: list[StudentAttendanceEntry] = []
            for student, submitted in validated:
                if submitted.status == EntryStatus.OD:
                    state = self._workflow.open_request(
                        student=student,
                        faculty=faculty,
                        class_id=context.class_id,
                        department=context.department,
                        attendance_date=attendance_date,
                        prior=EntryStatus.ABSENT,
                        reason=submitted.remarks,
                    )
                    opened.append(state.pending_request_id)
                else:
                    state = EffectiveStatus(submitted.status)
                built.append(_entry(student, state, submitted.remarks))

            record = AttendanceRecord.build(
                class_id=context.class_id,
                attendance_date=attendance_date,
                faculty_id=faculty.faculty_id,
                department=context.department,
                entries=built,
                status=RecordStatus.PENDING_OD_APPROVAL if opened else RecordStatus.FINALIZED,
                actor=faculty.faculty_id,
                notes=(notes or "").strip(),
            )
            created = self._attendance.insert(record)
        except AlreadyExists:
            self._workflow.withdraw(opened, actor=faculty.faculty_id, remark=ALREADY_MARKED_REMARK)
            raise
        except Exception:
            logger.error("Marking %s on %s failed; withdrawing %s OD request(s)", context.class_id, attendance_date, len(opened))
            self._workflow.withdraw(opened, actor=faculty.faculty_id, remark=WRITE_FAILED_REMARK)
            raise

        logger.info(
            "Marked attendance %s for %s on %s (%s present, %s absent, %s od)",
            created.record_id,
            created.class_id,
            attendance_date,
            created.totals.total_present,
            created.totals.total_absent,
            created.totals.total_od,
        )
        return created

    def edit(
        self,
        *,
        class_id: str,
        attendance_date: date | str,
        faculty: FacultyIdentity,
        entries: Sequence[SubmittedEntry],
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> AttendanceRecord:
        attendance_date = coerce_date(attendance_date)
        _require_active(faculty)
        require_max_length(notes, "Notes", MAX_NOTES_LENGTH)

        today = today or today_local()
        if attendance_date != today:
            logger.warning("Refused edit of %s on %s: not today", class_id, attendance_date)
            raise ImmutableHistory(
                "Attendance can only be edited on the same day",
                details={"date": attendance_date.isoformat(), "today": today.isoformat()},
            )

        record = self._attendance.get(class_id=class_id, attendance_date=attendance_date, faculty_id=faculty.faculty_id)
        if record is None:
            raise NotFound(
                "Attendance record not found",
                details={"class_id": class_id, "date": attendance_date.isoformat()},
            )

        context = ClassContext.from_class_id(class_id, record.department)
        validated = self._validate_submission(context, entries)

        opened: list[str] = []
        try:
            merged, superseded = self._merge(record, validated, faculty=faculty, opened=opened)
            updated = record.with_entries(
                merged,
                status=status_after_change(merged),
                actor=faculty.faculty_id,
                notes=notes.strip() if notes is not None else None,
            )
            saved = self._attendance.save(updated, expected_version=record.version)
        except Exception:
            logger.error("Editing %s on %s failed; withdrawing %s OD request(s)", class_id, attendance_date, len(opened))
            self._workflow.withdraw(opened, actor=faculty.faculty_id, remark=WRITE_FAILED_REMARK)
            raise

        if saved is None:
            self._workflow.withdraw(opened, actor=faculty.faculty_id, remark=LOST_RACE_REMARK)
            raise ConcurrentUpdate(
                "Attendance record was changed by someone else, reload and retry",
                details={"record_id": record.record_id},
            )

        self._workflow.withdraw(superseded, actor=faculty.faculty_id, remark=RE_MARK_REMARK)
        logger.info("Edited attendance %s for %s on %s (v%s)", saved.record_id, class_id, attendance_date, saved.version)
        return saved

    def _merge(
        self,
        record: AttendanceRecord,
        validated: list[tuple[Student, SubmittedEntry]],
        *,
        faculty: FacultyIdentity,
        opened: list[str],
    ) -> tuple[list[StudentAttendanceEntry], list[str]]:
        """Merge a submission into ``record``.

        Ids of newly opened OD requests are appended to ``opened`` as they are
        created, so the caller can withdraw them if anything later fails.
        Returns the merged entries and the pending request ids superseded by a
        re-mark.
        """
        current = {e.student_id: e for e in record.entries}
        replaced: dict[str, StudentAttendanceEntry] = {}
        appended: list[StudentAttendanceEntry] = []
        superseded: list[str] = []

        for student, submitted in validated:
            previous = current.get(student.student_id)
            remarks = submitted.remarks if submitted.remarks is not None else (previous.remarks if previous else None)

            if submitted.status == EntryStatus.OD:
                if previous is not None and (previous.pending_od or previous.status == EntryStatus.OD):
                    continue
                prior = previous.status if previous is not None else EntryStatus.ABSENT
                state = self._workflow.open_request(
                    student=student,
                    faculty=faculty,
                    class_id=record.class_id,
                    department=record.department,
                    attendance_date=record.attendance_date,
                    prior=prior,
                    reason=submitted.remarks,
                )
                opened.append(state.pending_request_id)
            else:
                if previous is not None and previous.pending_od:
                    superseded.append(previous.od_request_id)
                state = EffectiveStatus(submitted.status)

            entry = _entry(student, state, remarks)
            if previous is None:
                appended.append(entry)
            else:
                replaced[student.student_id] = entry

        merged = [replaced.get(e.student_id, e) for e in record.entries] + appended
        return merged, superseded

    def get(self, *, class_id: str, attendance_date: date | str, faculty_id: str) -> AttendanceRecord:
        attendance_date = coerce_date(attendance_date)
        record = self._attendance.get(class_id=class_id, attendance_date=attendance_date, faculty_id=faculty_id)
        if record is None:
            raise NotFound(
                "Attendance record not found",
                details={"class_id": class_id, "date": attendance_date.isoformat()},
            )
        return record

    def is_marked(self, *, class_id: str, attendance_date: date | str, faculty_id: str) -> bool:
        attendance_date = coerce_date(attendance_date)
        return self._attendance.get(class_id=class_id, attendance_date=attendance_date, faculty_id=faculty_id) is not None

    def history(
        self,
        *,
        class_id: str,
        start_date: date | str,
        end_date: date | str,
        faculty_id: Optional[str] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceSummary]:
        start_date = coerce_date(start_date)
        end_date = coerce_date(end_date)
        require_date_range(start_date, end_date)
        return self._attendance.list_summaries(
            class_id=class_id,
            start_date=start_date,
            end_date=end_date,
            faculty_id=faculty_id,
            limit=int(limit),
        )


def _entry(student: Student, state: EffectiveStatus, remarks: Optional[str]) -> StudentAttendanceEntry:
    return StudentAttendanceEntry(
        student_id=student.student_id,
        roll_number=student.roll_number,
        name=student.name,
        email=student.email,
        state=state,
        remarks=(remarks or "").strip() or None,
    )
