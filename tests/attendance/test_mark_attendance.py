from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from src.class_attendance.class_attendance.attendance.model import SubmittedEntry
from src.class_attendance.class_attendance.core.constants import WRITE_FAILED_REMARK
from src.class_attendance.class_attendance.core.enums import EntryStatus, HolidayScope, RecordStatus, RequestStatus
from src.class_attendance.class_attendance.core.exceptions import (
    AlreadyExists,
    HolidayConflict,
    InvalidRoster,
    StorageError,
    ValidationError,
)
from src.class_attendance.class_attendance.roster.model import FacultyIdentity, Student

DAY = date(2025, 3, 10)


def _submit(*pairs):
    return [SubmittedEntry(student_id=sid, status=EntryStatus(status)) for sid, status in pairs]


def test_create_with_od_opens_one_request_and_marks_pending(engine, context, faculty):
    record = engine.attendance.mark(
        context=context,
        attendance_date=DAY,
        faculty=faculty,
        entries=_submit(("S1", "present"), ("S2", "absent"), ("S3", "od")),
    )

    assert record.class_id == "CSE2024_2_Sem3_A"
    assert record.totals.total_students == 3
    assert record.totals.total_present == 1
    assert record.totals.total_absent == 1
    assert record.status == RecordStatus.PENDING_OD_APPROVAL

    pending = engine.approvals_repo.pending()
    assert len(pending) == 1
    od_entry = record.entries[2]
    assert od_entry.pending_od is True
    assert od_entry.status == EntryStatus.ABSENT
    assert od_entry.od_request_id == pending[0].request_id
    assert pending[0].details.student_roll_number == "21CS003"
    assert pending[0].details.class_id == context.class_id


def test_create_without_od_is_finalized(engine, context, faculty):
    record = engine.attendance.mark(
        context=context,
        attendance_date=DAY,
        faculty=faculty,
        entries=_submit(("S1", "present"), ("S2", "present"), ("S3", "absent")),
        notes="  lab session ",
    )

    assert record.status == RecordStatus.FINALIZED
    assert record.notes == "lab session"
    assert engine.approvals_repo.pending() == []


def test_create_on_global_holiday_conflicts(engine, context, other_context, faculty):
    engine.holidays.declare(day=DAY, context=context, reason="Founders day", scope=HolidayScope.GLOBAL, declared_by="HOD1")

    for ctx in (context, other_context):
        with pytest.raises(HolidayConflict):
            engine.attendance.mark(context=ctx, attendance_date=DAY, faculty=faculty, entries=_submit(("S1", "present")))

    assert engine.attendance_repo.all() == []


def test_holiday_is_checked_before_roster(engine, context, faculty):
    engine.holidays.declare(day=DAY, context=context, reason="Rain", scope=HolidayScope.CLASS, declared_by="HOD1")

    with pytest.raises(HolidayConflict):
        engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=_submit(("ZZZ", "present")))


def test_unknown_inactive_and_duplicate_students_are_invalid_roster(build, context, faculty, students):
    eng = build(students + [Student(student_id="S4", roll_number="21CS004", name="Dev", is_active=False)])

    with pytest.raises(InvalidRoster) as exc:
        eng.attendance.mark(
            context=context,
            attendance_date=DAY,
            faculty=faculty,
            entries=_submit(("S1", "present"), ("S1", "absent"), ("S4", "present"), ("NOPE", "absent")),
        )

    assert exc.value.details == {"unknown": ["NOPE"], "inactive": ["S4"], "duplicated": ["S1"]}
    assert eng.approvals_repo.requests == {}


def test_second_create_for_same_key_already_exists(engine, context, faculty):
    engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=_submit(("S1", "present")))

    with pytest.raises(AlreadyExists):
        engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=_submit(("S1", "absent")))


def test_other_faculty_may_mark_same_class_day(engine, context, faculty):
    engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=_submit(("S1", "present")))
    other = FacultyIdentity(faculty_id="F002", department="CSE")

    record = engine.attendance.mark(context=context, attendance_date=DAY, faculty=other, entries=_submit(("S1", "absent")))

    assert record.faculty_id == "F002"
    assert len(engine.attendance_repo.all()) == 2


def test_insert_lost_to_race_withdraws_opened_requests(engine, context, faculty, monkeypatch):
    original_get = engine.attendance_repo.get
    engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=_submit(("S1", "present")))
    # Simulate the pre-check running before the competing insert committed.
    monkeypatch.setattr(engine.attendance_repo, "get", lambda **kw: None)

    with pytest.raises(AlreadyExists):
        engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=_submit(("S3", "od")))

    monkeypatch.setattr(engine.attendance_repo, "get", original_get)
    statuses = [r.status for r in engine.approvals_repo.requests.values()]
    assert statuses == [RequestStatus.REJECTED]
    assert engine.approvals_repo.pending() == []


def test_storage_failure_on_insert_withdraws_opened_requests(engine, context, faculty, monkeypatch):
    def _down(record):
        raise StorageError("lost connection")

    monkeypatch.setattr(engine.attendance_repo, "insert", _down)

    with pytest.raises(StorageError):
        engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=_submit(("S1", "od"), ("S2", "od")))

    assert engine.attendance_repo.all() == []
    assert engine.approvals_repo.pending() == []
    assert {r.remarks for r in engine.approvals_repo.requests.values()} == {WRITE_FAILED_REMARK}


def test_failure_opening_second_request_withdraws_the_first(engine, context, faculty, monkeypatch):
    open_request = engine.workflow.open_request
    calls = []

    def _flaky(**kwargs):
        calls.append(kwargs["student"].student_id)
        if len(calls) == 2:
            raise StorageError("lost connection")
        return open_request(**kwargs)

    monkeypatch.setattr(engine.workflow, "open_request", _flaky)

    with pytest.raises(StorageError):
        engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=_submit(("S1", "od"), ("S2", "od")))

    assert len(engine.approvals_repo.requests) == 1
    assert engine.approvals_repo.pending() == []


def test_request_department_comes_from_the_class(engine, context, faculty):
    visiting = FacultyIdentity(faculty_id="F900", department="MATH")

    engine.attendance.mark(context=context, attendance_date=DAY, faculty=visiting, entries=_submit(("S1", "od")))

    (request,) = engine.approvals_repo.pending()
    assert request.details.department == "CSE"
    assert request.requested_by == "F900"


def test_inactive_faculty_rejected(engine, context, faculty):
    with pytest.raises(ValidationError):
        engine.attendance.mark(
            context=context,
            attendance_date=DAY,
            faculty=replace(faculty, is_active=False),
            entries=_submit(("S1", "present")),
        )


def test_empty_submission_rejected(engine, context, faculty):
    with pytest.raises(ValidationError):
        engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=[])


def test_string_dates_are_strictly_parsed(engine, context, faculty):
    with pytest.raises(ValidationError):
        engine.attendance.mark(context=context, attendance_date="2025-3-10", faculty=faculty, entries=_submit(("S1", "present")))

    record = engine.attendance.mark(
        context=context,
        attendance_date="2025-03-10",
        faculty=faculty,
        entries=_submit(("S1", "present")),
    )
    assert record.attendance_date == DAY


def test_history_and_is_marked(engine, context, faculty):
    engine.attendance.mark(context=context, attendance_date=DAY, faculty=faculty, entries=_submit(("S1", "present")))
    engine.attendance.mark(
        context=context,
        attendance_date=date(2025, 3, 11),
        faculty=faculty,
        entries=_submit(("S1", "absent")),
    )

    history = engine.attendance.history(class_id=context.class_id, start_date="2025-03-01", end_date="2025-03-31")

    assert [h.attendance_date for h in history] == [date(2025, 3, 11), DAY]
    assert engine.attendance.is_marked(class_id=context.class_id, attendance_date=DAY, faculty_id="F001") is True
    assert engine.attendance.is_marked(class_id=context.class_id, attendance_date=DAY, faculty_id="F999") is False


def test_history_rejects_inverted_range(engine, context):
    with pytest.raises(ValidationError):
        engine.attendance.history(class_id=context.class_id, start_date="2025-03-31", end_date="2025-03-01")
