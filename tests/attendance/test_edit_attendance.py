from __future__ import annotations

from datetime import date

import pytest

from src.class_attendance.class_attendance.attendance.model import SubmittedEntry
from src.class_attendance.class_attendance.core.constants import RE_MARK_REMARK, WRITE_FAILED_REMARK
from src.class_attendance.class_attendance.core.enums import EntryStatus, RecordStatus, RequestStatus
from src.class_attendance.class_attendance.core.exceptions import (
    ConcurrentUpdate,
    ImmutableHistory,
    InvalidRoster,
    NotFound,
    StorageError,
)
from src.class_attendance.class_attendance.roster.model import Student

TODAY = date(2025, 3, 10)
YESTERDAY = date(2025, 3, 9)


def _submit(*pairs):
    return [SubmittedEntry(student_id=sid, status=EntryStatus(status)) for sid, status in pairs]


def _mark(engine, context, faculty, *pairs, day=TODAY):
    return engine.attendance.mark(context=context, attendance_date=day, faculty=faculty, entries=_submit(*pairs))


def _edit(engine, context, faculty, *pairs, day=TODAY, notes=None):
    return engine.attendance.edit(
        class_id=context.class_id,
        attendance_date=day,
        faculty=faculty,
        entries=_submit(*pairs),
        notes=notes,
        today=TODAY,
    )


def test_edit_of_past_day_is_immutable(engine, context, faculty):
    _mark(engine, context, faculty, ("S1", "present"), day=YESTERDAY)

    with pytest.raises(ImmutableHistory):
        _edit(engine, context, faculty, ("S1", "absent"), day=YESTERDAY)


def test_immutable_history_is_reported_before_not_found(engine, context, faculty):
    with pytest.raises(ImmutableHistory):
        _edit(engine, context, faculty, ("S1", "absent"), day=YESTERDAY)


def test_edit_missing_record_not_found(engine, context, faculty):
    with pytest.raises(NotFound):
        _edit(engine, context, faculty, ("S1", "absent"))


def test_edit_with_one_new_od_opens_exactly_one_request(engine, context, faculty):
    before = _mark(engine, context, faculty, ("S1", "present"), ("S2", "absent"), ("S3", "present"))

    after = _edit(engine, context, faculty, ("S1", "present"), ("S2", "absent"), ("S3", "od"))

    assert len(engine.approvals_repo.pending()) == 1
    assert after.entries[0] == before.entries[0]
    assert after.entries[1] == before.entries[1]
    assert after.entries[2].pending_od is True
    assert after.entries[2].status == EntryStatus.PRESENT
    assert after.status == RecordStatus.PENDING_OD_APPROVAL
    assert after.version == before.version + 1


def test_requesting_od_again_does_not_open_a_second_request(engine, context, faculty):
    _mark(engine, context, faculty, ("S1", "od"))
    first_id = engine.approvals_repo.pending()[0].request_id

    after = _edit(engine, context, faculty, ("S1", "od"))

    assert len(engine.approvals_repo.requests) == 1
    assert after.entries[0].od_request_id == first_id


def test_approved_od_stays_untouched_on_od_resubmission(engine, context, faculty):
    _mark(engine, context, faculty, ("S1", "od"))
    request_id = engine.approvals_repo.pending()[0].request_id
    engine.workflow.apply_decision(request_id=request_id, outcome="approved", decided_by="HOD1")

    after = _edit(engine, context, faculty, ("S1", "od"))

    assert after.entries[0].status == EntryStatus.OD
    assert after.entries[0].pending_od is False
    assert len(engine.approvals_repo.requests) == 1


def test_re_mark_of_pending_entry_reverts_and_closes_request(engine, context, faculty):
    _mark(engine, context, faculty, ("S1", "od"), ("S2", "present"))
    request_id = engine.approvals_repo.pending()[0].request_id

    after = _edit(engine, context, faculty, ("S1", "present"))

    assert after.entries[0].status == EntryStatus.PRESENT
    assert after.entries[0].pending_od is False
    assert after.status == RecordStatus.MODIFIED
    closed = engine.approvals_repo.get(request_id)
    assert closed.status == RequestStatus.REJECTED
    assert closed.remarks == RE_MARK_REMARK


def test_omitted_entries_are_kept_and_new_students_appended(build, context, faculty, students):
    eng = build(students + [Student(student_id="S4", roll_number="21CS004", name="Dev")])
    _mark(eng, context, faculty, ("S1", "present"), ("S2", "absent"))

    after = _edit(eng, context, faculty, ("S4", "present"), ("S2", "present"))

    assert [e.student_id for e in after.entries] == ["S1", "S2", "S4"]
    assert [e.status for e in after.entries] == [EntryStatus.PRESENT, EntryStatus.PRESENT, EntryStatus.PRESENT]
    assert after.totals.total_students == 3


def test_new_student_requesting_od_uses_absent_prior(build, context, faculty, students):
    eng = build(students + [Student(student_id="S4", roll_number="21CS004", name="Dev")])
    _mark(eng, context, faculty, ("S1", "present"))

    after = _edit(eng, context, faculty, ("S4", "od"))

    assert after.entries[1].status == EntryStatus.ABSENT
    assert after.entries[1].pending_od is True


def test_notes_replaced_only_when_supplied(engine, context, faculty):
    engine.attendance.mark(
        context=context,
        attendance_date=TODAY,
        faculty=faculty,
        entries=_submit(("S1", "present")),
        notes="first",
    )

    kept = _edit(engine, context, faculty, ("S1", "absent"))
    assert kept.notes == "first"

    replaced = _edit(engine, context, faculty, ("S1", "present"), notes="second")
    assert replaced.notes == "second"


def test_edit_roster_is_validated(engine, context, faculty):
    _mark(engine, context, faculty, ("S1", "present"))

    with pytest.raises(InvalidRoster):
        _edit(engine, context, faculty, ("S9", "present"))


def test_lost_race_raises_and_withdraws_new_requests(engine, context, faculty):
    _mark(engine, context, faculty, ("S1", "present"))
    engine.attendance_repo.stale_saves = 1

    with pytest.raises(ConcurrentUpdate):
        _edit(engine, context, faculty, ("S1", "od"))

    assert engine.approvals_repo.pending() == []
    stored = engine.attendance_repo.get(class_id=context.class_id, attendance_date=TODAY, faculty_id="F001")
    assert stored.entries[0].status == EntryStatus.PRESENT
    assert stored.entries[0].pending_od is False


def test_storage_failure_on_save_withdraws_new_requests(engine, context, faculty, monkeypatch):
    _mark(engine, context, faculty, ("S1", "present"), ("S2", "absent"))

    def _down(record, *, expected_version):
        raise StorageError("lost connection")

    monkeypatch.setattr(engine.attendance_repo, "save", _down)

    with pytest.raises(StorageError):
        _edit(engine, context, faculty, ("S1", "od"), ("S2", "od"))

    assert engine.approvals_repo.pending() == []
    assert {r.remarks for r in engine.approvals_repo.requests.values()} == {WRITE_FAILED_REMARK}
    stored = engine.attendance_repo.get(class_id=context.class_id, attendance_date=TODAY, faculty_id="F001")
    assert [e.pending_od for e in stored.entries] == [False, False]
