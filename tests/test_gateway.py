from __future__ import annotations

from datetime import date

import pytest

from src.class_attendance.class_attendance.core.exceptions import StorageError

DAY = date(2025, 3, 10)


def _students(*pairs):
    return [{"studentId": sid, "status": status} for sid, status in pairs]


def test_mark_returns_typed_success(engine, context, faculty):
    result = engine.gateway.mark_attendance(
        context=context,
        attendance_date="2025-03-10",
        faculty=faculty,
        entries=_students(("S1", "present"), ("S2", "Absent"), ("S3", "od")),
    )

    assert result.ok is True
    assert result.error is None
    assert result.data.totals.total_od == 1


def test_business_failures_become_error_results(engine, context, faculty):
    engine.gateway.declare_holiday(context=context, holiday_date="2025-03-10", reason="Rain", scope="class", declared_by="HOD1")

    conflict = engine.gateway.mark_attendance(context=context, attendance_date=DAY, faculty=faculty, entries=_students(("S1", "present")))
    bad_date = engine.gateway.mark_attendance(context=context, attendance_date="10/03/2025", faculty=faculty, entries=_students(("S1", "present")))
    bad_status = engine.gateway.mark_attendance(
        context=context,
        attendance_date="2025-03-11",
        faculty=faculty,
        entries=_students(("S1", "late")),
    )
    missing = engine.gateway.mark_attendance(context=context, attendance_date="2025-03-11", faculty=faculty, entries=None)

    assert conflict.ok is False and conflict.error_code == "HOLIDAY_CONFLICT"
    assert bad_date.error_code == "VALIDATION_ERROR"
    assert bad_status.error_code == "VALIDATION_ERROR"
    assert missing.error_code == "VALIDATION_ERROR"


def test_duplicate_and_immutable_history_results(engine, context, faculty):
    engine.gateway.mark_attendance(context=context, attendance_date=DAY, faculty=faculty, entries=_students(("S1", "present")))

    dup = engine.gateway.mark_attendance(context=context, attendance_date=DAY, faculty=faculty, entries=_students(("S1", "present")))
    old = engine.gateway.edit_attendance(
        class_id=context.class_id,
        attendance_date=DAY,
        faculty=faculty,
        entries=_students(("S1", "absent")),
        today=date(2025, 3, 11),
    )

    assert dup.error_code == "ATTENDANCE_ALREADY_EXISTS"
    assert old.error_code == "IMMUTABLE_HISTORY"


def test_holiday_operations(engine, context):
    declared = engine.gateway.declare_holiday(
        context=context,
        holiday_date="2025-03-12",
        reason="Fest",
        scope="GLOBAL",
        declared_by="HOD1",
    )
    again = engine.gateway.declare_holiday(context=context, holiday_date="2025-03-12", reason="Fest", scope="global", declared_by="HOD1")
    bad_scope = engine.gateway.declare_holiday(context=context, holiday_date="2025-03-13", reason="x", scope="campus", declared_by="HOD1")

    assert declared.ok
    assert again.error_code == "HOLIDAY_EXISTS"
    assert bad_scope.error_code == "VALIDATION_ERROR"

    check = engine.gateway.check_holiday(context=context, holiday_date="2025-03-12")
    assert check.data.is_holiday is True
    listed = engine.gateway.list_holidays(context=context, start_date="2025-03-01", end_date="2025-03-31")
    assert [h.reason for h in listed.data] == ["Fest"]

    assert engine.gateway.revoke_holiday(holiday_id=declared.data.holiday_id, actor="HOD1").ok
    assert engine.gateway.revoke_holiday(holiday_id=declared.data.holiday_id, actor="HOD1").error_code == "NOT_FOUND"


def test_get_attendance_and_range(engine, context, faculty):
    engine.gateway.mark_attendance(context=context, attendance_date=DAY, faculty=faculty, entries=_students(("S1", "present")))
    engine.gateway.mark_attendance(
        context=context,
        attendance_date="2025-03-12",
        faculty=faculty,
        entries=_students(("S1", "absent")),
    )

    day = engine.gateway.get_attendance(context=context, attendance_date="2025-03-10")
    missing = engine.gateway.get_attendance(context=context, attendance_date="2025-03-11")
    span = engine.gateway.get_attendance_range(context=context, start_date="2025-03-10", end_date="2025-03-16")

    assert day.ok and day.data.source == "current"
    assert missing.error_code == "NOT_FOUND"
    assert [r.day for r in span.data] == [DAY, date(2025, 3, 12)]


def test_resolve_od_request_replay_is_a_result(engine, context, faculty):
    engine.gateway.mark_attendance(context=context, attendance_date=DAY, faculty=faculty, entries=_students(("S3", "od")))
    request_id = engine.approvals_repo.pending()[0].request_id

    first = engine.gateway.resolve_od_request(request_id=request_id, outcome="approved", decided_by="HOD1")
    second = engine.gateway.resolve_od_request(request_id=request_id, outcome="approved", decided_by="HOD1")
    bogus = engine.gateway.resolve_od_request(request_id=request_id, outcome="maybe", decided_by="HOD1")

    assert first.ok and first.data.entry_updated
    assert second.error_code == "APPROVAL_REPLAY"
    assert bogus.error_code == "VALIDATION_ERROR"


def test_storage_failures_propagate(engine, context, faculty, monkeypatch):
    def _boom(**kwargs):
        raise StorageError("connection refused")

    monkeypatch.setattr(engine.attendance_repo, "get", _boom)

    with pytest.raises(StorageError):
        engine.gateway.mark_attendance(context=context, attendance_date=DAY, faculty=faculty, entries=_students(("S1", "present")))
