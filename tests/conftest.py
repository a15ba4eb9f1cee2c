from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Optional

import pytest

from src.class_attendance.class_attendance.analytics.service import RangeAnalyticsService
from src.class_attendance.class_attendance.approvals.model import ApprovalRequest
from src.class_attendance.class_attendance.approvals.mysql_approval_repository import format_request_id
from src.class_attendance.class_attendance.approvals.service import ODApprovalWorkflow
from src.class_attendance.class_attendance.attendance.model import AttendanceRecord, AttendanceSummary
from src.class_attendance.class_attendance.attendance.service import AttendanceService
from src.class_attendance.class_attendance.core.enums import RequestStatus
from src.class_attendance.class_attendance.core.exceptions import AlreadyExists, HolidayExists
from src.class_attendance.class_attendance.gateway import AttendanceGateway
from src.class_attendance.class_attendance.holidays.model import Holiday
from src.class_attendance.class_attendance.holidays.service import HolidayService
from src.class_attendance.class_attendance.legacy.model import LegacyRosterRecord
from src.class_attendance.class_attendance.legacy.service import LegacyRosterStore
from src.class_attendance.class_attendance.reconciliation.service import ReconciliationResolver
from src.class_attendance.class_attendance.reconciliation.sources import (
    CurrentRecordSource,
    LegacyDayRangeSource,
    LegacyExactSource,
)
from src.class_attendance.class_attendance.roster.model import ClassContext, FacultyIdentity, Student


class InMemoryRoster:
    def __init__(self, students_by_class: Optional[dict[str, list[Student]]] = None):
        self.students_by_class = students_by_class or {}

    def list_enrolled(self, context: ClassContext):
        return list(self.students_by_class.get(context.class_id, []))


class InMemoryAttendance:
    """Unique on (class, date, faculty) with version compare-and-swap like the MySQL table."""

    def __init__(self):
        self._by_key: dict[tuple[str, date, str], AttendanceRecord] = {}
        self._next_id = 0
        self.stale_saves = 0

    def _key(self, class_id: str, attendance_date: date, faculty_id: str):
        return (class_id, attendance_date, faculty_id)

    def get(self, *, class_id, attendance_date, faculty_id):
        return self._by_key.get(self._key(class_id, attendance_date, faculty_id))

    def find_for_class(self, *, class_id, attendance_date):
        items = [r for (c, d, _), r in self._by_key.items() if c == class_id and d == attendance_date]
        return sorted(items, key=lambda r: r.record_id)

    def exists_for_class(self, *, class_id, attendance_date):
        return bool(self.find_for_class(class_id=class_id, attendance_date=attendance_date))

    def exists_for_department(self, *, department, attendance_date):
        return any(r.department == department and r.attendance_date == attendance_date for r in self._by_key.values())

    def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        key = self._key(record.class_id, record.attendance_date, record.faculty_id)
        if key in self._by_key:
            raise AlreadyExists("Attendance has already been marked for this class and date")
        self._next_id += 1
        stamp = datetime(2025, 3, 1, 9, 0) + timedelta(minutes=self._next_id)
        stored = replace(record, record_id=self._next_id, version=1, created_at=stamp, updated_at=stamp)
        self._by_key[key] = stored
        return stored

    def save(self, record: AttendanceRecord, *, expected_version: int):
        key = self._key(record.class_id, record.attendance_date, record.faculty_id)
        current = self._by_key.get(key)
        if current is None or current.record_id != record.record_id:
            return None
        if self.stale_saves > 0:
            self.stale_saves -= 1
            self._by_key[key] = replace(current, version=current.version + 1)
            return None
        if current.version != expected_version:
            return None
        stored = replace(record, version=expected_version + 1)
        self._by_key[key] = stored
        return stored

    def list_summaries(self, *, class_id, start_date, end_date, faculty_id=None, limit=200):
        items = [
            r
            for r in self._by_key.values()
            if r.class_id == class_id
            and start_date <= r.attendance_date <= end_date
            and (faculty_id is None or r.faculty_id == faculty_id)
        ]
        items.sort(key=lambda r: (r.attendance_date, -r.record_id), reverse=True)
        return [
            AttendanceSummary(
                record_id=r.record_id,
                class_id=r.class_id,
                attendance_date=r.attendance_date,
                faculty_id=r.faculty_id,
                status=r.status,
                totals=r.totals,
                notes=r.notes,
            )
            for r in items[:limit]
        ]

    def all(self) -> list[AttendanceRecord]:
        return list(self._by_key.values())


class InMemoryApprovals:
    def __init__(self):
        self.requests: dict[str, ApprovalRequest] = {}
        self._seq = 0

    def next_request_id(self, request_type):
        self._seq += 1
        return format_request_id(request_type, self._seq, at=datetime(2025, 3, 10, 8, 0, 0))

    def create(self, request: ApprovalRequest) -> None:
        self.requests[request.request_id] = replace(request, created_at=datetime(2025, 3, 10, 8, 0, 0))

    def get(self, request_id):
        return self.requests.get(request_id)

    def decide(self, *, request_id, status, decided_by, remarks=None):
        req = self.requests.get(request_id)
        if not req or req.status != RequestStatus.PENDING:
            return False
        self.requests[request_id] = replace(
            req,
            status=status,
            decided_by=decided_by,
            decided_at=datetime(2025, 3, 10, 12, 0, 0),
            remarks=remarks,
        )
        return True

    def list_by_status(self, *, status, request_type=None, department=None, limit=200):
        items = [
            r
            for r in self.requests.values()
            if r.status == status
            and (request_type is None or r.request_type == request_type)
            and (department is None or r.details.department == department)
        ]
        return items[:limit]

    def count_pending_by_type(self):
        counts: dict[str, int] = {}
        for r in self.requests.values():
            if r.status == RequestStatus.PENDING:
                counts[r.request_type.value] = counts.get(r.request_type.value, 0) + 1
        return counts

    def pending(self) -> list[ApprovalRequest]:
        return [r for r in self.requests.values() if r.status == RequestStatus.PENDING]


class InMemoryLegacy:
    def __init__(self, rows: Optional[list[LegacyRosterRecord]] = None):
        self.rows = list(rows or [])

    def add(self, row: LegacyRosterRecord) -> None:
        self.rows.append(row)

    def find_exact(self, *, class_assigned, department, recorded_at):
        for r in self.rows:
            if r.class_assigned == class_assigned and r.department == department and r.recorded_at == recorded_at:
                return r
        return None

    def find_between(self, *, class_assigned, department, start, end, exclude=()):
        hits = [
            r
            for r in self.rows
            if r.class_assigned == class_assigned
            and r.department == department
            and start <= r.recorded_at <= end
            and r.recorded_at not in exclude
        ]
        hits.sort(key=lambda r: (r.recorded_at, r.legacy_id))
        return hits[0] if hits else None

    def exists_between(self, *, department, start, end, class_assigned=None, exclude=()):
        return any(
            r.department == department
            and start <= r.recorded_at <= end
            and r.recorded_at not in exclude
            and (class_assigned is None or r.class_assigned == class_assigned)
            for r in self.rows
        )


class InMemoryHolidays:
    def __init__(self):
        self.rows: dict[int, Holiday] = {}
        self._next_id = 0

    def list_active_in_range(self, *, start_date, end_date, context):
        items = [
            h for h in self.rows.values() if h.applies_to(context) and start_date <= h.holiday_date <= end_date
        ]
        return sorted(items, key=lambda h: (h.holiday_date, h.holiday_id))

    def _live_with_key(self, holiday):
        for h in self.rows.values():
            if h.is_live and h.scope_key == holiday.scope_key:
                return h
        return None

    def find_live_by_key(self, holiday):
        return self._live_with_key(holiday)

    def get(self, holiday_id):
        return self.rows.get(int(holiday_id))

    def insert(self, holiday):
        # Stands in for the unique key on (scope columns, active_marker).
        if self._live_with_key(holiday):
            raise HolidayExists("Holiday already declared")
        self._next_id += 1
        stored = replace(holiday, holiday_id=self._next_id, created_at=datetime(2025, 3, 1, 8, 0, 0))
        self.rows[self._next_id] = stored
        return stored

    def soft_delete(self, *, holiday_id, deleted_by):
        h = self.rows.get(int(holiday_id))
        if h is None or h.is_deleted:
            return False
        self.rows[int(holiday_id)] = replace(
            h,
            is_deleted=True,
            is_active=False,
            deleted_at=datetime(2025, 3, 2, 8, 0, 0),
            updated_by=deleted_by,
        )
        return True

    def update_reason(self, *, holiday_id, reason, updated_by):
        h = self.rows.get(int(holiday_id))
        if h is None or not h.is_live:
            return False
        self.rows[int(holiday_id)] = replace(h, reason=reason, updated_by=updated_by)
        return True


@dataclass
class Engine:
    roster: InMemoryRoster
    attendance_repo: InMemoryAttendance
    approvals_repo: InMemoryApprovals
    legacy_repo: InMemoryLegacy
    holidays_repo: InMemoryHolidays
    legacy_store: LegacyRosterStore
    workflow: ODApprovalWorkflow
    holidays: HolidayService
    attendance: AttendanceService
    resolver: ReconciliationResolver
    analytics: RangeAnalyticsService
    gateway: AttendanceGateway


def build_engine(students_by_class: dict[str, list[Student]], *, max_workers: int = 1) -> Engine:
    roster = InMemoryRoster(students_by_class)
    attendance_repo = InMemoryAttendance()
    approvals_repo = InMemoryApprovals()
    legacy_repo = InMemoryLegacy()
    holidays_repo = InMemoryHolidays()

    legacy_store = LegacyRosterStore(legacy_repo, tz_name="Asia/Kolkata")
    workflow = ODApprovalWorkflow(approvals_repo, attendance_repo)
    holidays = HolidayService(holidays_repo, attendance_repo, legacy_store)
    attendance = AttendanceService(attendance_repo, roster, holidays, workflow)
    current = CurrentRecordSource(attendance_repo)
    resolver = ReconciliationResolver(
        [current, LegacyExactSource(legacy_store), LegacyDayRangeSource(legacy_store)],
        roster,
        remarks_source=current,
    )
    analytics = RangeAnalyticsService(resolver, holidays, roster, max_workers=max_workers)
    gateway = AttendanceGateway(
        attendance=attendance,
        holidays=holidays,
        workflow=workflow,
        resolver=resolver,
        analytics=analytics,
    )
    return Engine(
        roster=roster,
        attendance_repo=attendance_repo,
        approvals_repo=approvals_repo,
        legacy_repo=legacy_repo,
        holidays_repo=holidays_repo,
        legacy_store=legacy_store,
        workflow=workflow,
        holidays=holidays,
        attendance=attendance,
        resolver=resolver,
        analytics=analytics,
        gateway=gateway,
    )


@pytest.fixture
def context() -> ClassContext:
    return ClassContext(department="CSE", batch_year="CSE2024", year="2", semester_name="Sem3", section="A")


@pytest.fixture
def other_context() -> ClassContext:
    return ClassContext(department="CSE", batch_year="CSE2024", year="2", semester_name="Sem3", section="B")


@pytest.fixture
def faculty() -> FacultyIdentity:
    return FacultyIdentity(faculty_id="F001", department="CSE")


@pytest.fixture
def students() -> list[Student]:
    return [
        Student(student_id="S1", roll_number="21CS001", name="Asha", email="asha@college.edu"),
        Student(student_id="S2", roll_number="21CS002", name="Bala"),
        Student(student_id="S3", roll_number="21CS003", name="Chitra"),
    ]


@pytest.fixture
def engine(context, other_context, students) -> Engine:
    return build_engine({context.class_id: students, other_context.class_id: list(students)})


@pytest.fixture
def build(context, other_context, students):
    """Factory for engines with a custom roster or worker count."""

    def _build(roster: Optional[list[Student]] = None, *, max_workers: int = 1) -> Engine:
        chosen = students if roster is None else roster
        return build_engine({context.class_id: chosen, other_context.class_id: list(chosen)}, max_workers=max_workers)

    return _build
