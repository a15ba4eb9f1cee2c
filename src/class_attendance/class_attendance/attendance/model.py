from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from ..core.enums import EntryStatus, RecordStatus
from ..core.exceptions import TotalsMismatch, ValidationError

_CONCRETE = (EntryStatus.PRESENT, EntryStatus.ABSENT)


@dataclass(frozen=True)
class EffectiveStatus:
    """``(status, pendingOD)`` as a single tagged value.

    ``Present | Absent | OD | PendingOD(prior)``: when ``pending_request_id``
    is set, ``status`` holds the prior concrete value and OD awaits approval.
    A pending OD can never carry ``status == od``.
    """

    status: EntryStatus
    pending_request_id: Optional[str] = None

    def __post_init__(self):
        if self.pending_request_id is not None and self.status not in _CONCRETE:
            raise ValueError("A pending OD must report its prior present/absent status")
        if self.pending_request_id is not None and not str(self.pending_request_id).strip():
            raise ValueError("A pending OD must reference its approval request")

    @classmethod
    def present(cls) -> "EffectiveStatus":
        return cls(EntryStatus.PRESENT)

    @classmethod
    def absent(cls) -> "EffectiveStatus":
        return cls(EntryStatus.ABSENT)

    @classmethod
    def od(cls) -> "EffectiveStatus":
        return cls(EntryStatus.OD)

    @classmethod
    def pending_od(cls, prior: EntryStatus, request_id: str) -> "EffectiveStatus":
        return cls(EntryStatus(prior), request_id)

    @classmethod
    def from_columns(cls, status: str, pending_od: bool, od_request_id: Optional[str]) -> "EffectiveStatus":
        if pending_od:
            return cls.pending_od(EntryStatus(status), str(od_request_id or ""))
        return cls(EntryStatus(status))

    @property
    def is_pending(self) -> bool:
        return self.pending_request_id is not None

    @property
    def is_od(self) -> bool:
        return self.status == EntryStatus.OD

    @property
    def concrete(self) -> Optional[EntryStatus]:
        """Present/absent value to fall back to, ``None`` for an approved OD."""
        return self.status if self.status in _CONCRETE else None


@dataclass(frozen=True)
class StudentAttendanceEntry:
    student_id: str
    roll_number: str
    name: str
    state: EffectiveStatus
    email: Optional[str] = None
    remarks: Optional[str] = None

    @property
    def status(self) -> EntryStatus:
        return self.state.status

    @property
    def pending_od(self) -> bool:
        return self.state.is_pending

    @property
    def od_request_id(self) -> Optional[str]:
        return self.state.pending_request_id


@dataclass(frozen=True)
class AttendanceTotals:
    total_students: int = 0
    total_present: int = 0
    total_absent: int = 0
    total_od: int = 0

    @classmethod
    def from_entries(cls, entries: Iterable[StudentAttendanceEntry]) -> "AttendanceTotals":
        present = absent = od = total = 0
        for e in entries:
            total += 1
            if e.pending_od or e.status == EntryStatus.OD:
                od += 1
            elif e.status == EntryStatus.PRESENT:
                present += 1
            else:
                absent += 1
        return cls(total_students=total, total_present=present, total_absent=absent, total_od=od)

    @property
    def percentage(self) -> float:
        if self.total_students == 0:
            return 0.0
        value = Decimal(self.total_present) * 100 / Decimal(self.total_students)
        return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class AttendanceRecord:
    """Canonical class-day attendance record (one per class + date + faculty)."""

    class_id: str
    attendance_date: date
    faculty_id: str
    department: str
    entries: tuple[StudentAttendanceEntry, ...]
    totals: AttendanceTotals
    status: RecordStatus
    created_by: str
    updated_by: str
    notes: str = ""
    record_id: Optional[int] = None
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        seen: set[str] = set()
        for e in self.entries:
            if e.student_id in seen:
                raise ValidationError("Duplicate student in attendance record", details={"student_id": e.student_id})
            seen.add(e.student_id)

        derived = AttendanceTotals.from_entries(self.entries)
        if self.totals != derived:
            raise TotalsMismatch(
                "Attendance totals do not match entries",
                details={"stored": self.totals, "derived": derived},
            )

    @classmethod
    def build(
        cls,
        *,
        class_id: str,
        attendance_date: date,
        faculty_id: str,
        department: str,
        entries: Sequence[StudentAttendanceEntry],
        status: RecordStatus,
        actor: str,
        notes: str = "",
    ) -> "AttendanceRecord":
        entries = tuple(entries)
        return cls(
            class_id=class_id,
            attendance_date=attendance_date,
            faculty_id=faculty_id,
            department=department,
            entries=entries,
            totals=AttendanceTotals.from_entries(entries),
            status=status,
            created_by=actor,
            updated_by=actor,
            notes=notes,
        )

    def with_entries(
        self,
        entries: Sequence[StudentAttendanceEntry],
        *,
        status: RecordStatus,
        actor: str,
        notes: Optional[str] = None,
    ) -> "AttendanceRecord":
        entries = tuple(entries)
        return replace(
            self,
            entries=entries,
            totals=AttendanceTotals.from_entries(entries),
            status=status,
            updated_by=actor,
            notes=self.notes if notes is None else notes,
        )

    @property
    def has_pending_od(self) -> bool:
        return any(e.pending_od for e in self.entries)

    def entry_for_request(self, request_id: str) -> Optional[StudentAttendanceEntry]:
        for e in self.entries:
            if e.od_request_id == request_id:
                return e
        return None

    def entry_for_student(self, student_id: str) -> Optional[StudentAttendanceEntry]:
        for e in self.entries:
            if e.student_id == student_id:
                return e
        return None


@dataclass(frozen=True)
class SubmittedEntry:
    """Faculty-submitted status for one student."""

    student_id: str
    status: EntryStatus
    remarks: Optional[str] = None


@dataclass(frozen=True)
class AttendanceSummary:
    """Read-model for history listings."""

    record_id: int
    class_id: str
    attendance_date: date
    faculty_id: str
    status: RecordStatus
    totals: AttendanceTotals = field(default_factory=AttendanceTotals)
    notes: str = ""
