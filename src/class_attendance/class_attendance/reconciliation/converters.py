from __future__ import annotations

from datetime import date

from ..attendance.model import AttendanceRecord
from ..core.enums import EntryStatus
from ..legacy.model import LegacyRosterRecord
from .model import DailySnapshot

SOURCE_CURRENT = "current"
SOURCE_LEGACY = "legacy"


def snapshot_from_record(record: AttendanceRecord) -> DailySnapshot:
    """Pending OD entries land in the set of their prior status."""

    present: set[str] = set()
    absent: set[str] = set()
    od: set[str] = set()
    remarks: dict[str, str] = {}

    for e in record.entries:
        if e.status == EntryStatus.OD:
            od.add(e.roll_number)
        elif e.status == EntryStatus.PRESENT:
            present.add(e.roll_number)
        else:
            absent.add(e.roll_number)
        if e.remarks:
            remarks[e.roll_number] = e.remarks

    return DailySnapshot(
        class_id=record.class_id,
        day=record.attendance_date,
        source=SOURCE_CURRENT,
        present=frozenset(present),
        absent=frozenset(absent),
        od=frozenset(od),
        remarks=remarks,
        marked_by=record.updated_by or record.faculty_id,
        timestamp=record.updated_at or record.created_at,
    )


def snapshot_from_legacy(legacy: LegacyRosterRecord, day: date) -> DailySnapshot:
    present, absent, od = legacy.roll_sets()
    return DailySnapshot(
        class_id=legacy.class_assigned,
        day=day,
        source=SOURCE_LEGACY,
        present=present,
        absent=absent,
        od=od,
        marked_by=legacy.faculty_id,
        timestamp=legacy.updated_at or legacy.recorded_at,
    )


def with_remarks_from(snapshot: DailySnapshot, donor: DailySnapshot) -> DailySnapshot:
    """Copy free-text remarks only; status sets stay as they are."""

    if not donor.remarks:
        return snapshot
    merged = dict(donor.remarks)
    merged.update(snapshot.remarks)
    return DailySnapshot(
        class_id=snapshot.class_id,
        day=snapshot.day,
        source=snapshot.source,
        present=snapshot.present,
        absent=snapshot.absent,
        od=snapshot.od,
        remarks=merged,
        marked_by=snapshot.marked_by,
        timestamp=snapshot.timestamp,
    )
