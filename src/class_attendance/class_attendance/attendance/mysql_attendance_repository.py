from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import RecordStatus
from ..core.exceptions import AlreadyExists
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, normalize_mysql_date, placeholders
from .model import AttendanceRecord, AttendanceSummary, AttendanceTotals, EffectiveStatus, StudentAttendanceEntry
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_RECORD_COLUMNS = """
    record_id, class_id, attendance_date, faculty_id, department,
    total_students, total_present, total_absent, total_od,
    status, notes, created_by, updated_by, version, created_at, updated_at
"""


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _load_entries(cur, record_ids: Sequence[int]) -> dict[int, list[StudentAttendanceEntry]]:
        out: dict[int, list[StudentAttendanceEntry]] = {int(rid): [] for rid in record_ids}
        if not record_ids:
            return out

        cur.execute(
            f"""
            SELECT record_id, position, student_id, roll_number, name, email,
                   status, pending_od, od_request_id, remarks
            FROM attendance_entries
            WHERE record_id IN ({placeholders(record_ids)})
            ORDER BY record_id ASC, position ASC
            """,
            tuple(int(rid) for rid in record_ids),
        )
        for r in fetchall(cur):
            out[int(r["record_id"])].append(
                StudentAttendanceEntry(
                    student_id=str(r["student_id"]),
                    roll_number=r["roll_number"],
                    name=r["name"],
                    email=r.get("email"),
                    remarks=r.get("remarks"),
                    state=EffectiveStatus.from_columns(r["status"], bool(r["pending_od"]), r.get("od_request_id")),
                )
            )
        return out

    @staticmethod
    def _to_record(r: dict, entries: list[StudentAttendanceEntry]) -> AttendanceRecord:
        return AttendanceRecord(
            record_id=int(r["record_id"]),
            class_id=r["class_id"],
            attendance_date=normalize_mysql_date(r["attendance_date"]),
            faculty_id=str(r["faculty_id"]),
            department=r["department"],
            entries=tuple(entries),
            totals=AttendanceTotals(
                total_students=int(r["total_students"]),
                total_present=int(r["total_present"]),
                total_absent=int(r["total_absent"]),
                total_od=int(r["total_od"]),
            ),
            status=RecordStatus(r["status"]),
            notes=r.get("notes") or "",
            created_by=str(r["created_by"]),
            updated_by=str(r["updated_by"]),
            version=int(r["version"]),
            created_at=r.get("created_at"),
            updated_at=r.get("updated_at"),
        )

    @staticmethod
    def _insert_entries(cur, record_id: int, record: AttendanceRecord) -> None:
        if not record.entries:
            return
        cur.executemany(
            """
            INSERT INTO attendance_entries(
                record_id, position, student_id, roll_number, name, email,
                status, pending_od, od_request_id, remarks
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            [
                (
                    int(record_id),
                    position,
                    e.student_id,
                    e.roll_number,
                    e.name,
                    e.email,
                    e.status.value,
                    1 if e.pending_od else 0,
                    e.od_request_id,
                    e.remarks,
                )
                for position, e in enumerate(record.entries)
            ],
        )

    def get(self, *, class_id: str, attendance_date: date, faculty_id: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE class_id=%s AND attendance_date=%s AND faculty_id=%s
                """,
                (class_id, attendance_date, faculty_id),
            )
            r = fetchone(cur)
            if not r:
                return None
            entries = self._load_entries(cur, [int(r["record_id"])])
            return self._to_record(r, entries[int(r["record_id"])])

    def find_for_class(self, *, class_id: str, attendance_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE class_id=%s AND attendance_date=%s
                ORDER BY created_at ASC, record_id ASC
                """,
                (class_id, attendance_date),
            )
            rows = fetchall(cur)
            entries = self._load_entries(cur, [int(r["record_id"]) for r in rows])
            return [self._to_record(r, entries[int(r["record_id"])]) for r in rows]

    def exists_for_class(self, *, class_id: str, attendance_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS hit FROM attendance_records WHERE class_id=%s AND attendance_date=%s LIMIT 1",
                (class_id, attendance_date),
            )
            return fetchone(cur) is not None

    def exists_for_department(self, *, department: str, attendance_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS hit FROM attendance_records WHERE department=%s AND attendance_date=%s LIMIT 1",
                (department, attendance_date),
            )
            return fetchone(cur) is not None

    def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        class_id, attendance_date, faculty_id, department,
                        total_students, total_present, total_absent, total_od,
                        status, notes, created_by, updated_by, version
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        record.class_id,
                        record.attendance_date,
                        record.faculty_id,
                        record.department,
                        record.totals.total_students,
                        record.totals.total_present,
                        record.totals.total_absent,
                        record.totals.total_od,
                        record.status.value,
                        record.notes,
                        record.created_by,
                        record.updated_by,
                        1,
                    ),
                )
                record_id = int(cur.lastrowid)
                self._insert_entries(cur, record_id, record)
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise AlreadyExists(
                    "Attendance has already been marked for this class and date",
                    details={"class_id": record.class_id, "date": record.attendance_date.isoformat()},
                ) from exc
            raise

        return replace(record, record_id=record_id, version=1)

    def save(self, record: AttendanceRecord, *, expected_version: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET total_students=%s, total_present=%s, total_absent=%s, total_od=%s,
                    status=%s, notes=%s, updated_by=%s, version=version + 1
                WHERE record_id=%s AND version=%s
                """,
                (
                    record.totals.total_students,
                    record.totals.total_present,
                    record.totals.total_absent,
                    record.totals.total_od,
                    record.status.value,
                    record.notes,
                    record.updated_by,
                    int(record.record_id),
                    int(expected_version),
                ),
            )
            if cur.rowcount == 0:
                logger.info("Version conflict on attendance record %s (expected v%s)", record.record_id, expected_version)
                return None

            cur.execute("DELETE FROM attendance_entries WHERE record_id=%s", (int(record.record_id),))
            self._insert_entries(cur, int(record.record_id), record)

        return replace(record, version=int(expected_version) + 1)

    def list_summaries(
        self,
        *,
        class_id: str,
        start_date: date,
        end_date: date,
        faculty_id: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[AttendanceSummary]:
        clauses = ["class_id=%s", "attendance_date BETWEEN %s AND %s"]
        params: list[object] = [class_id, start_date, end_date]

        if faculty_id is not None:
            clauses.append("faculty_id=%s")
            params.append(faculty_id)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT record_id, class_id, attendance_date, faculty_id, status, notes,
                       total_students, total_present, total_absent, total_od
                FROM attendance_records
                WHERE {where}
                ORDER BY attendance_date DESC, record_id ASC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            rows = fetchall(cur)
            return [
                AttendanceSummary(
                    record_id=int(r["record_id"]),
                    class_id=r["class_id"],
                    attendance_date=normalize_mysql_date(r["attendance_date"]),
                    faculty_id=str(r["faculty_id"]),
                    status=RecordStatus(r["status"]),
                    notes=r.get("notes") or "",
                    totals=AttendanceTotals(
                        total_students=int(r["total_students"]),
                        total_present=int(r["total_present"]),
                        total_absent=int(r["total_absent"]),
                        total_od=int(r["total_od"]),
                    ),
                )
                for r in rows
            ]
