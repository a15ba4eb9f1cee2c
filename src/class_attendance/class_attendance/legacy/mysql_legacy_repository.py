from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, load_json_list, placeholders
from .model import LegacyRosterRecord
from .repository import LegacyRosterRepository

_COLUMNS = """
    legacy_id, class_assigned, department, faculty_id, recorded_at,
    present_students, absent_students, od_students,
    total_students, total_present, total_absent, updated_at
"""


class MySQLLegacyRosterRepository(LegacyRosterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_record(r: dict) -> LegacyRosterRecord:
        return LegacyRosterRecord(
            legacy_id=int(r["legacy_id"]),
            class_assigned=r["class_assigned"],
            department=r["department"],
            faculty_id=str(r["faculty_id"]) if r.get("faculty_id") is not None else None,
            recorded_at=r["recorded_at"],
            present_students=frozenset(load_json_list(r.get("present_students"))),
            absent_students=frozenset(load_json_list(r.get("absent_students"))),
            od_students=frozenset(load_json_list(r.get("od_students"))),
            total_students=int(r.get("total_students") or 0),
            total_present=int(r.get("total_present") or 0),
            total_absent=int(r.get("total_absent") or 0),
            updated_at=r.get("updated_at"),
        )

    def find_exact(self, *, class_assigned: str, department: str, recorded_at: datetime) -> Optional[LegacyRosterRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM class_attendance
                WHERE class_assigned=%s AND department=%s AND recorded_at=%s
                ORDER BY legacy_id ASC
                LIMIT 1
                """,
                (class_assigned, department, recorded_at),
            )
            r = fetchone(cur)
            return self._to_record(r) if r else None

    def find_between(
        self,
        *,
        class_assigned: str,
        department: str,
        start: datetime,
        end: datetime,
        exclude: Sequence[datetime] = (),
    ) -> Optional[LegacyRosterRecord]:
        clauses = ["class_assigned=%s", "department=%s", "recorded_at BETWEEN %s AND %s"]
        params: list[object] = [class_assigned, department, start, end]
        if exclude:
            clauses.append(f"recorded_at NOT IN ({placeholders(exclude)})")
            params.extend(exclude)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM class_attendance
                WHERE {' AND '.join(clauses)}
                ORDER BY recorded_at ASC, legacy_id ASC
                LIMIT 1
                """,
                tuple(params),
            )
            r = fetchone(cur)
            return self._to_record(r) if r else None

    def exists_between(
        self,
        *,
        department: str,
        start: datetime,
        end: datetime,
        class_assigned: Optional[str] = None,
        exclude: Sequence[datetime] = (),
    ) -> bool:
        clauses = ["department=%s", "recorded_at BETWEEN %s AND %s"]
        params: list[object] = [department, start, end]
        if class_assigned is not None:
            clauses.append("class_assigned=%s")
            params.append(class_assigned)
        if exclude:
            clauses.append(f"recorded_at NOT IN ({placeholders(exclude)})")
            params.extend(exclude)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT 1 AS hit FROM class_attendance WHERE {' AND '.join(clauses)} LIMIT 1",
                tuple(params),
            )
            return fetchone(cur) is not None
