from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import ClassContext, Student
from .repository import RosterProvider


class MySQLRosterRepository(RosterProvider):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_enrolled(self, context: ClassContext) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT s.student_id, s.roll_number, s.name, s.email
                FROM students s
                JOIN student_enrollments e ON e.student_id = s.student_id
                WHERE s.department=%s
                  AND s.batch_year=%s
                  AND s.section=%s
                  AND s.status='active'
                  AND e.class_id=%s
                  AND e.year=%s
                  AND e.semester_name=%s
                  AND e.status='active'
                ORDER BY s.roll_number ASC
                """,
                (
                    context.department,
                    context.batch_year,
                    context.section,
                    context.class_id,
                    context.year,
                    context.semester_name,
                ),
            )
            rows = fetchall(cur)
            return [
                Student(
                    student_id=str(r["student_id"]),
                    roll_number=r["roll_number"],
                    name=r["name"],
                    email=r.get("email"),
                    is_active=True,
                )
                for r in rows
            ]
