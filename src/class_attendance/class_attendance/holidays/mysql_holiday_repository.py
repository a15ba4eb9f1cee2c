from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import HolidayScope
from ..core.exceptions import HolidayExists
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, normalize_mysql_date
from ..roster.model import ClassContext
from .model import Holiday
from .repository import HolidayRepository

_COLUMNS = """
    holiday_id, holiday_date, reason, scope, department, batch_year, section,
    semester_name, declared_by, updated_by, is_active, is_deleted, deleted_at, created_at
"""

_LIVE = "is_active=1 AND is_deleted=0"


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value if value else None


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_holiday(r: dict) -> Holiday:
        return Holiday(
            holiday_id=int(r["holiday_id"]),
            holiday_date=normalize_mysql_date(r["holiday_date"]),
            reason=r["reason"],
            scope=HolidayScope(r["scope"]),
            department=r["department"],
            batch_year=_blank_to_none(r.get("batch_year")),
            section=_blank_to_none(r.get("section")),
            semester_name=_blank_to_none(r.get("semester_name")),
            declared_by=str(r["declared_by"]),
            updated_by=r.get("updated_by"),
            is_active=bool(r["is_active"]),
            is_deleted=bool(r["is_deleted"]),
            deleted_at=r.get("deleted_at"),
            created_at=r.get("created_at"),
        )

    def list_active_in_range(self, *, start_date: date, end_date: date, context: ClassContext) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM holidays
                WHERE {_LIVE}
                  AND department=%s
                  AND holiday_date BETWEEN %s AND %s
                  AND (
                    scope='global'
                    OR (scope='class' AND batch_year=%s AND section=%s AND semester_name=%s)
                  )
                ORDER BY holiday_date ASC, scope DESC, holiday_id ASC
                """,
                (
                    context.department,
                    start_date,
                    end_date,
                    context.batch_year,
                    context.section,
                    context.semester_name,
                ),
            )
            return [self._to_holiday(r) for r in fetchall(cur)]

    def find_live_by_key(self, holiday: Holiday) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM holidays
                WHERE {_LIVE}
                  AND holiday_date=%s AND department=%s AND scope=%s
                  AND batch_year=%s AND section=%s AND semester_name=%s
                LIMIT 1
                """,
                (
                    holiday.holiday_date,
                    holiday.department,
                    holiday.scope.value,
                    holiday.batch_year or "",
                    holiday.section or "",
                    holiday.semester_name or "",
                ),
            )
            r = fetchone(cur)
            return self._to_holiday(r) if r else None

    def get(self, holiday_id: int) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM holidays WHERE holiday_id=%s", (int(holiday_id),))
            r = fetchone(cur)
            return self._to_holiday(r) if r else None

    def insert(self, holiday: Holiday) -> Holiday:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO holidays(
                        holiday_date, reason, scope, department, batch_year, section,
                        semester_name, declared_by, is_active, is_deleted
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 1, 0)
                    """,
                    (
                        holiday.holiday_date,
                        holiday.reason,
                        holiday.scope.value,
                        holiday.department,
                        holiday.batch_year or "",
                        holiday.section or "",
                        holiday.semester_name or "",
                        holiday.declared_by,
                    ),
                )
                holiday_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise HolidayExists(
                    f"Holiday already declared for {holiday.holiday_date.isoformat()}",
                    details={"date": holiday.holiday_date.isoformat(), "scope": holiday.scope.value},
                ) from exc
            raise

        created = self.get(holiday_id)
        if created is None:
            raise RuntimeError("Inserted holiday could not be reloaded")
        return created

    def soft_delete(self, *, holiday_id: int, deleted_by: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE holidays
                SET is_deleted=1, is_active=0, deleted_at=UTC_TIMESTAMP(), updated_by=%s
                WHERE holiday_id=%s AND is_deleted=0
                """,
                (deleted_by, int(holiday_id)),
            )
            return cur.rowcount > 0

    def update_reason(self, *, holiday_id: int, reason: str, updated_by: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE holidays SET reason=%s, updated_by=%s WHERE holiday_id=%s AND {_LIVE}",
                (reason, updated_by, int(holiday_id)),
            )
            return cur.rowcount > 0
