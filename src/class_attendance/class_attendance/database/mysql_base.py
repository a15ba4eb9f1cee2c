from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import mysql.connector

from ..core.constants import ER_DUP_ENTRY
from ..core.exceptions import StorageError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield ``(conn, cursor)``; commit on success, rollback on any error.

    Integrity errors are re-raised untouched so repositories can map them to
    business errors; every other driver error becomes ``StorageError``.
    """

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError:
        conn.rollback()
        raise
    except mysql.connector.Error as exc:
        logger.error("MySQL error, rolling back: %s", exc, exc_info=True)
        conn.rollback()
        raise StorageError(str(exc)) from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def is_duplicate_key(exc: mysql.connector.IntegrityError) -> bool:
    return getattr(exc, "errno", None) == ER_DUP_ENTRY


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def normalize_mysql_date(value: Any) -> date:
    """Normalize DATE columns across connector implementations.

    mysql-connector can return DATE as ``datetime.date`` or, for some column
    definitions and the pure-python protocol, as ``datetime`` or a string.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
    raise TypeError(f"Unsupported MySQL DATE value type: {type(value)!r}")


def load_json_list(value: Any) -> List[str]:
    """Decode a JSON array column into a list of strings."""

    if value is None:
        return []
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else []
    if not isinstance(value, list):
        raise ValueError(f"Expected JSON array, got {type(value)!r}")
    return [str(v).strip() for v in value]


def dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def load_json_object(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value) if value.strip() else {}
    return dict(value)


def placeholders(values: Iterable[Any]) -> str:
    return ",".join(["%s"] * len(list(values)))
