from __future__ import annotations

from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError, StoreMissingError, UnavailableError
from .connection import DatabaseConnection

_CONNECTION_ERRNOS = {
    errorcode.CR_CONN_HOST_ERROR,
    errorcode.CR_CONNECTION_ERROR,
    errorcode.CR_SERVER_GONE_ERROR,
    errorcode.CR_SERVER_LOST,
    errorcode.CR_UNKNOWN_HOST,
}


def translate_mysql_error(exc: mysql.connector.Error) -> Exception:
    """Map a driver error to the nearest domain error (or return it unchanged)."""

    errno = getattr(exc, "errno", None)
    if errno == errorcode.ER_DUP_ENTRY:
        return ConflictError(_duplicate_message(str(getattr(exc, "msg", exc))))
    if errno == errorcode.ER_NO_SUCH_TABLE:
        return StoreMissingError(str(getattr(exc, "msg", exc)))
    if errno in _CONNECTION_ERRNOS or isinstance(exc, mysql.connector.errors.InterfaceError):
        return UnavailableError("Database is not reachable")
    return exc


def _duplicate_message(msg: str) -> str:
    if "uq_users_email" in msg:
        return "Email already exists"
    if "uq_users_uid" in msg:
        return "UID already mapped to another user"
    if "uq_timetable_slot" in msg:
        return "A period with this day and period id already exists"
    return "Duplicate entry"


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        raise translate_mysql_error(e) from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        translated = translate_mysql_error(e)
        if translated is e:
            raise
        raise translated from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def fetch_count(cur) -> int:
    row = cur.fetchone()
    if not row:
        return 0
    if isinstance(row, dict):
        return int(next(iter(row.values())) or 0)
    return int(row[0] or 0)


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')
    """

    if value is None:
        return None

    if isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        return time(hour=total_seconds // 3600, minute=(total_seconds % 3600) // 60, second=total_seconds % 60)

    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=int(parts[0]), minute=int(parts[1]), second=seconds)

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")


def to_int_id(value: str) -> Optional[int]:
    """Opaque ids are strings in the domain; MySQL rows use integer keys."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
