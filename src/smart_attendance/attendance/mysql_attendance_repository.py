from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.constants import DAILY_PERIOD_KEY
from ..core.enums import AttendanceOrigin, AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_int_id
from ..schedules.model import StaffSlot
from .model import AttendanceRecord
from .repository import AttendanceQuery, AttendanceRepository

_RECORD_COLUMNS = "a.id, a.student_id, a.att_date, a.period_id, a.status, a.origin, a.marked_at"


def _row_to_record(r: dict) -> AttendanceRecord:
    period_id = int(r["period_id"])
    return AttendanceRecord(
        record_id=str(r["id"]),
        student_id=str(r["student_id"]),
        date=r["att_date"],
        period_id=None if period_id == DAILY_PERIOD_KEY else period_id,
        status=AttendanceStatus(r["status"]),
        origin=AttendanceOrigin(r.get("origin") or AttendanceOrigin.WEB.value),
        marked_at=r["marked_at"],
    )


def _build_filter(query: AttendanceQuery) -> Optional[tuple[str, str, list]]:
    """Return (join, where, params), or None when the query cannot match."""

    if query.matches_nothing:
        return None

    join = ""
    clauses = ["1=1"]
    params: list[object] = []

    if query.student_id is not None:
        sid = to_int_id(query.student_id)
        if sid is None:
            return None
        clauses.append("a.student_id=%s")
        params.append(sid)

    if query.department or query.class_name or query.slots:
        join = "JOIN users u ON u.user_id = a.student_id"
    if query.department:
        clauses.append("u.department=%s")
        params.append(query.department)
    if query.class_name:
        clauses.append("u.class_name=%s")
        params.append(query.class_name)

    if query.slots is not None:
        alternatives = []
        for slot in sorted(query.slots, key=StaffSlot.sort_key):
            parts = ["WEEKDAY(a.att_date)=%s", "a.period_id=%s"]
            params.extend([int(slot.day_of_week), int(slot.period_id)])
            if slot.department:
                parts.append("u.department=%s")
                params.append(slot.department)
            if slot.class_name:
                parts.append("u.class_name=%s")
                params.append(slot.class_name)
            alternatives.append("(" + " AND ".join(parts) + ")")
        clauses.append("(" + " OR ".join(alternatives) + ")")

    if query.period_id is not None:
        clauses.append("a.period_id=%s")
        params.append(int(query.period_id))
    if query.start is not None:
        clauses.append("a.att_date >= %s")
        params.append(query.start)
    if query.end is not None:
        clauses.append("a.att_date <= %s")
        params.append(query.end)

    return join, " AND ".join(clauses), params


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert_mark(
        self,
        *,
        student_id: str,
        att_date: date,
        period_id: Optional[int],
        status: AttendanceStatus,
        origin: AttendanceOrigin,
        marked_at: datetime,
    ) -> AttendanceRecord:
        key = (
            to_int_id(student_id),
            att_date,
            DAILY_PERIOD_KEY if period_id is None else int(period_id),
        )
        with db_cursor(self._conn_factory) as (_, cur):
            # one statement on the unique key; concurrent marks resolve to last write wins
            cur.execute(
                """
                INSERT INTO attendance(student_id, att_date, period_id, status, marked_at, origin)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    status=VALUES(status),
                    marked_at=VALUES(marked_at),
                    origin=VALUES(origin)
                """,
                key + (status.value, marked_at, origin.value),
            )
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance a
                WHERE a.student_id=%s AND a.att_date=%s AND a.period_id=%s
                """,
                key,
            )
            row = fetchone(cur)
        return _row_to_record(row)

    def list_marks(self, query: AttendanceQuery) -> Sequence[AttendanceRecord]:
        built = _build_filter(query)
        if built is None:
            return []
        join, where, params = built

        limit = ""
        if query.limit:
            limit = "LIMIT %s"
            params.append(int(query.limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance a
                {join}
                WHERE {where}
                ORDER BY a.att_date DESC, a.period_id ASC, a.id ASC
                {limit}
                """,
                tuple(params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def count_marks(self, query: AttendanceQuery) -> tuple[int, int]:
        built = _build_filter(query)
        if built is None:
            return 0, 0
        join, where, params = built

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total, COALESCE(SUM(a.status='P'), 0) AS present
                FROM attendance a
                {join}
                WHERE {where}
                """,
                tuple(params),
            )
            row = fetchone(cur) or {}
            return int(row.get("total") or 0), int(row.get("present") or 0)
