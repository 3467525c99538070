from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import LeaveStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetch_count, fetchall, fetchone, to_int_id
from .model import LeaveRequest
from .repository import LeaveRequestRepository

_SELECT = """
    SELECT p.request_id, p.student_id, p.faculty_id, p.reason, p.start_date, p.end_date,
           p.status, p.created_at, p.decided_at, u.name AS student_name
    FROM permissions p
    JOIN users u ON u.user_id = p.student_id
"""


def _row_to_request(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=str(r["request_id"]),
        student_id=str(r["student_id"]),
        faculty_id=str(r["faculty_id"]),
        reason=r["reason"],
        start_date=r["start_date"],
        end_date=r["end_date"],
        status=LeaveStatus(r["status"]),
        created_at=r.get("created_at"),
        decided_at=r.get("decided_at"),
        student_name=r.get("student_name"),
    )


class MySQLLeaveRequestRepository(LeaveRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        student_id: str,
        faculty_id: str,
        reason: str,
        start_date: date,
        end_date: date,
    ) -> str:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO permissions(student_id, faculty_id, reason, start_date, end_date, status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    to_int_id(student_id),
                    to_int_id(faculty_id),
                    reason,
                    start_date,
                    end_date,
                    LeaveStatus.PENDING.value,
                ),
            )
            return str(cur.lastrowid)

    def get(self, request_id: str) -> Optional[LeaveRequest]:
        key = to_int_id(request_id)
        if key is None:
            return None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE p.request_id=%s", (key,))
            row = fetchone(cur)
            return _row_to_request(row) if row else None

    def list_requests(
        self,
        *,
        student_id: Optional[str] = None,
        faculty_id: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[LeaveStatus] = None,
    ) -> Sequence[LeaveRequest]:
        clauses = ["1=1"]
        params: list[object] = []
        for column, value in (("p.student_id", student_id), ("p.faculty_id", faculty_id)):
            if value is not None:
                clauses.append(f"{column}=%s")
                params.append(to_int_id(value))
        if department:
            clauses.append("u.department=%s")
            params.append(department)
        if class_name:
            clauses.append("u.class_name=%s")
            params.append(class_name)
        if status is not None:
            clauses.append("p.status=%s")
            params.append(status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + f" WHERE {' AND '.join(clauses)} ORDER BY p.created_at DESC, p.request_id DESC",
                tuple(params),
            )
            return [_row_to_request(r) for r in fetchall(cur)]

    def decide(self, request_id: str, *, status: LeaveStatus, decided_at: datetime) -> Optional[LeaveRequest]:
        key = to_int_id(request_id)
        if key is None:
            return None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE permissions
                SET status=%s, decided_at=%s
                WHERE request_id=%s AND status=%s
                """,
                (status.value, decided_at, key, LeaveStatus.PENDING.value),
            )
            if cur.rowcount == 0:
                return None
            cur.execute(_SELECT + " WHERE p.request_id=%s", (key,))
            row = fetchone(cur)
            return _row_to_request(row) if row else None

    def count_pending(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) FROM permissions WHERE status=%s", (LeaveStatus.PENDING.value,))
            return fetch_count(cur)
