from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ComplaintStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetch_count, fetchall, fetchone, to_int_id
from .model import Complaint
from .repository import ComplaintRepository

_SELECT = """
    SELECT c.complaint_id, c.student_id, c.message, c.status, c.created_at, c.updated_at,
           u.name AS student_name
    FROM complaints c
    JOIN users u ON u.user_id = c.student_id
"""


def _row_to_complaint(r: dict) -> Complaint:
    return Complaint(
        complaint_id=str(r["complaint_id"]),
        student_id=str(r["student_id"]),
        message=r["message"],
        status=ComplaintStatus(r["status"]),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        student_name=r.get("student_name"),
    )


class MySQLComplaintRepository(ComplaintRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, student_id: str, message: str) -> str:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO complaints(student_id, message, status) VALUES(%s,%s,%s)",
                (to_int_id(student_id), message, ComplaintStatus.PENDING.value),
            )
            return str(cur.lastrowid)

    def get(self, complaint_id: str) -> Optional[Complaint]:
        key = to_int_id(complaint_id)
        if key is None:
            return None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE c.complaint_id=%s", (key,))
            row = fetchone(cur)
            return _row_to_complaint(row) if row else None

    def list_complaints(
        self,
        *,
        student_id: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[ComplaintStatus] = None,
    ) -> Sequence[Complaint]:
        clauses = ["1=1"]
        params: list[object] = []
        if student_id is not None:
            clauses.append("c.student_id=%s")
            params.append(to_int_id(student_id))
        if department:
            clauses.append("u.department=%s")
            params.append(department)
        if class_name:
            clauses.append("u.class_name=%s")
            params.append(class_name)
        if status is not None:
            clauses.append("c.status=%s")
            params.append(status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + f" WHERE {' AND '.join(clauses)} ORDER BY c.created_at DESC, c.complaint_id DESC",
                tuple(params),
            )
            return [_row_to_complaint(r) for r in fetchall(cur)]

    def set_status(self, complaint_id: str, *, status: ComplaintStatus, updated_at: datetime) -> Optional[Complaint]:
        key = to_int_id(complaint_id)
        if key is None:
            return None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE complaints SET status=%s, updated_at=%s WHERE complaint_id=%s",
                (status.value, updated_at, key),
            )
            cur.execute(_SELECT + " WHERE c.complaint_id=%s", (key,))
            row = fetchone(cur)
            return _row_to_complaint(row) if row else None

    def count_pending(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) FROM complaints WHERE status=%s", (ComplaintStatus.PENDING.value,))
            return fetch_count(cur)
