from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import DayOfWeek
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, to_int_id
from .model import NewPeriod, ScheduledPeriod
from .repository import ScheduleRepository

_PERIOD_COLUMNS = """
    period_row_id, day_of_week, period_id, subject, start_time, end_time,
    staff_id, staff_name, staff_email, location, department, class_name
"""


def _row_to_period(r: dict) -> ScheduledPeriod:
    return ScheduledPeriod(
        period_row_id=str(r["period_row_id"]),
        day_of_week=DayOfWeek(int(r["day_of_week"])),
        period_id=int(r["period_id"]),
        subject=r["subject"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        staff_id=str(r["staff_id"]) if r.get("staff_id") is not None else None,
        staff_name=r.get("staff_name"),
        staff_email=r.get("staff_email"),
        location=r.get("location"),
        department=r.get("department") or None,
        class_name=r.get("class_name") or None,
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_periods(
        self,
        *,
        day_of_week: Optional[DayOfWeek] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        staff_id: Optional[str] = None,
        staff_email: Optional[str] = None,
    ) -> Sequence[ScheduledPeriod]:
        clauses = ["1=1"]
        params: list[object] = []

        if day_of_week is not None:
            clauses.append("day_of_week=%s")
            params.append(int(day_of_week))
        if department:
            clauses.append("(department=%s OR department='')")
            params.append(department)
        if class_name:
            clauses.append("(class_name=%s OR class_name='')")
            params.append(class_name)
        if staff_id is not None or staff_email:
            clauses.append("(staff_id=%s OR staff_email=%s)")
            params.extend([to_int_id(staff_id) if staff_id else None, (staff_email or "").lower() or None])

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_PERIOD_COLUMNS}
                FROM timetable
                WHERE {where}
                ORDER BY day_of_week ASC, start_time ASC, period_row_id ASC
                """,
                tuple(params),
            )
            return [_row_to_period(r) for r in fetchall(cur)]

    def get(self, period_row_id: str) -> Optional[ScheduledPeriod]:
        key = to_int_id(period_row_id)
        if key is None:
            return None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_PERIOD_COLUMNS} FROM timetable WHERE period_row_id=%s", (key,))
            r = fetchone(cur)
            return _row_to_period(r) if r else None

    def create(self, period: NewPeriod) -> str:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO timetable(
                    day_of_week, period_id, subject, start_time, end_time,
                    staff_id, staff_name, staff_email, location, department, class_name
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(period.day_of_week),
                    int(period.period_id),
                    period.subject,
                    period.start_time,
                    period.end_time,
                    to_int_id(period.staff_id) if period.staff_id else None,
                    period.staff_name,
                    period.staff_email,
                    period.location,
                    period.department or "",
                    period.class_name or "",
                ),
            )
            return str(cur.lastrowid)

    def delete(self, period_row_id: str) -> bool:
        key = to_int_id(period_row_id)
        if key is None:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM timetable WHERE period_row_id=%s", (key,))
            return cur.rowcount > 0
