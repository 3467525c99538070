from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from pymongo import ASCENDING

from ..core.enums import DayOfWeek
from ..database.mongo import TIMETABLE, MongoConnection, doc_id, mongo_errors, to_object_id
from .model import NewPeriod, ScheduledPeriod
from .repository import ScheduleRepository


def _parse_hhmm(value: str):
    return datetime.strptime(value[:5], "%H:%M").time()


def _doc_to_period(d: dict) -> ScheduledPeriod:
    return ScheduledPeriod(
        period_row_id=doc_id(d),
        day_of_week=DayOfWeek(int(d["day_of_week"])),
        period_id=int(d.get("period_id") or 0),
        subject=d["subject"],
        start_time=_parse_hhmm(d["start_time"]),
        end_time=_parse_hhmm(d["end_time"]),
        staff_id=d.get("staff_id"),
        staff_name=d.get("staff_name"),
        staff_email=d.get("staff_email"),
        location=d.get("location"),
        department=d.get("department") or None,
        class_name=d.get("class_name") or None,
    )


def _scope(field: str, value: str) -> dict:
    return {"$or": [{field: value}, {field: None}, {field: ""}]}


class MongoScheduleRepository(ScheduleRepository):
    def __init__(self, conn: MongoConnection):
        self._conn = conn

    @property
    def _timetable(self):
        return self._conn.collection(TIMETABLE)

    def list_periods(
        self,
        *,
        day_of_week: Optional[DayOfWeek] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        staff_id: Optional[str] = None,
        staff_email: Optional[str] = None,
    ) -> Sequence[ScheduledPeriod]:
        clauses: list[dict] = []
        if day_of_week is not None:
            clauses.append({"day_of_week": int(day_of_week)})
        if department:
            clauses.append(_scope("department", department))
        if class_name:
            clauses.append(_scope("class_name", class_name))
        if staff_id is not None or staff_email:
            staff: list[dict] = []
            if staff_id:
                staff.append({"staff_id": staff_id})
            if staff_email:
                staff.append({"staff_email": staff_email.lower()})
            clauses.append({"$or": staff})

        query = {"$and": clauses} if clauses else {}
        with mongo_errors():
            cursor = self._timetable.find(query).sort(
                [("day_of_week", ASCENDING), ("start_time", ASCENDING), ("_id", ASCENDING)]
            )
            return [_doc_to_period(d) for d in cursor]

    def get(self, period_row_id: str) -> Optional[ScheduledPeriod]:
        oid = to_object_id(period_row_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self._timetable.find_one({"_id": oid})
        return _doc_to_period(d) if d else None

    def create(self, period: NewPeriod) -> str:
        doc = {
            "day_of_week": int(period.day_of_week),
            "period_id": int(period.period_id),
            "subject": period.subject,
            "start_time": period.start_time.strftime("%H:%M"),
            "end_time": period.end_time.strftime("%H:%M"),
            "staff_id": period.staff_id,
            "staff_name": period.staff_name,
            "staff_email": period.staff_email,
            "location": period.location,
            "department": period.department,
            "class_name": period.class_name,
            "created_at": datetime.now(),
        }
        with mongo_errors("A period with this day and period id already exists"):
            res = self._timetable.insert_one(doc)
        return str(res.inserted_id)

    def delete(self, period_row_id: str) -> bool:
        oid = to_object_id(period_row_id)
        if oid is None:
            return False
        with mongo_errors():
            return self._timetable.delete_one({"_id": oid}).deleted_count > 0
