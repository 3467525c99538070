from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from pymongo import ASCENDING, DESCENDING, ReturnDocument

from ..core.constants import DAILY_PERIOD_KEY
from ..core.enums import AttendanceOrigin, AttendanceStatus, Role
from ..database.mongo import ATTENDANCE, USERS, MongoConnection, doc_id, mongo_errors
from ..schedules.model import StaffSlot
from .model import AttendanceRecord
from .repository import AttendanceQuery, AttendanceRepository

# Dates are stored as ISO strings so range queries compare lexically.
_DATE_FORMAT = "%Y-%m-%d"


def _doc_to_record(d: dict) -> AttendanceRecord:
    period_id = int(d.get("period_id") or DAILY_PERIOD_KEY)
    return AttendanceRecord(
        record_id=doc_id(d),
        student_id=str(d["student_id"]),
        date=datetime.strptime(d["date"], _DATE_FORMAT).date(),
        period_id=None if period_id == DAILY_PERIOD_KEY else period_id,
        status=AttendanceStatus(d["status"]),
        origin=AttendanceOrigin(d.get("origin") or AttendanceOrigin.WEB.value),
        marked_at=d["marked_at"],
    )


class MongoAttendanceRepository(AttendanceRepository):
    def __init__(self, conn: MongoConnection):
        self._conn = conn

    @property
    def _attendance(self):
        return self._conn.collection(ATTENDANCE)

    def _student_ids_in_scope(self, department: Optional[str], class_name: Optional[str]) -> list[str]:
        query: dict = {"role": Role.STUDENT.value}
        if department:
            query["department"] = department
        if class_name:
            query["class_name"] = class_name
        with mongo_errors():
            return [str(oid) for oid in self._conn.collection(USERS).distinct("_id", query)]

    def _build_filter(self, query: AttendanceQuery) -> Optional[dict]:
        if query.matches_nothing:
            return None

        clauses: list[dict] = []
        if query.student_id is not None:
            clauses.append({"student_id": str(query.student_id)})
        if query.department or query.class_name:
            ids = self._student_ids_in_scope(query.department, query.class_name)
            if not ids:
                return None
            clauses.append({"student_id": {"$in": ids}})
        if query.slots is not None:
            alternatives = []
            in_scope: dict[tuple, list[str]] = {}
            for slot in sorted(query.slots, key=StaffSlot.sort_key):
                clause: dict = {"day_of_week": int(slot.day_of_week), "period_id": int(slot.period_id)}
                if slot.department or slot.class_name:
                    scope = (slot.department, slot.class_name)
                    if scope not in in_scope:
                        in_scope[scope] = self._student_ids_in_scope(*scope)
                    if not in_scope[scope]:
                        continue
                    clause["student_id"] = {"$in": in_scope[scope]}
                alternatives.append(clause)
            if not alternatives:
                return None
            clauses.append({"$or": alternatives})
        if query.period_id is not None:
            clauses.append({"period_id": int(query.period_id)})

        date_range: dict = {}
        if query.start is not None:
            date_range["$gte"] = query.start.strftime(_DATE_FORMAT)
        if query.end is not None:
            date_range["$lte"] = query.end.strftime(_DATE_FORMAT)
        if date_range:
            clauses.append({"date": date_range})

        return {"$and": clauses} if clauses else {}

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
        key = {
            "student_id": str(student_id),
            "date": att_date.strftime(_DATE_FORMAT),
            "period_id": DAILY_PERIOD_KEY if period_id is None else int(period_id),
        }
        with mongo_errors("Attendance was marked concurrently, retry the request"):
            d = self._attendance.find_one_and_update(
                key,
                {
                    "$set": {"status": status.value, "marked_at": marked_at, "origin": origin.value},
                    "$setOnInsert": {"day_of_week": att_date.weekday()},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        return _doc_to_record(d)

    def list_marks(self, query: AttendanceQuery) -> Sequence[AttendanceRecord]:
        flt = self._build_filter(query)
        if flt is None:
            return []
        with mongo_errors():
            cursor = self._attendance.find(flt).sort(
                [("date", DESCENDING), ("period_id", ASCENDING), ("_id", ASCENDING)]
            )
            if query.limit:
                cursor = cursor.limit(int(query.limit))
            return [_doc_to_record(d) for d in cursor]

    def count_marks(self, query: AttendanceQuery) -> tuple[int, int]:
        flt = self._build_filter(query)
        if flt is None:
            return 0, 0
        with mongo_errors():
            total = self._attendance.count_documents(flt)
            present = self._attendance.count_documents(
                {"$and": [flt, {"status": AttendanceStatus.PRESENT.value}]}
            )
        return total, present
