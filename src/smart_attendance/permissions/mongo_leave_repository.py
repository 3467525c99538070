from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from pymongo import DESCENDING, ReturnDocument

from ..core.enums import LeaveStatus, Role
from ..core.exceptions import StoreMissingError
from ..database.mongo import PERMISSIONS, USERS, MongoConnection, doc_id, mongo_errors, to_object_id
from .model import LeaveRequest
from .repository import LeaveRequestRepository

_DATE_FORMAT = "%Y-%m-%d"


def _doc_to_request(d: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=doc_id(d),
        student_id=str(d["student_id"]),
        faculty_id=str(d["faculty_id"]),
        reason=d.get("reason", ""),
        start_date=datetime.strptime(d["start_date"], _DATE_FORMAT).date(),
        end_date=datetime.strptime(d["end_date"], _DATE_FORMAT).date(),
        status=LeaveStatus(d.get("status", LeaveStatus.PENDING.value)),
        created_at=d.get("created_at"),
        decided_at=d.get("decided_at"),
        student_name=d.get("student_name"),
    )


class MongoLeaveRequestRepository(LeaveRequestRepository):
    def __init__(self, conn: MongoConnection):
        self._conn = conn

    @property
    def _permissions(self):
        return self._conn.collection(PERMISSIONS)

    def create(
        self,
        *,
        student_id: str,
        faculty_id: str,
        reason: str,
        start_date: date,
        end_date: date,
    ) -> str:
        with mongo_errors():
            student = self._conn.collection(USERS).find_one({"_id": to_object_id(student_id)}, {"name": 1})
            res = self._permissions.insert_one(
                {
                    "student_id": str(student_id),
                    "student_name": (student or {}).get("name"),
                    "faculty_id": str(faculty_id),
                    "reason": reason,
                    "start_date": start_date.strftime(_DATE_FORMAT),
                    "end_date": end_date.strftime(_DATE_FORMAT),
                    "status": LeaveStatus.PENDING.value,
                    "created_at": datetime.now(),
                    "decided_at": None,
                }
            )
        return str(res.inserted_id)

    def get(self, request_id: str) -> Optional[LeaveRequest]:
        oid = to_object_id(request_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self._permissions.find_one({"_id": oid})
        return _doc_to_request(d) if d else None

    def list_requests(
        self,
        *,
        student_id: Optional[str] = None,
        faculty_id: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[LeaveStatus] = None,
    ) -> Sequence[LeaveRequest]:
        query: dict = {}
        if student_id is not None:
            query["student_id"] = str(student_id)
        if faculty_id is not None:
            query["faculty_id"] = str(faculty_id)
        if status is not None:
            query["status"] = status.value

        with mongo_errors():
            if department or class_name:
                scope: dict = {"role": Role.STUDENT.value}
                if department:
                    scope["department"] = department
                if class_name:
                    scope["class_name"] = class_name
                ids = [str(oid) for oid in self._conn.collection(USERS).distinct("_id", scope)]
                query = {"$and": [query, {"student_id": {"$in": ids}}]}
            cursor = self._permissions.find(query).sort([("created_at", DESCENDING), ("_id", DESCENDING)])
            return [_doc_to_request(d) for d in cursor]

    def decide(self, request_id: str, *, status: LeaveStatus, decided_at: datetime) -> Optional[LeaveRequest]:
        oid = to_object_id(request_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self._permissions.find_one_and_update(
                {"_id": oid, "status": LeaveStatus.PENDING.value},
                {"$set": {"status": status.value, "decided_at": decided_at}},
                return_document=ReturnDocument.AFTER,
            )
        return _doc_to_request(d) if d else None

    def count_pending(self) -> int:
        with mongo_errors():
            if not self._conn.has_collection(PERMISSIONS):
                raise StoreMissingError("permissions collection is not provisioned")
            return self._permissions.count_documents({"status": LeaveStatus.PENDING.value})
