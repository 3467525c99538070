from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from pymongo import DESCENDING, ReturnDocument

from ..core.enums import ComplaintStatus, Role
from ..core.exceptions import StoreMissingError
from ..database.mongo import COMPLAINTS, USERS, MongoConnection, doc_id, mongo_errors, to_object_id
from .model import Complaint
from .repository import ComplaintRepository


def _doc_to_complaint(d: dict) -> Complaint:
    return Complaint(
        complaint_id=doc_id(d),
        student_id=str(d["student_id"]),
        message=d.get("message", ""),
        status=ComplaintStatus(d.get("status", ComplaintStatus.PENDING.value)),
        created_at=d.get("created_at"),
        updated_at=d.get("updated_at"),
        student_name=d.get("student_name"),
    )


class MongoComplaintRepository(ComplaintRepository):
    def __init__(self, conn: MongoConnection):
        self._conn = conn

    @property
    def _complaints(self):
        return self._conn.collection(COMPLAINTS)

    def create(self, *, student_id: str, message: str) -> str:
        now = datetime.now()
        with mongo_errors():
            student = self._conn.collection(USERS).find_one({"_id": to_object_id(student_id)}, {"name": 1})
            res = self._complaints.insert_one(
                {
                    "student_id": str(student_id),
                    "student_name": (student or {}).get("name"),
                    "message": message,
                    "status": ComplaintStatus.PENDING.value,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        return str(res.inserted_id)

    def get(self, complaint_id: str) -> Optional[Complaint]:
        oid = to_object_id(complaint_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self._complaints.find_one({"_id": oid})
        return _doc_to_complaint(d) if d else None

    def list_complaints(
        self,
        *,
        student_id: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[ComplaintStatus] = None,
    ) -> Sequence[Complaint]:
        query: dict = {}
        if student_id is not None:
            query["student_id"] = str(student_id)
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
            cursor = self._complaints.find(query).sort([("created_at", DESCENDING), ("_id", DESCENDING)])
            return [_doc_to_complaint(d) for d in cursor]

    def set_status(self, complaint_id: str, *, status: ComplaintStatus, updated_at: datetime) -> Optional[Complaint]:
        oid = to_object_id(complaint_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self._complaints.find_one_and_update(
                {"_id": oid},
                {"$set": {"status": status.value, "updated_at": updated_at}},
                return_document=ReturnDocument.AFTER,
            )
        return _doc_to_complaint(d) if d else None

    def count_pending(self) -> int:
        with mongo_errors():
            if not self._conn.has_collection(COMPLAINTS):
                raise StoreMissingError("complaints collection is not provisioned")
            return self._complaints.count_documents({"status": ComplaintStatus.PENDING.value})
