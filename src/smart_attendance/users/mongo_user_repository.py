from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from pymongo import ASCENDING, ReturnDocument

from ..core.enums import Role
from ..database.mongo import ACTIVATION_CODES, USERS, MongoConnection, doc_id, mongo_errors, to_object_id
from .model import User
from .repository import UPDATABLE_FIELDS, ActivationCodeRepository, UserRepository


def _doc_to_user(d: dict) -> User:
    return User(
        user_id=doc_id(d),
        name=d.get("name", ""),
        email=d["email"],
        password_hash=d["password_hash"],
        role=Role(d.get("role", Role.STUDENT.value)),
        uid=d.get("uid"),
        id_number=d.get("id_number"),
        department=d.get("department"),
        class_name=d.get("class_name"),
        is_active=bool(d.get("is_active", True)),
        must_change_password=bool(d.get("must_change_password", False)),
        created_at=d.get("created_at"),
    )


class MongoUserRepository(UserRepository):
    def __init__(self, conn: MongoConnection):
        self._conn = conn

    @property
    def _users(self):
        return self._conn.collection(USERS)

    def _find_one(self, query: dict) -> Optional[User]:
        with mongo_errors():
            d = self._users.find_one(query)
        return _doc_to_user(d) if d else None

    def get_by_id(self, user_id: str) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return self._find_one({"_id": oid})

    def get_by_email(self, email: str) -> Optional[User]:
        return self._find_one({"email": email.strip().lower()})

    def get_by_uid(self, uid: str) -> Optional[User]:
        return self._find_one({"uid": uid.strip()})

    def find_by_reference(self, ref: str) -> Optional[User]:
        ref = (ref or "").strip()
        if not ref:
            return None
        for query in ({"uid": ref}, {"id_number": ref}, {"email": ref.lower()}):
            user = self._find_one(query)
            if user:
                return user
        return self.get_by_id(ref)

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        uid: Optional[str] = None,
        id_number: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        must_change_password: bool = False,
    ) -> str:
        doc = {
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "role": role.value,
            "uid": uid,
            "id_number": id_number,
            "department": department,
            "class_name": class_name,
            "is_active": True,
            "must_change_password": bool(must_change_password),
            "created_at": datetime.now(),
        }
        with mongo_errors("Email already exists"):
            res = self._users.insert_one(doc)
        return str(res.inserted_id)

    def update_fields(self, user_id: str, fields: Mapping[str, Any]) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        changes = {
            k: (v.value if isinstance(v, Enum) else v) for k, v in fields.items() if k in UPDATABLE_FIELDS
        }
        if not changes:
            return self.get_by_id(user_id)
        with mongo_errors():
            d = self._users.find_one_and_update(
                {"_id": oid},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        return _doc_to_user(d) if d else None

    def set_role_if(self, user_id: str, *, current: Role, new: Role) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self._users.find_one_and_update(
                {"_id": oid, "role": current.value},
                {"$set": {"role": new.value}},
                return_document=ReturnDocument.AFTER,
            )
        return _doc_to_user(d) if d else None

    def delete_by_id(self, user_id: str) -> bool:
        oid = to_object_id(user_id)
        if oid is None:
            return False
        with mongo_errors():
            return self._users.delete_one({"_id": oid}).deleted_count > 0

    def list_users(
        self,
        *,
        role: Optional[Role] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[User]:
        query: dict = {}
        if role is not None:
            query["role"] = role.value
        if department:
            query["department"] = department
        if class_name:
            query["class_name"] = class_name
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"name": pattern}, {"email": pattern}]
        with mongo_errors():
            return [_doc_to_user(d) for d in self._users.find(query).sort("name", ASCENDING)]

    def count_active_students(self) -> int:
        with mongo_errors():
            return self._users.count_documents({"role": Role.STUDENT.value, "is_active": True})


class MongoActivationCodeRepository(ActivationCodeRepository):
    def __init__(self, conn: MongoConnection):
        self._conn = conn

    def consume(self, code: str) -> bool:
        with mongo_errors():
            res = self._conn.collection(ACTIVATION_CODES).update_one(
                {"code": code.strip(), "is_used": False},
                {"$set": {"is_used": True}},
            )
        return res.modified_count > 0

    def add(self, code: str) -> bool:
        with mongo_errors():
            res = self._conn.collection(ACTIVATION_CODES).update_one(
                {"code": code.strip()},
                {"$setOnInsert": {"code": code.strip(), "is_used": False}},
                upsert=True,
            )
        return res.upserted_id is not None
