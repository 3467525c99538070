from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: plain data object, no DB access code. ``user_id`` is opaque (an
    integer key in MySQL, an ObjectId in MongoDB).
    """

    user_id: str
    name: str
    email: str
    password_hash: str
    role: Role
    uid: Optional[str] = None
    id_number: Optional[str] = None
    department: Optional[str] = None
    class_name: Optional[str] = None
    is_active: bool = True
    must_change_password: bool = False
    created_at: Optional[datetime] = None

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

    def to_public(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "uid": self.uid,
            "id_number": self.id_number,
            "department": self.department,
            "class_name": self.class_name,
            "is_active": self.is_active,
            "must_change_password": self.must_change_password,
        }
