from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User

# Columns a caller may change through update_fields.
UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "email",
        "password_hash",
        "role",
        "uid",
        "id_number",
        "department",
        "class_name",
        "is_active",
        "must_change_password",
    }
)


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, never on a concrete store.
    """

    def get_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_uid(self, uid: str) -> Optional[User]:
        raise NotImplementedError

    def find_by_reference(self, ref: str) -> Optional[User]:
        """Match a scanner/CSV reference against uid, id_number, email, then id."""

        raise NotImplementedError

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
        raise NotImplementedError

    def update_fields(self, user_id: str, fields: Mapping[str, Any]) -> Optional[User]:
        """Apply a partial update and return the new state (None if missing)."""

        raise NotImplementedError

    def set_role_if(self, user_id: str, *, current: Role, new: Role) -> Optional[User]:
        """Conditional role change used by promote/demote."""

        raise NotImplementedError

    def delete_by_id(self, user_id: str) -> bool:
        raise NotImplementedError

    def list_users(
        self,
        *,
        role: Optional[Role] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[User]:
        raise NotImplementedError

    def count_active_students(self) -> int:
        raise NotImplementedError


class ActivationCodeRepository(Protocol):
    def consume(self, code: str) -> bool:
        """Atomically flip an unused code to used; False if unknown or used."""

        raise NotImplementedError

    def add(self, code: str) -> bool:
        raise NotImplementedError
