from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetch_count, fetchall, fetchone, to_int_id
from .model import User
from .repository import UPDATABLE_FIELDS, ActivationCodeRepository, UserRepository

_USER_COLUMNS = """
    user_id, name, email, password_hash, role, uid, id_number,
    department, class_name, is_active, must_change_password, created_at
"""


def _row_to_user(r: dict) -> User:
    return User(
        user_id=str(r["user_id"]),
        name=r["name"],
        email=r["email"],
        password_hash=r["password_hash"],
        role=Role(r["role"]),
        uid=r.get("uid"),
        id_number=r.get("id_number"),
        department=r.get("department"),
        class_name=r.get("class_name"),
        is_active=bool(r.get("is_active", True)),
        must_change_password=bool(r.get("must_change_password", False)),
        created_at=r.get("created_at"),
    )


def _db_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, params: tuple) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE {where}", params)
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_id(self, user_id: str) -> Optional[User]:
        uid = to_int_id(user_id)
        if uid is None:
            return None
        return self._get_one("user_id=%s", (uid,))

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("email=%s", (email.strip().lower(),))

    def get_by_uid(self, uid: str) -> Optional[User]:
        return self._get_one("uid=%s", (uid.strip(),))

    def find_by_reference(self, ref: str) -> Optional[User]:
        ref = (ref or "").strip()
        if not ref:
            return None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users
                WHERE uid=%s OR id_number=%s OR email=%s
                ORDER BY (uid=%s) DESC, (id_number=%s) DESC
                LIMIT 1
                """,
                (ref, ref, ref.lower(), ref, ref),
            )
            row = fetchone(cur)
            if row:
                return _row_to_user(row)
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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(
                    name, email, password_hash, role, uid, id_number,
                    department, class_name, is_active, must_change_password
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,1,%s)
                """,
                (
                    name,
                    email,
                    password_hash,
                    role.value,
                    uid,
                    id_number,
                    department,
                    class_name,
                    int(must_change_password),
                ),
            )
            return str(cur.lastrowid)

    def update_fields(self, user_id: str, fields: Mapping[str, Any]) -> Optional[User]:
        key = to_int_id(user_id)
        if key is None:
            return None
        changes = {k: _db_value(v) for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if changes:
            assignments = ", ".join(f"{col}=%s" for col in changes)
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"UPDATE users SET {assignments} WHERE user_id=%s",
                    (*changes.values(), key),
                )
        return self.get_by_id(user_id)

    def set_role_if(self, user_id: str, *, current: Role, new: Role) -> Optional[User]:
        key = to_int_id(user_id)
        if key is None:
            return None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET role=%s WHERE user_id=%s AND role=%s",
                (new.value, key, current.value),
            )
            if cur.rowcount == 0:
                return None
        return self.get_by_id(user_id)

    def delete_by_id(self, user_id: str) -> bool:
        key = to_int_id(user_id)
        if key is None:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (key,))
            return cur.rowcount > 0

    def list_users(
        self,
        *,
        role: Optional[Role] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[User]:
        clauses = ["1=1"]
        params: list[object] = []

        if role is not None:
            clauses.append("role=%s")
            params.append(role.value)
        if department:
            clauses.append("department=%s")
            params.append(department)
        if class_name:
            clauses.append("class_name=%s")
            params.append(class_name)
        if search:
            clauses.append("(name LIKE %s OR email LIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE {where} ORDER BY name ASC", tuple(params))
            return [_row_to_user(r) for r in fetchall(cur)]

    def count_active_students(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM users WHERE role='student' AND is_active=1")
            return fetch_count(cur)


class MySQLActivationCodeRepository(ActivationCodeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def consume(self, code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE activation_codes SET is_used=1 WHERE code=%s AND is_used=0",
                (code.strip(),),
            )
            return cur.rowcount > 0

    def add(self, code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT IGNORE INTO activation_codes(code) VALUES(%s)", (code.strip(),))
            return cur.rowcount > 0
