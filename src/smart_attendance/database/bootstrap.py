from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Optional, Sequence

from werkzeug.security import generate_password_hash

from ..core.enums import Role
from ..users.repository import ActivationCodeRepository, UserRepository
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?m)^\s*--.*$", "", sql)
    return sql


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside of quoted strings."""

    buf: list[str] = []
    quote: Optional[str] = None
    escape = False

    for ch in sql:
        buf.append(ch)
        if escape:
            escape = False
        elif ch == "\\":
            escape = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf[:-1]).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    conn = conn_factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{conn_factory.config.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(conn_factory: DatabaseConnection, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(conn_factory)
    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))

    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("schema applied to %s", conn_factory.config.database)


def list_tables(conn_factory: DatabaseConnection) -> list[str]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def ensure_admin(users: UserRepository, *, email: str, password: str, name: str = "Administrator") -> str:
    """Create the admin account, or reset its password/role if it exists."""

    email = email.strip().lower()
    password_hash = generate_password_hash(password)
    existing = users.get_by_email(email)
    if existing:
        users.update_fields(
            existing.user_id,
            {"password_hash": password_hash, "role": Role.ADMIN.value, "is_active": True},
        )
        logger.info("admin account %s reset", email)
        return existing.user_id

    user_id = users.create_user(
        name=name,
        email=email,
        password_hash=password_hash,
        role=Role.ADMIN,
    )
    logger.info("admin account %s created", email)
    return user_id


def seed_activation_codes(codes: ActivationCodeRepository, values: Sequence[str]) -> int:
    added = 0
    for code in values:
        code = code.strip()
        if code and codes.add(code):
            added += 1
    return added
