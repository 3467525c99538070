from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError, ServerSelectionTimeoutError

from ..core.exceptions import ConflictError, UnavailableError

USERS = "users"
ACTIVATION_CODES = "activation_codes"
TIMETABLE = "timetable"
ATTENDANCE = "attendance"
PERMISSIONS = "permissions"
COMPLAINTS = "complaints"


@dataclass
class MongoConfig:
    uri: str
    database: str
    connect_timeout: int = 5


class MongoConnection:
    """Owns the single MongoClient; collections are looked up per repository call."""

    def __init__(self, config: MongoConfig, *, client: Optional[MongoClient] = None):
        self._config = config
        timeout_ms = int(config.connect_timeout) * 1000
        self._client = client or MongoClient(
            config.uri,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms * 2,
            tz_aware=False,
        )

    @property
    def db(self):
        return self._client[self._config.database]

    def collection(self, name: str):
        return self.db[name]

    def has_collection(self, name: str) -> bool:
        return name in self.db.list_collection_names()

    def ping(self) -> None:
        self._client.admin.command("ping")

    def ensure_indexes(self) -> None:
        users = self.collection(USERS)
        users.create_index("email", unique=True, name="uq_users_email")
        # uid is optional, so the unique index only covers documents that carry one
        users.create_index(
            "uid",
            unique=True,
            name="uq_users_uid",
            partialFilterExpression={"uid": {"$type": "string"}},
        )
        users.create_index([("department", ASCENDING), ("role", ASCENDING)])

        self.collection(ACTIVATION_CODES).create_index("code", unique=True)

        self.collection(TIMETABLE).create_index(
            [
                ("day_of_week", ASCENDING),
                ("period_id", ASCENDING),
                ("department", ASCENDING),
                ("class_name", ASCENDING),
            ],
            unique=True,
            name="uq_timetable_slot",
        )

        self.collection(ATTENDANCE).create_index(
            [("student_id", ASCENDING), ("date", ASCENDING), ("period_id", ASCENDING)],
            unique=True,
            name="uq_attendance_key",
        )
        self.collection(ATTENDANCE).create_index("date")

        self.collection(PERMISSIONS).create_index("status")
        self.collection(COMPLAINTS).create_index("status")


@contextmanager
def mongo_errors(duplicate_message: str = "Duplicate entry"):
    """Translate pymongo errors raised inside the block into domain errors."""

    try:
        yield
    except DuplicateKeyError as e:
        raise ConflictError(_duplicate_message(e, duplicate_message)) from e
    except (ServerSelectionTimeoutError, ConnectionFailure) as e:
        raise UnavailableError("Database is not reachable") from e


def _duplicate_message(exc: PyMongoError, default: str) -> str:
    text = str(exc)
    if "uq_users_email" in text:
        return "Email already exists"
    if "uq_users_uid" in text:
        return "UID already mapped to another user"
    if "uq_timetable_slot" in text:
        return "A period with this day and period id already exists"
    return default


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def doc_id(doc: Dict[str, Any]) -> str:
    return str(doc["_id"])
