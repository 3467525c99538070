from __future__ import annotations

from enum import Enum, IntEnum


class Role(str, Enum):
    """Roles used by the access gate."""

    STUDENT = "student"
    FACULTY = "faculty"
    INCHARGE = "incharge"
    ADMIN = "admin"


STAFF_ROLES = frozenset({Role.FACULTY, Role.INCHARGE, Role.ADMIN})


class AttendanceStatus(str, Enum):
    """Presence status as stored in the ledger."""

    PRESENT = "P"
    ABSENT = "A"

    @classmethod
    def parse(cls, value: object) -> "AttendanceStatus":
        if isinstance(value, AttendanceStatus):
            return value
        v = str(value or "").strip().upper()
        if v in {"P", "PRESENT", "IN"}:
            return cls.PRESENT
        if v in {"A", "ABSENT"}:
            return cls.ABSENT
        raise ValueError(f"Unknown attendance status: {value!r}")


class AttendanceOrigin(str, Enum):
    """Channel that produced a mark."""

    WEB = "web"
    HARDWARE = "hardware"
    UPLOAD = "upload"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ComplaintStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class DayOfWeek(IntEnum):
    """Weekday numbering shared with ``date.weekday()`` and MySQL ``WEEKDAY()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def parse(cls, value: object) -> "DayOfWeek":
        if isinstance(value, DayOfWeek):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        v = str(value or "").strip()
        if v.isdigit():
            return cls(int(v))
        for day in cls:
            if day.name.lower().startswith(v.lower()) and len(v) >= 3:
                return day
        raise ValueError(f"Unknown day of week: {value!r}")
