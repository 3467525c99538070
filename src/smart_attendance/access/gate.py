"""Role-scoped access gate.

Every service asks this module two questions before touching a store:
``authorize`` (may this role use the capability at all?) and ``narrow``
(which rows may it see?). Both are pure functions of the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from ..core.enums import Role
from ..core.exceptions import AuthorizationError


@dataclass(frozen=True)
class Caller:
    """Authenticated identity carried by a request."""

    user_id: str
    role: Role
    name: str = ""
    email: str = ""
    department: Optional[str] = None
    class_name: Optional[str] = None

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT


class Capability(str, Enum):
    MARK_ATTENDANCE = "mark_attendance"
    UPLOAD_ATTENDANCE = "upload_attendance"
    VIEW_SCAN_LOG = "view_scan_log"
    VIEW_STUDENT_REPORTS = "view_student_reports"
    VIEW_FACULTY_STATS = "view_faculty_stats"
    VIEW_OVERALL_STATS = "view_overall_stats"
    MANAGE_USERS = "manage_users"
    MAP_HARDWARE_TAG = "map_hardware_tag"
    TOGGLE_ACCOUNT = "toggle_account"
    CHANGE_ROLE = "change_role"
    MANAGE_TIMETABLE = "manage_timetable"
    VIEW_OWN_SCHEDULE = "view_own_schedule"
    REQUEST_LEAVE = "request_leave"
    DECIDE_LEAVE = "decide_leave"
    FILE_COMPLAINT = "file_complaint"
    VIEW_COMPLAINTS = "view_complaints"
    RESOLVE_COMPLAINT = "resolve_complaint"


_STAFF = frozenset({Role.FACULTY, Role.INCHARGE, Role.ADMIN})
_MANAGERS = frozenset({Role.INCHARGE, Role.ADMIN})
_ADMIN = frozenset({Role.ADMIN})
_STUDENT = frozenset({Role.STUDENT})

_CAPABILITY_ROLES: dict[Capability, frozenset[Role]] = {
    Capability.MARK_ATTENDANCE: _STAFF,
    Capability.UPLOAD_ATTENDANCE: _MANAGERS,
    Capability.VIEW_SCAN_LOG: _STAFF,
    Capability.VIEW_STUDENT_REPORTS: _STAFF,
    Capability.VIEW_FACULTY_STATS: frozenset({Role.FACULTY}),
    Capability.VIEW_OVERALL_STATS: _MANAGERS,
    Capability.MANAGE_USERS: _MANAGERS,
    Capability.MAP_HARDWARE_TAG: _MANAGERS,
    Capability.TOGGLE_ACCOUNT: _ADMIN,
    Capability.CHANGE_ROLE: _ADMIN,
    Capability.MANAGE_TIMETABLE: _MANAGERS,
    Capability.VIEW_OWN_SCHEDULE: _STAFF,
    Capability.REQUEST_LEAVE: _STUDENT,
    Capability.DECIDE_LEAVE: _STAFF,
    Capability.FILE_COMPLAINT: _STUDENT,
    Capability.VIEW_COMPLAINTS: frozenset({Role.STUDENT, Role.INCHARGE, Role.ADMIN}),
    Capability.RESOLVE_COMPLAINT: _MANAGERS,
}


def authorize(caller: Caller, capability: Capability) -> None:
    if caller.role not in _CAPABILITY_ROLES[capability]:
        raise AuthorizationError("Forbidden")


@dataclass(frozen=True)
class RecordFilter:
    """Row scope for attendance/leave/complaint queries.

    ``staff_id``/``staff_email`` restrict rows to periods taught by that staff
    member; ``department``/``class_name`` restrict rows to students of that
    scope.
    """

    student_id: Optional[str] = None
    department: Optional[str] = None
    class_name: Optional[str] = None
    staff_id: Optional[str] = None
    staff_email: Optional[str] = None

    @property
    def by_staff(self) -> bool:
        return self.staff_id is not None


def narrow(caller: Caller, requested: Optional[RecordFilter] = None) -> RecordFilter:
    """Return the filter the caller is actually allowed to apply.

    Students always get their own rows; the requested filter is ignored, not
    merged. Faculty are pinned to their assigned periods, incharges to their
    department (and class, when set). Admins get what they asked for.
    """

    requested = requested or RecordFilter()

    if caller.role == Role.STUDENT:
        return RecordFilter(student_id=caller.user_id)

    if caller.role == Role.FACULTY:
        return RecordFilter(
            student_id=requested.student_id,
            staff_id=caller.user_id,
            staff_email=caller.email or None,
        )

    if caller.role == Role.INCHARGE:
        if not caller.department:
            raise AuthorizationError("Incharge account has no department assigned")
        return RecordFilter(
            student_id=requested.student_id,
            department=caller.department,
            class_name=caller.class_name or requested.class_name,
        )

    if caller.role == Role.ADMIN:
        return replace(requested)

    raise AuthorizationError("Forbidden")


def require_self_or_staff(caller: Caller, target_id: Optional[str]) -> str:
    """Resolve the student a report is about; students may only ask about themselves."""

    target = str(target_id) if target_id else caller.user_id
    if caller.role == Role.STUDENT:
        if target != caller.user_id:
            raise AuthorizationError("Forbidden")
        return target
    authorize(caller, Capability.VIEW_STUDENT_REPORTS)
    return target


def check_account_scope(caller: Caller, *, target_role: Role, target_department: Optional[str]) -> None:
    """Incharges manage only student accounts of their own department."""

    authorize(caller, Capability.MANAGE_USERS)
    if caller.role == Role.ADMIN:
        return
    if target_role != Role.STUDENT:
        raise AuthorizationError("Incharges can only manage Student accounts.")
    if caller.department and target_department and target_department != caller.department:
        raise AuthorizationError("Student belongs to another department")


def student_in_scope(caller: Caller, *, student_department: Optional[str], student_class: Optional[str]) -> bool:
    """Whether an incharge's department/class covers the given student."""

    if caller.role != Role.INCHARGE:
        return True
    if not caller.department or student_department != caller.department:
        return False
    return not caller.class_name or student_class == caller.class_name
