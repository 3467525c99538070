from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..access.gate import Caller, Capability, authorize, narrow, student_in_scope
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import STAFF_ROLES, LeaveStatus, Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import LeaveRequest
from .repository import LeaveRequestRepository

logger = logging.getLogger(__name__)


def _parse_status(value: Optional[str]) -> Optional[LeaveStatus]:
    if not value:
        return None
    try:
        return LeaveStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError("Invalid status")


class LeaveService:
    """Leave requests: pending -> approved | rejected, never re-opened."""

    def __init__(
        self,
        leaves: LeaveRequestRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leaves = leaves
        self._users = users
        self._clock = clock

    def request_leave(
        self,
        caller: Caller,
        *,
        faculty_id: Optional[str],
        reason: Optional[str],
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> LeaveRequest:
        authorize(caller, Capability.REQUEST_LEAVE)
        reason = require_non_empty(reason, "Reason")
        if not faculty_id:
            raise ValidationError("faculty_id is required")
        if start_date is None or end_date is None:
            raise ValidationError("start_date and end_date are required")
        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        approver = self._users.get_by_id(str(faculty_id))
        if not approver or approver.role not in STAFF_ROLES:
            raise NotFoundError("Faculty not found")

        request_id = self._leaves.create(
            student_id=caller.user_id,
            faculty_id=approver.user_id,
            reason=reason,
            start_date=start_date,
            end_date=end_date,
        )
        created = self._leaves.get(request_id)
        if not created:
            raise NotFoundError("Request not found")
        return created

    def list_requests(self, caller: Caller, *, status: Optional[str] = None) -> Sequence[LeaveRequest]:
        scope = narrow(caller)
        # for leave requests the staff scope is the approver, not the timetable
        return self._leaves.list_requests(
            student_id=scope.student_id,
            faculty_id=scope.staff_id,
            department=scope.department,
            class_name=scope.class_name,
            status=_parse_status(status),
        )

    def my_requests(self, caller: Caller) -> Sequence[LeaveRequest]:
        return self._leaves.list_requests(student_id=caller.user_id)

    def decide(self, caller: Caller, request_id: str, status: Optional[str]) -> LeaveRequest:
        authorize(caller, Capability.DECIDE_LEAVE)
        decision = _parse_status(status)
        if decision not in (LeaveStatus.APPROVED, LeaveStatus.REJECTED):
            raise ValidationError("Status must be approved or rejected")

        existing = self._leaves.get(request_id)
        if not existing:
            raise NotFoundError("Request not found")

        if caller.role == Role.FACULTY and existing.faculty_id != caller.user_id:
            raise AuthorizationError("Request is addressed to another faculty member")
        if caller.role == Role.INCHARGE:
            student = self._users.get_by_id(existing.student_id)
            if not student or not student_in_scope(
                caller, student_department=student.department, student_class=student.class_name
            ):
                raise AuthorizationError("Student belongs to another department")

        if existing.is_decided:
            raise ConflictError(f"Request already {existing.status.value}")

        updated = self._leaves.decide(existing.request_id, status=decision, decided_at=self._clock())
        if not updated:
            raise ConflictError("Request was decided concurrently")
        logger.info("leave %s %s by %s", updated.request_id, decision.value, caller.user_id)
        return updated
