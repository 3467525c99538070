from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Sequence

from ..access.gate import Caller, Capability, authorize, narrow, student_in_scope
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import ComplaintStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import Complaint
from .repository import ComplaintRepository


def _parse_status(value: Optional[str]) -> ComplaintStatus:
    try:
        return ComplaintStatus(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError("Status must be pending, resolved or dismissed")


class ComplaintService:
    def __init__(
        self,
        complaints: ComplaintRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._complaints = complaints
        self._users = users
        self._clock = clock

    def file_complaint(self, caller: Caller, message: Optional[str]) -> Complaint:
        authorize(caller, Capability.FILE_COMPLAINT)
        complaint_id = self._complaints.create(
            student_id=caller.user_id,
            message=require_non_empty(message, "Message"),
        )
        created = self._complaints.get(complaint_id)
        if not created:
            raise NotFoundError("Complaint not found")
        return created

    def list_complaints(self, caller: Caller, *, status: Optional[str] = None) -> Sequence[Complaint]:
        authorize(caller, Capability.VIEW_COMPLAINTS)
        scope = narrow(caller)
        return self._complaints.list_complaints(
            student_id=scope.student_id,
            department=scope.department,
            class_name=scope.class_name,
            status=_parse_status(status) if status else None,
        )

    def my_complaints(self, caller: Caller) -> Sequence[Complaint]:
        return self._complaints.list_complaints(student_id=caller.user_id)

    def update_status(self, caller: Caller, complaint_id: str, status: Optional[str]) -> Complaint:
        authorize(caller, Capability.RESOLVE_COMPLAINT)
        new_status = _parse_status(status)

        existing = self._complaints.get(complaint_id)
        if not existing:
            raise NotFoundError("Complaint not found")
        if caller.role == Role.INCHARGE:
            student = self._users.get_by_id(existing.student_id)
            if not student or not student_in_scope(
                caller, student_department=student.department, student_class=student.class_name
            ):
                raise AuthorizationError("Student belongs to another department")

        updated = self._complaints.set_status(existing.complaint_id, status=new_status, updated_at=self._clock())
        if not updated:
            raise NotFoundError("Complaint not found")
        return updated
