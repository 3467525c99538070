from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveStatus
from .model import LeaveRequest


class LeaveRequestRepository(Protocol):
    def create(
        self,
        *,
        student_id: str,
        faculty_id: str,
        reason: str,
        start_date: date,
        end_date: date,
    ) -> str:
        raise NotImplementedError

    def get(self, request_id: str) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_requests(
        self,
        *,
        student_id: Optional[str] = None,
        faculty_id: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[LeaveStatus] = None,
    ) -> Sequence[LeaveRequest]:
        """Newest first. ``department``/``class_name`` scope by the student."""

        raise NotImplementedError

    def decide(self, request_id: str, *, status: LeaveStatus, decided_at: datetime) -> Optional[LeaveRequest]:
        """Move a pending request to ``status``; None when it is no longer pending."""

        raise NotImplementedError

    def count_pending(self) -> int:
        """Raises StoreMissingError when the store is not provisioned."""

        raise NotImplementedError
