from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus


@dataclass(frozen=True)
class LeaveRequest:
    """Student leave ("permission") addressed to one staff approver."""

    request_id: str
    student_id: str
    faculty_id: str
    reason: str
    start_date: date
    end_date: date
    status: LeaveStatus
    created_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    student_name: Optional[str] = None

    @property
    def is_decided(self) -> bool:
        return self.status != LeaveStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.request_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "faculty_id": self.faculty_id,
            "reason": self.reason,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(sep=" ", timespec="seconds") if self.created_at else None,
            "decided_at": self.decided_at.isoformat(sep=" ", timespec="seconds") if self.decided_at else None,
        }
