from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ComplaintStatus


@dataclass(frozen=True)
class Complaint:
    complaint_id: str
    student_id: str
    message: str
    status: ComplaintStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    student_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.complaint_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "message": self.message,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(sep=" ", timespec="seconds") if self.created_at else None,
            "updated_at": self.updated_at.isoformat(sep=" ", timespec="seconds") if self.updated_at else None,
        }
