from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ComplaintStatus
from .model import Complaint


class ComplaintRepository(Protocol):
    def create(self, *, student_id: str, message: str) -> str:
        raise NotImplementedError

    def get(self, complaint_id: str) -> Optional[Complaint]:
        raise NotImplementedError

    def list_complaints(
        self,
        *,
        student_id: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[ComplaintStatus] = None,
    ) -> Sequence[Complaint]:
        raise NotImplementedError

    def set_status(self, complaint_id: str, *, status: ComplaintStatus, updated_at: datetime) -> Optional[Complaint]:
        raise NotImplementedError

    def count_pending(self) -> int:
        """Raises StoreMissingError when the store is not provisioned."""

        raise NotImplementedError
