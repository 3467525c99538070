from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import FrozenSet, Optional, Protocol, Sequence

from ..core.enums import AttendanceOrigin, AttendanceStatus
from ..schedules.model import StaffSlot
from .model import AttendanceRecord


@dataclass(frozen=True)
class AttendanceQuery:
    """Filter over the ledger; every field set narrows the result.

    ``slots`` restricts rows to the periods a staff member teaches: the mark's
    weekday and period must match a slot and the student must belong to the
    slot's department and class. An empty set matches nothing.
    ``period_id`` None means any period.
    """

    student_id: Optional[str] = None
    department: Optional[str] = None
    class_name: Optional[str] = None
    slots: Optional[FrozenSet[StaffSlot]] = None
    period_id: Optional[int] = None
    start: Optional[date] = None
    end: Optional[date] = None
    limit: Optional[int] = None

    @property
    def matches_nothing(self) -> bool:
        return self.slots is not None and not self.slots


class AttendanceRepository(Protocol):
    def upsert_mark(
        self,
        *,
        student_id: str,
        att_date: date,
        period_id: Optional[int],
        status: AttendanceStatus,
        origin: AttendanceOrigin,
        marked_at: datetime,
    ) -> AttendanceRecord:
        """Insert or overwrite the mark for (student_id, att_date, period_id).

        Must be a single conditional write in the store, never a read followed
        by a write. Returns the row as stored after the write.
        """

        raise NotImplementedError

    def list_marks(self, query: AttendanceQuery) -> Sequence[AttendanceRecord]:
        """Rows ordered by date desc, then period asc."""

        raise NotImplementedError

    def count_marks(self, query: AttendanceQuery) -> tuple[int, int]:
        """Return (total, present) for the rows matching ``query``."""

        raise NotImplementedError
