from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import DayOfWeek
from .model import NewPeriod, ScheduledPeriod


class ScheduleRepository(Protocol):
    def list_periods(
        self,
        *,
        day_of_week: Optional[DayOfWeek] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        staff_id: Optional[str] = None,
        staff_email: Optional[str] = None,
    ) -> Sequence[ScheduledPeriod]:
        """List periods in stable order: day, start time, then insertion order.

        ``department``/``class_name`` match the given value or periods that
        carry none (school-wide slots). ``staff_id``/``staff_email`` match
        either field.
        """

        raise NotImplementedError

    def get(self, period_row_id: str) -> Optional[ScheduledPeriod]:
        raise NotImplementedError

    def create(self, period: NewPeriod) -> str:
        """Insert a period; raises ConflictError when the slot is taken."""

        raise NotImplementedError

    def delete(self, period_row_id: str) -> bool:
        raise NotImplementedError
