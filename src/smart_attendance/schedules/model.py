from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import NamedTuple, Optional

from ..core.enums import DayOfWeek


class StaffSlot(NamedTuple):
    """A weekly (weekday, period) taught by one staff member, for one class.

    ``department``/``class_name`` None means the period applies to every
    department or class.
    """

    day_of_week: int
    period_id: int
    department: Optional[str] = None
    class_name: Optional[str] = None

    def covers(self, day_of_week: int, period_id: int, department: Optional[str], class_name: Optional[str]) -> bool:
        if (self.day_of_week, self.period_id) != (int(day_of_week), int(period_id)):
            return False
        if self.department and self.department != department:
            return False
        return not self.class_name or self.class_name == class_name

    def sort_key(self) -> tuple:
        return self.day_of_week, self.period_id, self.department or "", self.class_name or ""


@dataclass(frozen=True)
class ScheduledPeriod:
    """One weekly timetable slot."""

    period_row_id: str
    day_of_week: DayOfWeek
    period_id: int
    subject: str
    start_time: time
    end_time: time
    staff_id: Optional[str] = None
    staff_name: Optional[str] = None
    staff_email: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    class_name: Optional[str] = None

    @property
    def slot(self) -> tuple[int, int]:
        return int(self.day_of_week), int(self.period_id)

    @property
    def staff_slot(self) -> StaffSlot:
        return StaffSlot(int(self.day_of_week), int(self.period_id), self.department, self.class_name)

    def contains(self, moment: time) -> bool:
        return self.start_time <= moment < self.end_time

    def to_dict(self) -> dict:
        return {
            "id": self.period_row_id,
            "day_of_week": int(self.day_of_week),
            "day_name": self.day_of_week.name.title(),
            "period_id": self.period_id,
            "subject": self.subject,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "staff_id": self.staff_id,
            "staff_name": self.staff_name,
            "staff_email": self.staff_email,
            "location": self.location,
            "department": self.department,
            "class_name": self.class_name,
        }


@dataclass(frozen=True)
class NewPeriod:
    day_of_week: DayOfWeek
    period_id: int
    subject: str
    start_time: time
    end_time: time
    staff_id: Optional[str] = None
    staff_name: Optional[str] = None
    staff_email: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    class_name: Optional[str] = None
