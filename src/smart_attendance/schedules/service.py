from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..access.gate import Caller, Capability, authorize
from ..common.datetime_utils import parse_hhmm
from ..common.validators import optional_int, optional_text, require_non_empty
from ..core.enums import STAFF_ROLES, DayOfWeek, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import NewPeriod, ScheduledPeriod, StaffSlot
from .repository import ScheduleRepository
from .resolver import PeriodIndex, resolve_current_period


class ScheduleService:
    def __init__(self, schedules: ScheduleRepository, users: UserRepository):
        self._schedules = schedules
        self._users = users

    @staticmethod
    def _parse_day(value: Any) -> DayOfWeek:
        try:
            return DayOfWeek.parse(value)
        except ValueError:
            raise ValidationError("Invalid day of week")

    def list_timetable(
        self,
        caller: Caller,
        *,
        day: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
    ) -> Sequence[ScheduledPeriod]:
        day_of_week = self._parse_day(day) if day else None

        if caller.role == Role.STUDENT:
            # students only see their own branch/class
            department = caller.department
            class_name = caller.class_name

        return self._schedules.list_periods(
            day_of_week=day_of_week,
            department=optional_text(department),
            class_name=optional_text(class_name),
        )

    def my_schedule(self, caller: Caller) -> Sequence[ScheduledPeriod]:
        authorize(caller, Capability.VIEW_OWN_SCHEDULE)
        return self._schedules.list_periods(staff_id=caller.user_id, staff_email=caller.email or None)

    def create_period(self, caller: Caller, payload: Mapping[str, Any]) -> ScheduledPeriod:
        authorize(caller, Capability.MANAGE_TIMETABLE)

        day_of_week = self._parse_day(payload.get("day_of_week"))
        period_id = optional_int(payload.get("period_id"), "period_id")
        if period_id is None or period_id <= 0:
            raise ValidationError("period_id must be a positive integer")
        subject = require_non_empty(payload.get("subject"), "Subject")
        start = parse_hhmm(str(payload.get("start_time") or ""))
        end = parse_hhmm(str(payload.get("end_time") or ""))
        if start >= end:
            raise ValidationError("start_time must be before end_time")

        department = optional_text(payload.get("department"))
        if caller.role == Role.INCHARGE:
            if department and department != caller.department:
                raise AuthorizationError("Cannot schedule periods for another department")
            department = caller.department

        staff_id = optional_text(payload.get("staff_id") or payload.get("faculty_id"))
        staff_email = optional_text(payload.get("staff_email") or payload.get("faculty_email"))
        staff_name = optional_text(payload.get("staff_name") or payload.get("faculty_name"))

        staff = None
        if staff_id:
            staff = self._users.get_by_id(staff_id)
            if not staff:
                raise NotFoundError("Staff member not found")
        elif staff_email:
            staff = self._users.get_by_email(staff_email)
        if staff is not None:
            if staff.role not in STAFF_ROLES:
                raise ValidationError("Assigned staff must be a faculty, incharge or admin")
            staff_id, staff_email = staff.user_id, staff.email
            staff_name = staff_name or staff.name

        row_id = self._schedules.create(
            NewPeriod(
                day_of_week=day_of_week,
                period_id=period_id,
                subject=subject,
                start_time=start,
                end_time=end,
                staff_id=staff_id,
                staff_name=staff_name,
                staff_email=staff_email.lower() if staff_email else None,
                location=optional_text(payload.get("location")),
                department=department,
                class_name=optional_text(payload.get("class_name")),
            )
        )
        created = self._schedules.get(row_id)
        if not created:
            raise NotFoundError("Period not found")
        return created

    def delete_period(self, caller: Caller, period_row_id: str) -> None:
        authorize(caller, Capability.MANAGE_TIMETABLE)
        period = self._schedules.get(period_row_id)
        if not period:
            raise NotFoundError("Period not found")
        if caller.role == Role.INCHARGE and period.department and period.department != caller.department:
            raise AuthorizationError("Cannot delete periods of another department")
        if not self._schedules.delete(period_row_id):
            raise NotFoundError("Period not found")

    # -------- Period resolution / joins --------
    def resolve_current_period(
        self,
        now: datetime,
        *,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
    ) -> Optional[int]:
        day_of_week = DayOfWeek(now.weekday())
        periods = self._schedules.list_periods(
            day_of_week=day_of_week,
            department=department,
            class_name=class_name,
        )
        return resolve_current_period(periods, day_of_week, now.time())

    def current_slots(self, now: datetime, *, department: Optional[str] = None) -> frozenset[StaffSlot]:
        """Slots in session at ``now``, resolved separately for every class."""

        day_of_week = DayOfWeek(now.weekday())
        by_class: dict[tuple, list[ScheduledPeriod]] = {}
        for p in self._schedules.list_periods(day_of_week=day_of_week, department=department):
            by_class.setdefault((p.department, p.class_name), []).append(p)

        current = set()
        for periods in by_class.values():
            period_id = resolve_current_period(periods, day_of_week, now.time())
            if period_id is not None:
                current.add(next(p.staff_slot for p in periods if p.period_id == period_id))
        return frozenset(current)

    def period_index(self, *, department: Optional[str] = None, class_name: Optional[str] = None) -> PeriodIndex:
        return PeriodIndex(self._schedules.list_periods(department=department, class_name=class_name))

    def staff_slots(self, *, staff_id: Optional[str], staff_email: Optional[str]) -> frozenset[StaffSlot]:
        periods = self._schedules.list_periods(staff_id=staff_id, staff_email=staff_email)
        return frozenset(p.staff_slot for p in periods)

    def staff_periods(self, *, staff_id: Optional[str], staff_email: Optional[str]) -> Sequence[ScheduledPeriod]:
        return self._schedules.list_periods(staff_id=staff_id, staff_email=staff_email)
