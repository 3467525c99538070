"""Aggregation views over the attendance ledger.

Percentages use ``round(present / total * 10000) / 100`` with half-up
rounding and are 0 when there are no marks.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

from ..access.gate import Caller, Capability, RecordFilter, authorize, narrow, require_self_or_staff
from ..attendance.repository import AttendanceQuery, AttendanceRepository
from ..attendance.service import build_query
from ..common.datetime_utils import now_local
from ..complaints.repository import ComplaintRepository
from ..core.constants import REPORT_EPOCH
from ..core.enums import AttendanceStatus
from ..core.exceptions import StoreMissingError, ValidationError
from ..permissions.repository import LeaveRequestRepository
from ..schedules.service import ScheduleService
from ..users.repository import UserRepository

logger = logging.getLogger(__name__)


def compute_percent(present: int, total: int) -> float:
    if total <= 0:
        return 0
    scaled = (Decimal(present) * 10000 / Decimal(total)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return float(scaled / 100)


class ReportService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        schedules: ScheduleService,
        users: UserRepository,
        leaves: LeaveRequestRepository,
        complaints: ComplaintRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._schedules = schedules
        self._users = users
        self._leaves = leaves
        self._complaints = complaints
        self._clock = clock

    def _range(self, start: Optional[date], end: Optional[date]) -> tuple[date, date]:
        start = start or REPORT_EPOCH
        end = end or self._clock().date()
        if start > end:
            raise ValidationError("'from' must not be after 'to'")
        return start, end

    def _student_query(
        self, caller: Caller, student_id: Optional[str], start: Optional[date], end: Optional[date]
    ) -> tuple[str, AttendanceQuery]:
        target = require_self_or_staff(caller, student_id)
        start, end = self._range(start, end)
        scope = narrow(caller, RecordFilter(student_id=target))
        return target, build_query(scope, self._schedules, start=start, end=end)

    def _period_index_for(self, student_id: str):
        student = self._users.get_by_id(student_id)
        if student is None:
            return self._schedules.period_index()
        return self._schedules.period_index(department=student.department, class_name=student.class_name)

    def attendance_percent(
        self,
        caller: Caller,
        *,
        student_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> dict:
        target, query = self._student_query(caller, student_id, start, end)
        total, present = self._attendance.count_marks(query)
        return {
            "student_id": target,
            "from": query.start.isoformat(),
            "to": query.end.isoformat(),
            "total": total,
            "present": present,
            "percent": compute_percent(present, total),
        }

    def subject_wise(
        self,
        caller: Caller,
        *,
        student_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[dict]:
        """Per-subject totals; marks with no matching period are left out."""

        target, query = self._student_query(caller, student_id, start, end)
        index = self._period_index_for(target)

        totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])
        for record in self._attendance.list_marks(query):
            period = index.lookup(record.date.weekday(), record.period_id)
            if period is None:
                continue
            bucket = totals[period.subject]
            bucket[0] += 1
            if record.is_present:
                bucket[1] += 1

        return [
            {"subject": subject, "total": total, "present": present, "percent": compute_percent(present, total)}
            for subject, (total, present) in sorted(totals.items())
        ]

    def attendance_history(
        self,
        caller: Caller,
        *,
        student_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[dict]:
        target, query = self._student_query(caller, student_id, start, end)
        index = self._period_index_for(target)

        rows = []
        for record in self._attendance.list_marks(query):
            period = index.lookup(record.date.weekday(), record.period_id)
            row = record.to_dict()
            row["subject"] = period.subject if period else None
            row["start_time"] = period.start_time.strftime("%H:%M") if period else None
            row["end_time"] = period.end_time.strftime("%H:%M") if period else None
            rows.append(row)
        return rows

    def faculty_stats(self, caller: Caller, *, start: Optional[date] = None, end: Optional[date] = None) -> list[dict]:
        authorize(caller, Capability.VIEW_FACULTY_STATS)
        start, end = self._range(start, end)

        by_slot = {}
        for p in self._schedules.staff_periods(staff_id=caller.user_id, staff_email=caller.email or None):
            by_slot.setdefault(p.staff_slot, p)
        if not by_slot:
            return []

        records = self._attendance.list_marks(AttendanceQuery(slots=frozenset(by_slot), start=start, end=end))

        groups: dict[tuple[str, int], dict] = {}
        for p in by_slot.values():
            groups.setdefault((p.subject, p.period_id), {"dates": set(), "students": set(), "present": 0, "absent": 0})
        students = {}
        for record in records:
            if record.student_id not in students:
                students[record.student_id] = self._users.get_by_id(record.student_id)
            student = students[record.student_id]
            if student is None or record.period_id is None:
                continue
            period = next(
                (
                    p
                    for slot, p in by_slot.items()
                    if slot.covers(record.date.weekday(), record.period_id, student.department, student.class_name)
                ),
                None,
            )
            if period is None:
                continue
            g = groups[(period.subject, period.period_id)]
            g["dates"].add(record.date)
            g["students"].add(record.student_id)
            if record.status == AttendanceStatus.PRESENT:
                g["present"] += 1
            else:
                g["absent"] += 1

        return [
            {
                "subject": subject,
                "period_id": period_id,
                "classes_held": len(g["dates"]),
                "present": g["present"],
                "absent": g["absent"],
                "students": len(g["students"]),
            }
            for (subject, period_id), g in sorted(groups.items())
        ]

    def overall_stats(self, caller: Caller) -> dict:
        authorize(caller, Capability.VIEW_OVERALL_STATS)
        today = self._clock().date()

        total_today, present_today = self._tolerant(
            "attendance", lambda: self._attendance.count_marks(AttendanceQuery(start=today, end=today)), (0, 0)
        )
        return {
            "total_students": self._tolerant("users", self._users.count_active_students, 0),
            "today": {
                "date": today.isoformat(),
                "total": total_today,
                "present": present_today,
                "absent": total_today - present_today,
            },
            "pending_permissions": self._tolerant("permissions", self._leaves.count_pending, 0),
            "pending_complaints": self._tolerant("complaints", self._complaints.count_pending, 0),
        }

    @staticmethod
    def _tolerant(store: str, fn, default):
        try:
            return fn()
        except StoreMissingError as e:
            logger.warning("%s store not provisioned, reporting %s: %s", store, default, e)
            return default
