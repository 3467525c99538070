from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..access.gate import Caller, Capability, RecordFilter, authorize, narrow, student_in_scope
from ..common.datetime_utils import now_local
from ..common.validators import optional_int, optional_text
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceOrigin, AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..schedules.service import ScheduleService
from ..users.model import User
from ..users.repository import UserRepository
from .model import AttendanceRecord, TodaySnapshot
from .repository import AttendanceQuery, AttendanceRepository
from .scan_log import CsvScanLog

logger = logging.getLogger(__name__)


def parse_status(value: object) -> AttendanceStatus:
    try:
        return AttendanceStatus.parse(value)
    except ValueError:
        raise ValidationError("Status must be Present (P) or Absent (A)")


def parse_period_id(value: object) -> Optional[int]:
    period_id = optional_int(value, "period_id")
    if period_id is not None and period_id <= 0:
        raise ValidationError("period_id must be a positive integer")
    return period_id


def build_query(
    scope: RecordFilter,
    schedules: ScheduleService,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    period_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> AttendanceQuery:
    """Translate a narrowed filter into a ledger query.

    A staff filter becomes the set of slots the staff member teaches, so only
    marks taken in those periods for the students of those classes are visible.
    """

    slots = None
    if scope.by_staff:
        slots = schedules.staff_slots(staff_id=scope.staff_id, staff_email=scope.staff_email)
    return AttendanceQuery(
        student_id=scope.student_id,
        department=scope.department,
        class_name=scope.class_name,
        slots=slots,
        period_id=period_id,
        start=start,
        end=end,
        limit=limit,
    )


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        schedules: ScheduleService,
        *,
        scan_log: Optional[CsvScanLog] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._users = users
        self._schedules = schedules
        self._scan_log = scan_log
        self._clock = clock

    @property
    def scan_log(self) -> Optional[CsvScanLog]:
        return self._scan_log

    def _require_student(self, student_id: str) -> User:
        student = self._users.get_by_id(str(student_id)) if student_id else None
        if not student or not student.is_student or not student.is_active:
            raise NotFoundError("Student not found")
        return student

    def _write(
        self,
        student: User,
        *,
        status: AttendanceStatus,
        origin: AttendanceOrigin,
        att_date: Optional[date],
        period_id: Optional[int],
        marked_at: Optional[datetime],
    ) -> AttendanceRecord:
        marked_at = marked_at or self._clock()
        return self._attendance.upsert_mark(
            student_id=student.user_id,
            att_date=att_date or marked_at.date(),
            period_id=period_id,
            status=status,
            origin=origin,
            marked_at=marked_at,
        )

    def mark_attendance(
        self,
        student_id: str,
        *,
        status: object,
        origin: AttendanceOrigin = AttendanceOrigin.WEB,
        att_date: Optional[date] = None,
        period_id: Optional[int] = None,
        marked_at: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Insert or overwrite the mark for (student, date, period)."""

        parsed = parse_status(status)
        period_id = parse_period_id(period_id)
        student = self._require_student(student_id)
        return self._write(
            student,
            status=parsed,
            origin=origin,
            att_date=att_date,
            period_id=period_id,
            marked_at=marked_at,
        )

    def manual_mark(
        self,
        caller: Caller,
        *,
        student_id: str,
        status: object,
        period_id: object = None,
        att_date: Optional[date] = None,
    ) -> AttendanceRecord:
        authorize(caller, Capability.MARK_ATTENDANCE)
        parsed = parse_status(status)
        period = parse_period_id(period_id)

        student = self._require_student(student_id)
        if not student_in_scope(caller, student_department=student.department, student_class=student.class_name):
            raise AuthorizationError("Student belongs to another department")

        now = self._clock()
        day = att_date or now.date()
        if caller.role == Role.FACULTY and period is not None:
            index = self._schedules.period_index(department=student.department, class_name=student.class_name)
            known = index.lookup(day.weekday(), period)
            if known and not _teaches(caller, known.staff_id, known.staff_email):
                raise AuthorizationError("You are not assigned to this period")

        return self._write(
            student,
            status=parsed,
            origin=AttendanceOrigin.WEB,
            att_date=day,
            period_id=period,
            marked_at=now,
        )

    def record_scan(
        self,
        *,
        uid: Optional[str] = None,
        student_id: Optional[str] = None,
        status: object = None,
        name: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        att_date: Optional[date] = None,
        period_id: object = None,
    ) -> Optional[AttendanceRecord]:
        """Record a hardware scan; returns None when the tag matches no student.

        The raw scan is always appended to the scan log first.
        """

        parsed = parse_status(status or AttendanceStatus.PRESENT.value)
        period = parse_period_id(period_id)
        scanned_at = timestamp or self._clock()
        uid = optional_text(uid)
        student_id = optional_text(student_id)

        if self._scan_log is not None:
            self._scan_log.append(
                reg_no=uid or student_id,
                name=name,
                status=str(status or parsed.value),
                timestamp=scanned_at,
            )

        if student_id:
            student = self._users.get_by_id(student_id)
        elif uid:
            student = self._users.find_by_reference(uid)
        else:
            raise ValidationError("uid or student_id is required")

        if not student or not student.is_student or not student.is_active:
            logger.warning("scan skipped, no active student for uid=%s student_id=%s", uid, student_id)
            return None

        if period is None:
            period = self._schedules.resolve_current_period(
                scanned_at,
                department=student.department,
                class_name=student.class_name,
            )

        return self._write(
            student,
            status=parsed,
            origin=AttendanceOrigin.HARDWARE,
            att_date=att_date,
            period_id=period,
            marked_at=scanned_at,
        )

    def list_marks(
        self,
        caller: Caller,
        *,
        student_id: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceRecord]:
        scope = narrow(
            caller,
            RecordFilter(
                student_id=optional_text(student_id),
                department=optional_text(department),
                class_name=optional_text(class_name),
            ),
        )
        return self._attendance.list_marks(
            build_query(scope, self._schedules, start=start, end=end, limit=limit)
        )

    def today(self, caller: Caller, *, period_id: object = None, now: Optional[datetime] = None) -> TodaySnapshot:
        """Today's marks for the period in session.

        A caller tied to a class gets that class's current period. Otherwise
        each class in scope is resolved on its own; ``period_id`` is then None
        when the classes are in different periods.
        """

        now = now or self._clock()
        period = parse_period_id(period_id)
        scope = narrow(caller)
        query = build_query(scope, self._schedules, start=now.date(), end=now.date(), period_id=period)

        if period is None and caller.class_name:
            period = self._schedules.resolve_current_period(
                now,
                department=caller.department,
                class_name=caller.class_name,
            )
            query = replace(query, period_id=period)
        elif period is None:
            current = self._schedules.current_slots(now, department=scope.department)
            if current:
                slots = current if query.slots is None else current & query.slots
                query = replace(query, slots=slots)
                period_ids = {s.period_id for s in slots}
                period = period_ids.pop() if len(period_ids) == 1 else None

        records = self._attendance.list_marks(query)
        return TodaySnapshot(date=now.date(), period_id=period, records=tuple(records))


def _teaches(caller: Caller, staff_id: Optional[str], staff_email: Optional[str]) -> bool:
    if staff_id and staff_id == caller.user_id:
        return True
    return bool(staff_email and caller.email and staff_email.lower() == caller.email.lower())
