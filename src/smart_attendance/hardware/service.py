from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from ..access.gate import Caller, Capability, authorize, student_in_scope
from ..attendance.service import AttendanceService
from ..common.datetime_utils import parse_timestamp
from ..core.enums import AttendanceOrigin
from ..core.exceptions import NotFoundError, ValidationError
from ..users.repository import UserRepository

logger = logging.getLogger(__name__)

_REFERENCE_COLUMNS = ("student_id", "id", "uid", "regno")
_TIME_COLUMNS = ("marked_at", "timestamp", "time")


@dataclass
class ImportResult:
    applied: int = 0
    skipped: int = 0
    errors: list[dict] = field(default_factory=list)

    def skip(self, line: int, reason: str) -> None:
        self.skipped += 1
        self.errors.append({"line": line, "reason": reason})

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "applied": self.applied,
            "skipped": self.skipped,
            "errors": self.errors,
            "message": f"Processed {self.applied} attendance records",
        }


def _first(row: Mapping[str, Optional[str]], names: Iterable[str]) -> Optional[str]:
    for name in names:
        value = row.get(name)
        if value and value.strip():
            return value.strip()
    return None


class CsvAttendanceImporter:
    """Batch import of scanner CSV exports.

    Each row is marked on its own; bad rows are counted and skipped so one
    unknown tag never aborts the batch.
    """

    def __init__(self, attendance: AttendanceService, users: UserRepository):
        self._attendance = attendance
        self._users = users

    def import_text(self, caller: Caller, text: str) -> ImportResult:
        authorize(caller, Capability.UPLOAD_ATTENDANCE)

        reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
        if not reader.fieldnames:
            raise ValidationError("CSV file is empty")
        reader.fieldnames = [(h or "").strip().lower() for h in reader.fieldnames]
        if not any(c in reader.fieldnames for c in _REFERENCE_COLUMNS):
            raise ValidationError("CSV needs a student_id or id column")

        result = ImportResult()
        # header is line 1
        for line, row in enumerate(reader, start=2):
            try:
                self._apply_row(caller, row)
            except (ValidationError, NotFoundError) as e:
                logger.warning("csv line %s skipped: %s", line, e)
                result.skip(line, str(e))
                continue
            result.applied += 1

        logger.info("csv import by %s: applied=%s skipped=%s", caller.user_id, result.applied, result.skipped)
        return result

    def _apply_row(self, caller: Caller, row: Mapping[str, Optional[str]]) -> None:
        ref = _first(row, _REFERENCE_COLUMNS)
        if not ref:
            raise ValidationError("missing student reference")

        student = self._users.find_by_reference(ref)
        if not student or not student.is_student or not student.is_active:
            raise NotFoundError(f"unknown student {ref!r}")
        if not student_in_scope(caller, student_department=student.department, student_class=student.class_name):
            raise NotFoundError(f"student {ref!r} is outside your department")

        raw_time = _first(row, _TIME_COLUMNS)
        marked_at = parse_timestamp(raw_time) if raw_time else None

        self._attendance.mark_attendance(
            student.user_id,
            status=_first(row, ("status",)) or "P",
            origin=AttendanceOrigin.UPLOAD,
            att_date=marked_at.date() if marked_at else None,
            period_id=_first(row, ("period_id", "period")),
            marked_at=marked_at,
        )
