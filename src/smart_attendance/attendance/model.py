from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceOrigin, AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One ledger row, keyed by (student_id, date, period_id).

    ``period_id`` is None for a daily mark that is not tied to a period.
    """

    record_id: str
    student_id: str
    date: date
    period_id: Optional[int]
    status: AttendanceStatus
    origin: AttendanceOrigin
    marked_at: datetime

    @property
    def is_present(self) -> bool:
        return self.status == AttendanceStatus.PRESENT

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "student_id": self.student_id,
            "date": self.date.isoformat(),
            "period_id": self.period_id,
            "status": self.status.value,
            "origin": self.origin.value,
            "marked_at": self.marked_at.isoformat(sep=" ", timespec="seconds"),
        }


@dataclass(frozen=True)
class TodaySnapshot:
    date: date
    period_id: Optional[int]
    records: tuple[AttendanceRecord, ...]

    def to_dict(self) -> dict:
        present = sum(1 for r in self.records if r.is_present)
        return {
            "date": self.date.isoformat(),
            "period_id": self.period_id,
            "total": len(self.records),
            "present": present,
            "absent": len(self.records) - present,
            "records": [r.to_dict() for r in self.records],
        }
