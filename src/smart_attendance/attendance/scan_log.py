from __future__ import annotations

import csv
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..core.constants import SCAN_LOG_HEADER

logger = logging.getLogger(__name__)


class CsvScanLog:
    """Append-only CSV of raw hardware scans (RegNo, Name, Status, Timestamp).

    A redundant sink next to the ledger: no uniqueness, no rotation. Lines are
    kept even when the scan could not be matched to a student.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def append(self, *, reg_no: Optional[str], name: Optional[str], status: Optional[str], timestamp: datetime) -> None:
        row = [
            reg_no or "N/A",
            name or "Unknown",
            status or "P",
            timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        ]
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            new_file = not self._path.exists() or self._path.stat().st_size == 0
            with self._path.open("a", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh)
                if new_file:
                    writer.writerow(SCAN_LOG_HEADER)
                writer.writerow(row)
        logger.debug("scan logged reg_no=%s status=%s", row[0], row[2])

    def _rows(self) -> list[list[str]]:
        if not self._path.exists():
            return []
        with self._path.open("r", newline="", encoding="utf-8") as fh:
            rows = [r for r in csv.reader(fh) if r]
        if rows and tuple(c.strip() for c in rows[0]) == SCAN_LOG_HEADER:
            rows = rows[1:]
        return rows

    def read_all(self) -> list[dict]:
        """All scans, newest first."""

        entries = []
        for r in self._rows():
            r = (r + ["", "", "", ""])[:4]
            entries.append(
                {
                    "regNo": r[0] or "N/A",
                    "name": r[1] or "Unknown",
                    "status": r[2] or "N/A",
                    "time": r[3] or "N/A",
                }
            )
        entries.reverse()
        return entries

    def live_summary(self) -> list[dict]:
        """Per reg-no first (entry) and latest (exit) scan, in first-seen order."""

        stats: dict[str, dict] = {}
        for r in self._rows():
            r = (r + ["", "", "", ""])[:4]
            reg_no, name, status, seen_at = r
            if not reg_no or reg_no == "N/A" or not seen_at:
                continue
            entry = stats.get(reg_no)
            if entry is None:
                stats[reg_no] = {
                    "regNo": reg_no,
                    "name": name or "Unknown",
                    "entryTime": seen_at,
                    "exitTime": None,
                    "lastStatus": status,
                }
            else:
                entry["exitTime"] = seen_at
                entry["lastStatus"] = status
        return list(stats.values())
