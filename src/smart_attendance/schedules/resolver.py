from __future__ import annotations

import logging
from datetime import time
from typing import Iterable, Optional

from ..core.enums import DayOfWeek
from .model import ScheduledPeriod

logger = logging.getLogger(__name__)


def resolve_current_period(
    periods: Iterable[ScheduledPeriod],
    day_of_week: DayOfWeek,
    time_of_day: time,
) -> Optional[int]:
    """Return the period_id whose [start, end) window contains ``time_of_day``.

    ``periods`` must already be in stable order; when windows overlap the
    first one wins and the overlap is logged.
    """

    matches = [p for p in periods if p.day_of_week == day_of_week and p.contains(time_of_day)]
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            "overlapping periods on %s at %s: %s; using period %s",
            day_of_week.name.title(),
            time_of_day.strftime("%H:%M"),
            [p.period_id for p in matches],
            matches[0].period_id,
        )
    return matches[0].period_id


class PeriodIndex:
    """Lookup of periods by (weekday, period_id); first definition wins."""

    def __init__(self, periods: Iterable[ScheduledPeriod]):
        self._by_slot: dict[tuple[int, int], ScheduledPeriod] = {}
        for p in periods:
            self._by_slot.setdefault(p.slot, p)

    def __len__(self) -> int:
        return len(self._by_slot)

    def lookup(self, day_of_week: int, period_id: Optional[int]) -> Optional[ScheduledPeriod]:
        if period_id is None:
            return None
        return self._by_slot.get((int(day_of_week), int(period_id)))

    def slots(self) -> frozenset[tuple[int, int]]:
        return frozenset(self._by_slot)
