"""
Active days — which ISO weekdays (1 = Monday … 7 = Sunday) a user's task runs on.

``task.activeDays`` arrives either as a list (``[1, 3, 5]``) or as a
JSON-encoded string (``"[1,3,5]"``). parse_active_days turns both into the
canonical list[int] once; nothing downstream inspects the raw shape again.
"""
from __future__ import annotations

import json
import structlog
from datetime import date, timedelta
from typing import Any, Callable, Optional, Union

logger = structlog.get_logger()

ACTIVE_DAYS_KEY = "task.activeDays"
LOOKAHEAD_DAYS = 365

RawActiveDays = Union[list, str, None]


def _as_weekday(item: Any) -> Optional[int]:
    if isinstance(item, bool):
        return None
    try:
        day = int(item)
    except (TypeError, ValueError):
        return None
    return day if 1 <= day <= 7 else None


def parse_active_days(raw: RawActiveDays) -> Optional[list[int]]:
    """
    Canonical weekday list, or None when nothing usable is configured.
    Invalid entries are dropped.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        text = raw.strip()
        if not (text.startswith("[") and text.endswith("]")):
            return None
        try:
            raw = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("active_days_invalid_json", value=text)
            return None
    if not isinstance(raw, (list, tuple)):
        return None
    days = [d for d in (_as_weekday(item) for item in raw) if d is not None]
    return sorted(set(days))


class ActiveDateCalculator:
    """
    Finds the next date that falls on an active weekday.
    ``today`` is injectable so tests can pin the calendar.
    """

    def __init__(self, active_days: Optional[list[int]], today: Callable[[], date] = date.today):
        self.active_days = active_days or []
        self._today = today

    @classmethod
    async def from_store(cls, store, today: Callable[[], date] = date.today) -> "ActiveDateCalculator":
        raw = await store.get_value(ACTIVE_DAYS_KEY)
        return cls(parse_active_days(raw), today=today)

    def next_active_date(self) -> date:
        """First active date strictly after today (tomorrow when none configured)."""
        now = self._today()
        if not self.active_days:
            return now + timedelta(days=1)
        found = self._scan(now, start=1)
        if found is None:
            logger.warning("no_active_date_found", active_days=self.active_days)
            return now + timedelta(days=1)
        return found

    def first_active_date(self) -> date:
        """Like next_active_date but today counts."""
        now = self._today()
        if not self.active_days:
            return now
        found = self._scan(now, start=0)
        if found is None:
            logger.warning("no_first_active_date_found", active_days=self.active_days)
            return now
        return found

    def next_active_weekday(self) -> int:
        return self.next_active_date().isoweekday()

    def is_active(self, day: date) -> bool:
        return day.isoweekday() in self.active_days

    def _scan(self, start_day: date, start: int) -> Optional[date]:
        for offset in range(start, LOOKAHEAD_DAYS + 1):
            candidate = start_day + timedelta(days=offset)
            if self.is_active(candidate):
                return candidate
        return None
