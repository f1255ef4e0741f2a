"""
Data Action Processor — Applies data-action messages to the user-data store.

  set        store value as given (None removes the key)
  increment  current (default 0) + value (default 1)
  decrement  current (default 0) - value (default 1)
  reset      store value (default 0)

Writing ``task.activeDays`` also refreshes the derived schedule keys
(``task.nextActiveDate``, ``task.firstActiveDate``, ``task.nextActiveWeekday``)
so templates can show them.
"""
from __future__ import annotations

import structlog
from datetime import date
from typing import Any, Callable

from database.store_base import BaseUserDataStore
from models.schemas import DataAction, DataActionType
from utils.active_days import ACTIVE_DAYS_KEY, ActiveDateCalculator

logger = structlog.get_logger()


def _as_number(value: Any, default: int) -> float:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return float(value)


class DataActionProcessor:

    def __init__(self, store: BaseUserDataStore, today: Callable[[], date] = date.today):
        self._store = store
        self._today = today

    async def process(self, actions: list[DataAction]):
        """Apply actions in order. A failing action is logged and skipped."""
        for action in actions:
            try:
                await self._apply(action)
            except (TypeError, ValueError) as e:
                logger.warning("data_action_failed", key=action.key,
                               type=action.type.value, error=str(e))
                continue
            if action.key == ACTIVE_DAYS_KEY:
                await self.refresh_schedule()

    async def record(self, key: str, value: Any):
        """Store a user answer as a plain set action."""
        await self.process([DataAction(type=DataActionType.SET, key=key, value=value)])

    async def _apply(self, action: DataAction):
        if action.type == DataActionType.SET:
            await self._store.store_value(action.key, action.value)

        elif action.type == DataActionType.INCREMENT:
            current = _as_number(await self._store.get_value(action.key), 0)
            await self._store.store_value(action.key, current + _as_number(action.value, 1))

        elif action.type == DataActionType.DECREMENT:
            current = _as_number(await self._store.get_value(action.key), 0)
            await self._store.store_value(action.key, current - _as_number(action.value, 1))

        elif action.type == DataActionType.RESET:
            await self._store.store_value(
                action.key, 0 if action.value is None else action.value,
            )

        logger.debug("data_action_applied", key=action.key, type=action.type.value)

    async def refresh_schedule(self):
        calculator = await ActiveDateCalculator.from_store(self._store, today=self._today)
        await self._store.update({
            "task.nextActiveDate": calculator.next_active_date().isoformat(),
            "task.firstActiveDate": calculator.first_active_date().isoformat(),
            "task.nextActiveWeekday": calculator.next_active_weekday(),
        })
