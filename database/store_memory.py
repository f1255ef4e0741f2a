"""
InMemoryUserDataStore — Dict-backed store for development and testing.

All data is lost on process restart. Values are copied on the way in and out
so callers can't mutate stored lists behind the store's back.
"""
from __future__ import annotations

import copy
import structlog
from typing import Any, Optional

from database.store_base import BaseUserDataStore

logger = structlog.get_logger()


class InMemoryUserDataStore(BaseUserDataStore):

    def __init__(self, initial: dict[str, Any] = None):
        self._values: dict[str, Any] = {}
        for key, value in (initial or {}).items():
            if value is not None:
                self._values[key] = copy.deepcopy(value)
        logger.debug("inmemory_user_store_initialized", keys=len(self._values))

    async def get_value(self, key: str) -> Optional[Any]:
        if key not in self._values:
            return None
        return copy.deepcopy(self._values[key])

    async def store_value(self, key: str, value: Any) -> None:
        if value is None:
            await self.remove_value(key)
            return
        self._values[key] = copy.deepcopy(value)
        self._on_change()

    async def has_value(self, key: str) -> bool:
        return key in self._values

    async def remove_value(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._on_change()

    async def clear_all(self) -> None:
        self._values.clear()
        self._on_change()

    async def get_all(self) -> dict[str, Any]:
        return copy.deepcopy(self._values)

    def _on_change(self):
        """Hook for persistent subclasses."""
