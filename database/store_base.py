"""
Abstract User Data Store — Interface for all user-data backends.

Implementations:
  - InMemoryUserDataStore (dict-based, single-process, no persistence)
  - FileUserDataStore     (JSON file on disk, single-process, durable)

Keys are flat dotted strings such as ``user.name`` or ``task.activeDays``.
Storing None removes the key.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class BaseUserDataStore(ABC):
    """Interface that all user-data backends must implement."""

    @abstractmethod
    async def get_value(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def store_value(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def has_value(self, key: str) -> bool:
        ...

    @abstractmethod
    async def remove_value(self, key: str) -> None:
        ...

    @abstractmethod
    async def clear_all(self) -> None:
        ...

    @abstractmethod
    async def get_all(self) -> dict[str, Any]:
        ...

    async def update(self, values: dict[str, Any]) -> None:
        """Store several keys at once."""
        for key, value in values.items():
            await self.store_value(key, value)
