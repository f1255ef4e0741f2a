"""
Content resource loaders.

A loader maps a relative path (e.g. ``content/bot/acknowledge/default.txt``)
to raw text, or None when the resource does not exist. The resolver treats
any exception from ``load`` as "not found" for that one path, except
ContentStoreUnavailable, which means the whole resource layer is down.

Implementations:
  - FileContentLoader     (files under an assets root, read off the event loop)
  - InMemoryContentLoader (dict-backed, for tests and embedded content)
"""
from __future__ import annotations

import asyncio
import structlog
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

logger = structlog.get_logger()


class ContentStoreUnavailable(Exception):
    """The resource layer as a whole cannot serve reads."""


class BaseContentLoader(ABC):

    @abstractmethod
    async def load(self, path: str) -> Optional[str]:
        ...


class FileContentLoader(BaseContentLoader):
    """Reads UTF-8 text files below ``assets_dir``."""

    def __init__(self, assets_dir: str = "./assets"):
        self._root = Path(assets_dir).resolve()
        logger.info("file_content_loader_initialized", assets_dir=str(self._root))

    def _resolve(self, path: str) -> Optional[Path]:
        full = (self._root / path).resolve()
        # Paths come from semantic keys; never let one escape the assets root.
        if self._root != full and self._root not in full.parents:
            logger.warning("content_path_outside_root", path=path)
            return None
        return full

    async def load(self, path: str) -> Optional[str]:
        if not self._root.is_dir():
            raise ContentStoreUnavailable(f"assets directory {self._root} is missing")
        full = self._resolve(path)
        if full is None or not full.is_file():
            return None
        return await asyncio.to_thread(full.read_text, encoding="utf-8")


class InMemoryContentLoader(BaseContentLoader):
    """Serves content from a path → text mapping. Records every read."""

    def __init__(self, files: dict[str, str] = None):
        self._files: dict[str, str] = dict(files or {})
        self.reads: list[str] = []

    def put(self, path: str, text: str):
        self._files[path] = text

    async def load(self, path: str) -> Optional[str]:
        self.reads.append(path)
        return self._files.get(path)
