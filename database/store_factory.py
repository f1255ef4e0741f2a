"""
Store Factory — Create the right user-data backend from configuration.

Configuration in settings.yaml:
    store:
      #   "memory" — in-memory dicts (development, testing)
      #   "file"   — one JSON file per namespace under data_dir
      backend: memory
      data_dir: ./data

Usage:
    from database.store_factory import create_store
    store = create_store(settings.store, namespace=session_id)
"""
from __future__ import annotations

import re
import structlog
from pathlib import Path

from config.settings import StoreConfig
from database.store_base import BaseUserDataStore

logger = structlog.get_logger()

_SAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]")


def create_store(config: StoreConfig = None, namespace: str = "default") -> BaseUserDataStore:
    """
    Factory: create a user-data store for one namespace (a session or a user).
    Unknown backends fall back to memory.
    """
    config = config or StoreConfig()

    if config.backend == "file":
        from database.store_file import FileUserDataStore
        name = _SAFE_NAME.sub("_", namespace) or "default"
        path = Path(config.data_dir) / f"{name}.json"
        logger.info("store_created", backend="file", path=str(path))
        return FileUserDataStore(file_path=str(path))

    if config.backend != "memory":
        logger.warning("unknown_store_backend", backend=config.backend)

    from database.store_memory import InMemoryUserDataStore
    logger.debug("store_created", backend="memory", namespace=namespace)
    return InMemoryUserDataStore()
