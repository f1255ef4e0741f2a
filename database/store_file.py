"""
FileUserDataStore — JSON file-backed store with persistence across restarts.

Extends InMemoryUserDataStore: loads the file on init and rewrites it after
every mutation (write to a temp file, then rename). Single-process only.

Best for: the terminal runner, small deployments, demos.
"""
from __future__ import annotations

import json
import os
import structlog
from pathlib import Path

from database.store_memory import InMemoryUserDataStore

logger = structlog.get_logger()


class FileUserDataStore(InMemoryUserDataStore):

    def __init__(self, file_path: str = "./data/user_data.json"):
        super().__init__()
        self._path = Path(file_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._load()
        logger.info("file_user_store_initialized", path=str(self._path),
                    keys=len(self._values))

    def _load(self):
        if not self._path.exists():
            return
        try:
            with open(self._path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("file_user_store_load_error", path=str(self._path), error=str(e))
            return
        if not isinstance(data, dict):
            logger.warning("file_user_store_not_a_mapping", path=str(self._path))
            return
        self._values = {k: v for k, v in data.items() if v is not None}

    def _on_change(self):
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(self._values, f, indent=2, default=str)
        os.replace(tmp, self._path)
