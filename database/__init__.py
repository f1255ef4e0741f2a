"""
User-data persistence.

Backends:
  - In-memory (dict-based, for development/testing)
  - File (JSON file on disk, for small deployments)

Quick start:
  from database import create_store
  store = create_store(settings.store, namespace="session-1")
  await store.store_value("user.name", "Ana")
"""
from database.store_base import BaseUserDataStore
from database.store_memory import InMemoryUserDataStore
from database.store_file import FileUserDataStore
from database.store_factory import create_store

__all__ = [
    "BaseUserDataStore",
    "InMemoryUserDataStore", "FileUserDataStore",
    "create_store",
]
