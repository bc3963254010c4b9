"""Directory and record store implementations."""

from .memory import InMemoryDirectory, InMemoryRecordStore
from .sqlite import SqliteStore

__all__ = ["InMemoryDirectory", "InMemoryRecordStore", "SqliteStore"]
