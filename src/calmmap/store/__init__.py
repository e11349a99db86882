"""
Segment stores.

SegmentStore is the capability the discovery stages depend on; the
in-memory store backs tests and scripting, the SQLite store backs the CLI.
"""

from .base import SegmentStore
from .memory_store import InMemorySegmentStore
from .sqlite_store import SqliteSegmentStore

__all__ = [
    "SegmentStore",
    "InMemorySegmentStore",
    "SqliteSegmentStore",
]
