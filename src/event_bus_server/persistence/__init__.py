"""Persistent key/value stores available to connectors and handlers.

The bus holds exactly one store per instance. ``MemoryStoreAdapter`` is the
default; ``SQLStoreAdapter`` keeps values in any SQLAlchemy supported database.
"""

from event_bus_server.exceptions import PersistentStoreError

from .base import PersistentStoreAdapter
from .memory import MemoryStoreAdapter
from .sql import KeyValueEntry, SQLStoreAdapter

__all__ = [
    "KeyValueEntry",
    "MemoryStoreAdapter",
    "PersistentStoreAdapter",
    "PersistentStoreError",
    "SQLStoreAdapter",
]
