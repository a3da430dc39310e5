"""Persistent store adapter contract."""

from abc import ABC, abstractmethod
from typing import Any


class PersistentStoreAdapter(ABC):
    """Async key/value store.

    Values must be JSON serializable for adapters that persist outside the
    process. ``get`` returns ``None`` for unknown keys and ``delete`` of an
    unknown key is a no-op.
    """

    @abstractmethod
    async def get(self, key: str) -> Any:
        """Return the value stored under ``key`` or ``None``."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` from the store."""
