"""In-process store, the default for every event bus."""

from typing import Any

from loguru import logger

from .base import PersistentStoreAdapter


class MemoryStoreAdapter(PersistentStoreAdapter):
    """Dict backed store. Contents are lost when the process exits."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        logger.debug("MemoryStoreAdapter initialized")

    async def get(self, key: str) -> Any:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
