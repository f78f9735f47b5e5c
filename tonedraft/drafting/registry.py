"""Process-lifetime registries of expensive per-provider objects."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class KeyedRegistry(Generic[T]):
    """Builds one instance per key on first use and hands the same one out afterwards.

    Owned by the composition root and passed to whoever needs it.
    """

    def __init__(self, factory: Callable[[str], Awaitable[T]], name: str = "registry") -> None:
        self._factory = factory
        self._name = name
        self._instances: Dict[str, T] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> T:
        instance = self._instances.get(key)
        if instance is not None:
            return instance
        async with self._lock:
            instance = self._instances.get(key)
            if instance is None:
                LOGGER.info("Initializing %s entry for %s", self._name, key)
                instance = await self._factory(key)
                self._instances[key] = instance
        return instance

    def __contains__(self, key: str) -> bool:
        return key in self._instances

    def __len__(self) -> int:
        return len(self._instances)
