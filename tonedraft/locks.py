"""Named, non-reentrant leases used to avoid duplicated expensive work."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Protocol

import redis.asyncio as redis

LOGGER = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.05

# Delete the key only if it still holds our token.
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


def lease_key(user_id: str, relationship: str) -> int:
    """Deterministic non-negative 63-bit key for (user, relationship)."""
    digest = hashlib.sha256(f"{user_id}:{relationship}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") & 0x7FFF_FFFF_FFFF_FFFF


class LeaseService(Protocol):
    async def acquire(self, key: int, wait: float = 0.0) -> bool: ...

    async def release(self, key: int) -> None: ...


@asynccontextmanager
async def hold(leases: LeaseService, key: int, wait: float = 0.0) -> AsyncIterator[bool]:
    """Yield whether the lease was obtained; an obtained lease is always released."""
    acquired = await leases.acquire(key, wait)
    try:
        yield acquired
    finally:
        if acquired:
            await leases.release(key)


class InProcessLeaseService:
    """Leases shared by coroutines of one process."""

    def __init__(self) -> None:
        self._held: set[int] = set()

    def is_held(self, key: int) -> bool:
        return key in self._held

    async def acquire(self, key: int, wait: float = 0.0) -> bool:
        deadline = time.monotonic() + wait
        while key in self._held:
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(POLL_INTERVAL_SECONDS)
        self._held.add(key)
        return True

    async def release(self, key: int) -> None:
        self._held.discard(key)


class RedisLeaseService:
    """Cross-process leases stored as Redis keys with an expiry."""

    def __init__(self, url: str, ttl_seconds: float = 600.0, prefix: str = "tonedraft:lease:") -> None:
        self.client = redis.from_url(url, decode_responses=True)
        self.ttl_ms = int(ttl_seconds * 1000)
        self.prefix = prefix
        self._tokens: Dict[int, str] = {}

    async def acquire(self, key: int, wait: float = 0.0) -> bool:
        token = uuid.uuid4().hex
        deadline = time.monotonic() + wait
        while True:
            if await self.client.set(self._name(key), token, nx=True, px=self.ttl_ms):
                self._tokens[key] = token
                return True
            if time.monotonic() >= deadline:
                LOGGER.debug("Lease %s is held elsewhere", key)
                return False
            await asyncio.sleep(POLL_INTERVAL_SECONDS)

    async def release(self, key: int) -> None:
        token = self._tokens.pop(key, None)
        if token is None:
            return
        await self.client.eval(RELEASE_SCRIPT, 1, self._name(key), token)

    async def close(self) -> None:
        await self.client.aclose()

    def _name(self, key: int) -> str:
        return f"{self.prefix}{key}"
