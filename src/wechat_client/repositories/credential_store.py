from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Callable, Dict, Tuple

import redis.asyncio as redis

from wechat_client.configs.logging_config import get_logger
from wechat_client.errors import StoreError

log = get_logger(__name__)


class CredentialStore(ABC):
    """
    Key/value cache with TTL semantics.

    Implementations must be safe for concurrent use and raise StoreError on
    backend failure; a miss is `("", False)`, never an exception.
    """

    @abstractmethod
    async def get(self, key: str) -> Tuple[str, bool]:
        pass

    @abstractmethod
    async def put(self, key: str, value: str, ttl: timedelta) -> None:
        pass


class InMemoryCredentialStore(CredentialStore):
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = asyncio.Lock()
        self._items: Dict[str, Tuple[str, float]] = {}

    async def get(self, key: str) -> Tuple[str, bool]:
        async with self._lock:
            item = self._items.get(key)
            if item is None:
                return "", False
            value, expires_at = item
            if self._clock() >= expires_at:
                del self._items[key]
                return "", False
            return value, True

    async def put(self, key: str, value: str, ttl: timedelta) -> None:
        seconds = ttl.total_seconds()
        async with self._lock:
            if seconds <= 0:
                # already expired; drop whatever was there
                self._items.pop(key, None)
                return
            self._items[key] = (value, self._clock() + seconds)


class RedisCredentialStore(CredentialStore):
    """
    Redis-backed store. Keys are namespaced with `key_prefix`; TTL is set with PX.
    """

    def __init__(self, client: redis.Redis, key_prefix: str = "wechat:"):
        self._client = client
        self._prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Tuple[str, bool]:
        try:
            value = await self._client.get(self._key(key))
        except redis.RedisError as exc:
            log.error("store.redis.get_failed key=%s error=%s", key, str(exc))
            raise StoreError(f"redis get {key} failed: {exc}") from exc
        if value is None:
            return "", False
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value, True

    async def put(self, key: str, value: str, ttl: timedelta) -> None:
        px = int(ttl.total_seconds() * 1000)
        try:
            if px <= 0:
                # already expired; drop whatever was there
                await self._client.delete(self._key(key))
                return
            await self._client.set(self._key(key), value, px=px)
        except redis.RedisError as exc:
            log.error("store.redis.put_failed key=%s error=%s", key, str(exc))
            raise StoreError(f"redis put {key} failed: {exc}") from exc
