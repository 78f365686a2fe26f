from __future__ import annotations

import redis.asyncio as redis

from wechat_client.configs.settings import get_settings
from wechat_client.configs.logging_config import get_logger

log = get_logger(__name__)


class RedisClient:
    """
    Owns one Redis connection pool backing a RedisCredentialStore.

    Each WechatClient gets its own instance so closing one never pulls the
    connection out from under another.
    """

    def __init__(self) -> None:
        self.client: redis.Redis | None = None

    async def connect(self, url: str | None = None) -> redis.Redis:
        url = url or get_settings().redis_url
        try:
            log.info("redis.connect url=%s", url)
            self.client = redis.from_url(url, decode_responses=True)
            await self.client.ping()
            log.info("redis.connected")
        except Exception as e:
            log.error("redis.connect_failed error=%s", str(e))
            raise
        return self.client

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None
