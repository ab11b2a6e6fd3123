"""
Redis client.

Async Redis wrapper used for the job-creation queue and the poll scheduler.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis

from shared.config import settings
from shared.errors import ConfigError, RetryableError
from shared.logging import get_logger

logger = get_logger("redis")


class RedisClient:
    """Thin async Redis wrapper with key prefixing and JSON helpers.

    `client` is exposed for callers that need raw list / sorted-set commands.
    """

    def __init__(self, prefix: str = "mediajobs:cache:"):
        try:
            # from_url does not connect; the pool opens lazily on first command
            self.client = redis.from_url(settings.redis_url)
        except Exception as e:
            raise ConfigError(f"Failed to initialize Redis client: {str(e)}") from e
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        """Set a string value, optionally with expiry in seconds."""
        try:
            return bool(await self.client.set(self._key(key), value.encode("utf-8"), ex=ex))
        except Exception as e:
            raise RetryableError(f"Failed to set Redis key {key}: {str(e)}") from e

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.client.get(self._key(key))
        except Exception as e:
            raise RetryableError(f"Failed to get Redis key {key}: {str(e)}") from e
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def delete(self, key: str) -> bool:
        try:
            return await self.client.delete(self._key(key)) > 0
        except Exception as e:
            raise RetryableError(f"Failed to delete Redis key {key}: {str(e)}") from e

    async def set_json(self, key: str, data: Any, ttl: Optional[int] = None) -> bool:
        return await self.set(key, json.dumps(data), ex=ttl)

    async def get_json(self, key: str) -> Optional[Any]:
        value = await self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise RetryableError(f"Failed to decode JSON for key {key}: {str(e)}") from e

    async def health_check(self) -> bool:
        try:
            await self.client.ping()
            return True
        except Exception as e:
            logger.warning("Redis health check failed", extra={"error": str(e)})
            return False

    async def close(self) -> None:
        await self.client.aclose()
