"""
Redis cache for dashboard aggregates.

The cache is best-effort. When Redis is disabled or unreachable every
read misses and every write is dropped, so callers always fall back to
the database.
"""

import json
from typing import Any, Optional

import redis

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "officesphere"


def cache_key(*parts: Any) -> str:
    return ":".join([KEY_PREFIX, *(str(part) for part in parts)])


class RedisClient:
    """Lazily created process-wide Redis connection."""

    _client: Optional[redis.Redis] = None
    _available: bool = True

    @classmethod
    def get_client(cls) -> Optional[redis.Redis]:
        if not settings.REDIS_ENABLED or not cls._available:
            return None
        if cls._client is None:
            cls._client = redis.Redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
        return cls._client

    @classmethod
    def ping(cls) -> bool:
        client = cls.get_client()
        if client is None:
            return False
        try:
            return bool(client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed, caching disabled: {e}")
            cls._available = False
            return False

    @classmethod
    def close(cls) -> None:
        if cls._client is not None:
            cls._client.close()
        cls._client = None

    @classmethod
    def get_json(cls, key: str) -> Optional[Any]:
        client = cls.get_client()
        if client is None:
            return None
        try:
            raw = client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Redis read failed for {key}: {e}")
            return None
        return json.loads(raw) if raw else None

    @classmethod
    def set_json(cls, key: str, value: Any, ttl_seconds: int) -> None:
        client = cls.get_client()
        if client is None:
            return
        try:
            client.setex(key, ttl_seconds, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.warning(f"Redis write failed for {key}: {e}")

    @classmethod
    def delete(cls, *keys: str) -> None:
        client = cls.get_client()
        if client is None or not keys:
            return
        try:
            client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Redis delete failed: {e}")
