"""
Redis cache and the read-through helpers the cached services are built on.

Keys follow ``<entity>:<id>`` for single entities and
``<entity-plural>:<sha256 of filter params>`` for filtered lists, so a whole
family of list entries can be dropped with ``<entity-plural>:*``.
"""
import hashlib
import json
import logging
from typing import Any, Optional, Protocol

import redis.asyncio as redis
from pydantic import BaseModel, TypeAdapter, ValidationError

from app.core.errors import InternalError

logger = logging.getLogger(__name__)


class Cache(Protocol):
    async def get(self, key: str) -> Optional[bytes]: ...

    async def set(self, key: str, value: bytes, ttl: int = 0) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def delete_by_prefix(self, pattern: str) -> int: ...


class RedisCache:
    """Redis-backed cache. A TTL of 0 means no expiry."""

    def __init__(self, url: str, client: Optional[redis.Redis] = None):
        self.url = url
        self.client = client or redis.from_url(
            url,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )

    async def get(self, key: str) -> Optional[bytes]:
        value = await self.client.get(key)
        if value is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return value

    async def set(self, key: str, value: bytes, ttl: int = 0) -> None:
        if ttl > 0:
            await self.client.set(key, value, ex=ttl)
        else:
            await self.client.set(key, value)
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)
        logger.debug("Cache DELETE: %s", key)

    async def delete_by_prefix(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g. 'quotes:*')."""
        keys = [key async for key in self.client.scan_iter(match=pattern, count=500)]
        if not keys:
            return 0
        deleted = await self.client.delete(*keys)
        logger.debug("Cache DELETE pattern: %s (%d keys)", pattern, deleted)
        return deleted

    async def close(self) -> None:
        await self.client.aclose()


def generate_cache_key(prefix: str, value: Any) -> str:
    return f"{prefix}:{value}"


def generate_cache_key_params(params: BaseModel | dict) -> str:
    """Deterministic hash of a filter, independent of field order."""
    if isinstance(params, BaseModel):
        params = params.model_dump(mode="json")
    raw = json.dumps(params, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def serialize(value: Any, type_: Any) -> bytes:
    return TypeAdapter(type_).dump_json(value)


def deserialize(data: bytes, type_: Any) -> Any:
    return TypeAdapter(type_).validate_json(data)


class ServiceCache:
    """Read-through / invalidation policy shared by the ``Cached*Service`` wrappers.

    Reads and population are best-effort: any failure is logged and treated
    as a miss. Invalidation after a committed write is not: if it fails the
    caller gets an InternalError, because the cache may now be stale.
    """

    def __init__(self, cache: Cache, ttl: int = 0):
        self.cache = cache
        self.ttl = ttl

    async def fetch(self, key: str, type_: Any) -> Any:
        try:
            data = await self.cache.get(key)
        except Exception as e:
            logger.warning("Cache get error for %s: %s", key, e)
            return None
        if data is None:
            return None
        try:
            return deserialize(data, type_)
        except (ValidationError, ValueError) as e:
            logger.warning("Discarding undecodable cache entry %s: %s", key, e)
            return None

    async def store(self, key: str, value: Any, type_: Any) -> None:
        try:
            await self.cache.set(key, serialize(value, type_), self.ttl)
        except Exception as e:
            logger.warning("Cache set failed for %s: %s", key, e)

    async def invalidate(self, keys: tuple[str, ...] = (), prefixes: tuple[str, ...] = ()) -> None:
        try:
            for key in keys:
                await self.cache.delete(key)
            for prefix in prefixes:
                await self.cache.delete_by_prefix(f"{prefix}:*")
        except Exception as e:
            logger.error("Cache invalidation failed (keys=%s prefixes=%s): %s", keys, prefixes, e)
            raise InternalError("cache invalidation failed") from e
