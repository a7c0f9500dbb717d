"""
Dashboard Payload Cache

Redis holds the serialized payload for each time filter so that several
admins refreshing the same view within the TTL share one aggregation.
Caching is opt-in: with ``DASHBOARD_CACHE_TTL_SECONDS=0`` (the default)
``init_redis`` is never called and Redis is never contacted.
"""

import json
from typing import Any, Awaitable, Callable, Optional

import structlog
from redis.asyncio import ConnectionPool, Redis

from backoffice.config import Settings, get_settings

logger = structlog.get_logger(__name__)

_pool: Optional[ConnectionPool] = None
_client: Optional[Redis] = None


async def init_redis(settings: Optional[Settings] = None) -> Redis:
    global _pool, _client

    if _client is not None:
        return _client

    redis_settings = (settings or get_settings()).redis
    _pool = ConnectionPool.from_url(
        redis_settings.get_url(),
        max_connections=redis_settings.max_connections,
        socket_timeout=redis_settings.socket_timeout,
        decode_responses=True,
    )
    _client = Redis(connection_pool=_pool)

    try:
        await _client.ping()
    except Exception as e:
        logger.error("Redis unreachable, payload cache disabled", error=str(e))
        await close_redis()
        raise

    logger.info("Payload cache connected", max_connections=redis_settings.max_connections)
    return _client


async def close_redis() -> None:
    global _pool, _client

    if _client is not None:
        await _client.aclose()
        _client = None
    if _pool is not None:
        await _pool.disconnect()
        _pool = None
        logger.info("Payload cache disconnected")


def get_redis() -> Redis:
    if _client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _client


def redis_ready() -> bool:
    return _client is not None


class CacheManager:
    """
    JSON values under ``<namespace>:<key>`` with a TTL.

    Example:
        cache = CacheManager("dashboard", default_ttl=60)
        payload = await cache.get_or_set("month", build_payload)
    """

    def __init__(self, namespace: str, default_ttl: int = 60, client: Optional[Redis] = None):
        self.namespace = namespace
        self.default_ttl = default_ttl
        self._client = client

    @property
    def client(self) -> Redis:
        return self._client or get_redis()

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        raw = await self.client.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            # treated as a miss; the next set overwrites it
            logger.warning("Ignoring corrupt cache entry", key=self._key(key))
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            raw = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning("Value not cacheable", key=self._key(key), error=str(e))
            return False
        await self.client.setex(self._key(key), ttl or self.default_ttl, raw)
        return True

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Return the cached value, or await ``factory`` and cache its result.

        Errors from ``factory`` propagate and nothing is cached.
        """
        cached = await self.get(key)
        if cached is not None:
            logger.debug("Payload cache hit", key=self._key(key))
            return cached

        value = await factory()
        await self.set(key, value, ttl)
        return value
