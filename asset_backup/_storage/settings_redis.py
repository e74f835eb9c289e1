"""Redis-backed settings store for shared deployments."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.retry import Retry

from ..base import BaseSettingsStore
from .._utils import logger


@dataclass
class RedisSettingsStore(BaseSettingsStore):
    """Settings stored as plain string values under a namespaced key prefix."""

    _redis_client: Optional[Any] = field(init=False, default=None)
    _connection_pool: Optional[Any] = field(init=False, default=None)
    _initialized: bool = field(init=False, default=False)

    def __post_init__(self):
        prefix = self.global_config.get("redis_prefix", "asset_backup")
        self._prefix = f"{prefix}:{self.namespace}:"

        self.redis_url = self.global_config.get("redis_url", "redis://localhost:6379")
        self.redis_password = self.global_config.get("redis_password", None)
        self.socket_timeout = self.global_config.get("redis_socket_timeout", 5.0)
        self.max_connections = self.global_config.get("redis_max_connections", 10)

    async def _ensure_initialized(self):
        """Ensure Redis connection is initialized."""
        if self._initialized:
            return

        retry = Retry(
            ExponentialBackoff(cap=10, base=1),
            retries=3,
            supported_errors=(RedisConnectionError, TimeoutError, ConnectionError)
        )

        self._connection_pool = aioredis.ConnectionPool.from_url(
            self.redis_url,
            password=self.redis_password,
            max_connections=self.max_connections,
            socket_timeout=self.socket_timeout,
            decode_responses=False,
            retry=retry,
        )
        self._redis_client = aioredis.Redis(connection_pool=self._connection_pool)

        try:
            await self._redis_client.ping()
            logger.info(f"Connected to Redis for settings namespace: {self.namespace}")
        except RedisError as e:
            logger.error(f"Redis connection failed: {e}")
            raise

        self._initialized = True

    def _get_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        await self._ensure_initialized()
        try:
            value = await self._redis_client.get(self._get_key(key))
        except RedisError as e:
            logger.error(f"Redis get error for {key}: {e}")
            raise
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def set(self, key: str, value: str) -> None:
        await self._ensure_initialized()
        await self._redis_client.set(self._get_key(key), value.encode("utf-8"))
        logger.debug(f"Setting stored: {self.namespace}/{key}")

    async def delete(self, key: str) -> None:
        await self._ensure_initialized()
        await self._redis_client.delete(self._get_key(key))

    async def all_keys(self) -> List[str]:
        await self._ensure_initialized()
        keys = []
        async for key in self._redis_client.scan_iter(match=f"{self._prefix}*", count=1000):
            name = key.decode("utf-8") if isinstance(key, bytes) else key
            keys.append(name.replace(self._prefix, "", 1))
        return keys

    async def close(self) -> None:
        """Close the client and its connection pool."""
        if self._redis_client is not None:
            await self._redis_client.aclose()
        if self._connection_pool is not None:
            await self._connection_pool.disconnect()
        self._initialized = False
