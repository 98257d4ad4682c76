"""Redis-backed shared store.

Scripts are loaded once into the Redis script cache and executed via EVALSHA,
so each atomic operation costs a single round trip. If Redis loses its script
cache (restart, SCRIPT FLUSH) the script is reloaded once and retried.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import math
from typing import Any, Sequence

from redis import asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import NoScriptError, RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from coordination.adapters.store.base import AbstractSharedStore
from coordination.core.config import RedisSettings
from coordination.core.errors import StoreUnavailableError, ValidationAppError

logger = logging.getLogger(__name__)


def create_redis_client(redis_settings: RedisSettings) -> aioredis.Redis:
    """Build an async Redis client with a bounded connection pool.

    The client connects lazily, so building it never touches the network.

    Args:
        redis_settings: Connection settings.

    Returns:
        Configured ``redis.asyncio.Redis`` instance returning ``str`` values.
    """
    pool = aioredis.ConnectionPool.from_url(
        redis_settings.url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=redis_settings.max_connections,
        socket_connect_timeout=redis_settings.socket_connect_timeout_seconds,
        socket_timeout=redis_settings.socket_timeout_seconds,
    )
    return aioredis.Redis(connection_pool=pool)


def _is_missing_script(exc: ResponseError) -> bool:
    return isinstance(exc, NoScriptError) or str(exc).startswith("NOSCRIPT")


def _to_milliseconds(seconds: float) -> int:
    # Round up so a positive sub-millisecond TTL never becomes "no expiry".
    return max(1, math.ceil(seconds * 1000))


class RedisSharedStore(AbstractSharedStore):
    """``AbstractSharedStore`` over ``redis.asyncio``.

    Args:
        redis_client: An async Redis client (redis.asyncio.Redis compatible)
            created with ``decode_responses=True``.
    """

    def __init__(self, redis_client: Any) -> None:
        self.redis = redis_client
        self._script_shas: dict[str, str] = {}
        self._script_lock = asyncio.Lock()

    async def set_if_absent(self, key: str, value: str, ttl_seconds: float) -> bool:
        if ttl_seconds <= 0:
            raise ValidationAppError(
                code="invalid_ttl",
                message="ttl_seconds must be > 0",
                details={"field": "ttl_seconds", "value": ttl_seconds},
            )
        try:
            written = await self.redis.set(
                key, value, px=_to_milliseconds(ttl_seconds), nx=True
            )
        except (RedisError, OSError) as exc:
            raise self._wrap(exc, operation="set_if_absent", key=key) from exc
        return bool(written)

    async def execute_atomic(
        self,
        script: str,
        keys: Sequence[str],
        args: Sequence[Any],
    ) -> Any:
        try:
            sha = await self._ensure_script(script)
            try:
                return await self.redis.evalsha(sha, len(keys), *keys, *args)
            except ResponseError as exc:
                if not _is_missing_script(exc):
                    raise
                logger.info("store.script_reload", extra={"script_sha": sha})
                sha = await self._ensure_script(script, reload=True)
                return await self.redis.evalsha(sha, len(keys), *keys, *args)
        except (RedisError, OSError) as exc:
            raise self._wrap(exc, operation="execute_atomic", key=",".join(keys)) from exc

    async def get_ttl(self, key: str) -> float | None:
        try:
            ttl_ms = await self.redis.pttl(key)
        except (RedisError, OSError) as exc:
            raise self._wrap(exc, operation="get_ttl", key=key) from exc
        # -2: key does not exist, -1: key exists without an expiry
        if ttl_ms is None or ttl_ms < 0:
            return None
        return ttl_ms / 1000.0

    async def close(self) -> None:
        """Release pooled connections."""
        await self.redis.aclose()

    async def _ensure_script(self, script: str, *, reload: bool = False) -> str:
        digest = hashlib.sha1(script.encode()).hexdigest()
        sha = self._script_shas.get(digest)
        if sha and not reload:
            return sha
        async with self._script_lock:
            sha = self._script_shas.get(digest)
            if sha and not reload:
                return sha
            sha = await self.redis.script_load(script)
            self._script_shas[digest] = sha
            return sha

    @staticmethod
    def _wrap(exc: Exception, *, operation: str, key: str) -> StoreUnavailableError:
        transient = isinstance(exc, (RedisConnectionError, RedisTimeoutError, OSError))
        logger.error(
            "store.command_failed",
            extra={
                "operation": operation,
                "error_type": type(exc).__name__,
                "transient": transient,
            },
        )
        return StoreUnavailableError(
            code="store_unavailable" if transient else "store_command_failed",
            message=f"Shared store {operation} failed: {exc}",
            details={"operation": operation, "key": key},
        )
