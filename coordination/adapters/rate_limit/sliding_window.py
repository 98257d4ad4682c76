"""Sliding-window rate limiter backed by a Redis sorted set.

Each admitted request is stored as one member of a per-identity sorted set,
scored by its timestamp in milliseconds. Evaluation prunes members older than
the window, counts the rest and either records the new admission or reports
when the oldest admission leaves the window. The whole sequence runs as one
Lua script so concurrent evaluators never observe a half-applied update.

Failure policy:
    When the store is unreachable the limiter does not raise. With
    ``fail_open=True`` (the default) the request is admitted; otherwise it is
    denied with ``retry_after = window``. Either way the result is flagged
    ``degraded`` and a warning is logged.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Callable

from coordination.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from coordination.adapters.store.base import AbstractSharedStore
from coordination.core.errors import StoreUnavailableError, ValidationAppError
from coordination.core.logging import hash_identifier

logger = logging.getLogger(__name__)

# KEYS[1] = window key
# ARGV = now_ms, window_start_ms, limit, window_ms, member
# Returns {1, remaining} when admitted, {0, retry_after_ms} when denied.
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local limit = tonumber(ARGV[3])
local window_ms = tonumber(ARGV[4])
local member = ARGV[5]

redis.call('ZREMRANGEBYSCORE', key, '-inf', ARGV[2])

local count = redis.call('ZCARD', key)

if count < limit then
    redis.call('ZADD', key, now, member)
    redis.call('PEXPIRE', key, window_ms)
    return {1, limit - count - 1}
end

local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
if #oldest > 0 then
    return {0, tonumber(oldest[2]) + window_ms - now}
end
return {0, window_ms}
"""


def _validate_policy(permit_limit: int, window_seconds: float) -> None:
    if permit_limit < 1:
        raise ValidationAppError(
            code="invalid_permit_limit",
            message="permit_limit must be >= 1",
            details={"field": "permit_limit", "value": permit_limit},
        )
    if window_seconds <= 0:
        raise ValidationAppError(
            code="invalid_window",
            message="window_seconds must be > 0",
            details={"field": "window_seconds", "value": window_seconds},
        )


class RedisSlidingWindowRateLimiter(AbstractRateLimiter):
    """Distributed sliding-window limiter.

    Every identity gets an independent window stored under
    ``{key_prefix}:{policy}:{identity}``.
    """

    def __init__(
        self,
        store: AbstractSharedStore,
        *,
        permit_limit: int = 3,
        window_seconds: float = 5.0,
        policy: str = "sliding",
        key_prefix: str = "rate-limit",
        fail_open: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Shared store holding the window sets.
            permit_limit: Default admissions allowed per window.
            window_seconds: Default window duration in seconds.
            policy: Policy name, part of the window key.
            key_prefix: Namespace for window keys.
            fail_open: Admit (True) or deny (False) when the store fails.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValidationAppError: If the default policy is invalid.
        """
        _validate_policy(permit_limit, window_seconds)

        self._store = store
        self._permit_limit = permit_limit
        self._window_seconds = window_seconds
        self._policy = policy
        self._key_prefix = key_prefix
        self._fail_open = fail_open
        self._clock = clock

    @property
    def permit_limit(self) -> int:
        return self._permit_limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def window_key(self, identity: str) -> str:
        return f"{self._key_prefix}:{self._policy}:{identity}"

    async def try_admit(
        self,
        identity: str,
        *,
        permit_limit: int | None = None,
        window_seconds: float | None = None,
    ) -> RateLimitResult:
        """Evaluate the window for ``identity`` and record an admission if allowed.

        Raises:
            ValidationAppError: If identity is empty or the policy is invalid.
        """
        if not identity:
            raise ValidationAppError(
                code="invalid_identity",
                message="identity must be a non-empty string",
                details={"field": "identity", "value": identity},
            )
        limit = self._permit_limit if permit_limit is None else permit_limit
        window = self._window_seconds if window_seconds is None else window_seconds
        _validate_policy(limit, window)

        window_ms = max(1, math.ceil(window * 1000))
        now_ms = int(self._clock() * 1000)
        member = f"{now_ms}:{uuid.uuid4().hex}"

        try:
            result = await self._store.execute_atomic(
                SLIDING_WINDOW_SCRIPT,
                [self.window_key(identity)],
                [now_ms, now_ms - window_ms, limit, window_ms, member],
            )
        except StoreUnavailableError as exc:
            return self._apply_failure_policy(identity, limit, window, exc)

        if int(result[0]) == 1:
            return RateLimitResult(allowed=True, limit=limit, remaining=int(result[1]))

        retry_after_ms = max(0, int(result[1]))
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            retry_after_seconds=retry_after_ms / 1000.0,
        )

    def _apply_failure_policy(
        self,
        identity: str,
        limit: int,
        window: float,
        exc: StoreUnavailableError,
    ) -> RateLimitResult:
        logger.warning(
            "rate_limit.store_unavailable",
            extra={
                "identity_hash": hash_identifier(identity),
                "policy": self._policy,
                "fail_open": self._fail_open,
                "error_code": exc.code,
            },
        )
        if self._fail_open:
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=max(0, limit - 1),
                degraded=True,
            )
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            retry_after_seconds=window,
            degraded=True,
        )
