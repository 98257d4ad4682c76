"""Rate limiting dependency for FastAPI routes.

Wires the sliding-window limiter into the HTTP layer:
- One independent window per client address (or first X-Forwarded-For hop
  when the deployment sits behind a trusted proxy).
- Admitted responses carry X-RateLimit-Limit/Remaining headers.
- Denied requests get HTTP 429 with a Retry-After hint.
- Store outages follow the configured fail-open/fail-closed policy inside
  the limiter and never surface as 5xx here.
"""

from __future__ import annotations

import logging
import math
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status

from coordination.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from coordination.adapters.rate_limit.sliding_window import RedisSlidingWindowRateLimiter
from coordination.adapters.store.base import AbstractSharedStore
from coordination.core.config import settings
from coordination.core.logging import hash_identifier
from coordination.core.store import get_shared_store

logger = logging.getLogger(__name__)


def get_rate_limiter(
    store: Annotated[AbstractSharedStore, Depends(get_shared_store)],
) -> AbstractRateLimiter:
    """Build the limiter for the configured policy.

    The limiter holds no state of its own, so building one per request is
    cheap and keeps configuration changes (primarily in tests) effective.
    """

    cfg = settings.rate_limit
    return RedisSlidingWindowRateLimiter(
        store,
        permit_limit=cfg.permit_limit,
        window_seconds=cfg.window_seconds,
        policy=cfg.policy,
        key_prefix=cfg.key_prefix,
        fail_open=cfg.fail_open,
    )


def client_identity(request: Request) -> str:
    """Resolve the identity a request is rate limited under."""

    if settings.rate_limit.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
    }
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(math.ceil(result.retry_after_seconds))
    return headers


async def enforce_rate_limit(
    request: Request,
    response: Response,
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
) -> None:
    """FastAPI dependency enforcing the sliding-window policy.

    Raises:
        HTTPException: 429 Too Many Requests when the window is exhausted.
    """

    if not settings.rate_limit.enabled:
        return

    identity = client_identity(request)
    result = await limiter.try_admit(identity)
    headers = _rate_limit_headers(result) if settings.rate_limit.include_headers else {}

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "identity_hash": hash_identifier(identity),
                "limit": result.limit,
                "remaining": result.remaining,
                "degraded": result.degraded,
            },
        )
        response.headers.update(headers)
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "identity_hash": hash_identifier(identity),
            "limit": result.limit,
            "window_s": settings.rate_limit.window_seconds,
            "retry_after_s": result.retry_after_seconds,
            "degraded": result.degraded,
        },
    )
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Try again later.",
        headers=headers or None,
    )
