"""Rate limiting adapters.

The API depends on ``AbstractRateLimiter``; the sliding-window implementation
keeps its state in the shared store so every process enforces one budget.
"""

from coordination.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from coordination.adapters.rate_limit.sliding_window import RedisSlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "RateLimitResult",
    "RedisSlidingWindowRateLimiter",
]
