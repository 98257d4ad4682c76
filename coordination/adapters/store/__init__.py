"""Shared store adapters.

The coordination primitives depend on ``AbstractSharedStore`` only; the Redis
implementation is wired in by the HTTP dependency layer.
"""

from coordination.adapters.store.base import AbstractSharedStore
from coordination.adapters.store.redis_store import RedisSharedStore, create_redis_client

__all__ = [
    "AbstractSharedStore",
    "RedisSharedStore",
    "create_redis_client",
]
