"""Process-wide shared store and the coordination components built on it.

Routes receive these through FastAPI ``Depends`` so tests can substitute a
different store with ``app.dependency_overrides[get_shared_store]``.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends

from coordination.adapters.store.base import AbstractSharedStore
from coordination.adapters.store.redis_store import RedisSharedStore, create_redis_client
from coordination.core.config import settings
from coordination.services.lock_service import LockManager

logger = logging.getLogger(__name__)


_store: RedisSharedStore | None = None


def get_shared_store() -> AbstractSharedStore:
    """Return the process-wide Redis store, creating it on first use.

    The underlying client connects lazily, so this never blocks.
    """

    global _store

    if _store is None:
        _store = RedisSharedStore(create_redis_client(settings.redis))
        logger.info("store.client_created")
    return _store


async def close_shared_store() -> None:
    """Close the process-wide store if it was created."""

    global _store

    if _store is not None:
        await _store.close()
        _store = None
        logger.info("store.client_closed")


def get_lock_manager(
    store: Annotated[AbstractSharedStore, Depends(get_shared_store)],
) -> LockManager:
    return LockManager(store)
