from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from coordination.adapters.store.base import AbstractSharedStore
from coordination.core.store import get_shared_store

router = APIRouter(tags=["Health"])

READINESS_PROBE_KEY = "health:probe"


@router.get("/health")
def health_check() -> dict:
    """Liveness probe; does not touch the shared store."""

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(
    store: Annotated[AbstractSharedStore, Depends(get_shared_store)],
) -> dict:
    """Readiness probe: one round trip to the shared store.

    A store outage surfaces as 503 through the global exception handlers.
    """

    await store.get_ttl(READINESS_PROBE_KEY)
    return {"status": "ok", "store": "reachable"}
