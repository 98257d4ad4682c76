from __future__ import annotations

import asyncio
import time
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from coordination.core.config import settings
from coordination.core.store import get_lock_manager
from coordination.schemas.locking import (
    AcquireLockRequest,
    AcquireLockResponse,
    ExecuteWithLockResponse,
    LockConflictResponse,
    LockStatusResponse,
    ReleaseLockRequest,
    ReleaseLockResponse,
)
from coordination.services.lock_service import LockManager

router = APIRouter(prefix="/api/locking", tags=["Distributed Locking"])

LockManagerDep = Annotated[LockManager, Depends(get_lock_manager)]


async def _conflict(locks: LockManager, resource_key: str) -> JSONResponse:
    remaining = await locks.get_remaining_lease(resource_key)
    body = LockConflictResponse(
        message="Resource is locked by another process",
        lock_key=resource_key,
        remaining_lock_time=remaining,
    )
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump())


@router.post(
    "/execute",
    response_model=ExecuteWithLockResponse,
    responses={409: {"model": LockConflictResponse}},
)
async def execute_with_lock(locks: LockManagerDep):
    """Run a simulated exclusive operation under the configured lease.

    The lease is released when the operation finishes or fails. If another
    process holds it, responds 409 with the time left on that lease.
    """
    cfg = settings.lock
    async with locks.held(cfg.resource_key, cfg.lease_seconds) as lease:
        if not lease.granted:
            return await _conflict(locks, cfg.resource_key)

        start = time.perf_counter()
        await asyncio.sleep(cfg.work_seconds)
        return ExecuteWithLockResponse(
            message="Exclusive operation completed successfully",
            lock_key=cfg.resource_key,
            execution_time=round(time.perf_counter() - start, 3),
        )


@router.get("/status", response_model=LockStatusResponse)
async def lock_status(
    locks: LockManagerDep,
    resource_key: Annotated[str | None, Query(min_length=1)] = None,
) -> LockStatusResponse:
    """Report whether a resource is locked and for how long."""
    current = await locks.status(resource_key or settings.lock.resource_key)
    return LockStatusResponse(
        lock_key=current.resource_key,
        is_locked=current.is_locked,
        remaining_lock_time=current.remaining_lease_seconds,
    )


@router.post(
    "/acquire",
    response_model=AcquireLockResponse,
    responses={409: {"model": LockConflictResponse}},
)
async def acquire_lock(payload: AcquireLockRequest, locks: LockManagerDep):
    acquisition = await locks.acquire(payload.resource_key, payload.lease_seconds)
    if not acquisition.granted:
        return await _conflict(locks, payload.resource_key)
    return AcquireLockResponse(
        lock_key=acquisition.resource_key,
        granted=True,
        token=acquisition.token,
    )


@router.post("/release", response_model=ReleaseLockResponse)
async def release_lock(payload: ReleaseLockRequest, locks: LockManagerDep) -> ReleaseLockResponse:
    """Release a lease held under ``token``; stale tokens release nothing."""
    released = await locks.release(payload.resource_key, payload.token)
    return ReleaseLockResponse(lock_key=payload.resource_key, released=released)
