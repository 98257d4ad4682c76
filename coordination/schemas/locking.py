"""Pydantic schemas for the distributed locking endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AcquireLockRequest(BaseModel):
    """Request body for acquiring a lease."""

    resource_key: str = Field(
        ..., min_length=1, description="Key of the resource to lock."
    )
    lease_seconds: float = Field(
        5.0,
        gt=0,
        description="Lease duration; the lock is released automatically afterwards.",
    )


class AcquireLockResponse(BaseModel):
    lock_key: str = Field(..., description="Key of the locked resource.")
    granted: bool = Field(..., description="Always true; contention returns 409.")
    token: str = Field(
        ..., description="Ownership token required to release the lease."
    )


class ReleaseLockRequest(BaseModel):
    """Request body for releasing a lease."""

    resource_key: str = Field(..., min_length=1, description="Key of the locked resource.")
    token: str = Field(..., min_length=1, description="Token returned by acquire.")


class ReleaseLockResponse(BaseModel):
    lock_key: str
    released: bool = Field(
        ...,
        description=(
            "True when the lease was held under this token and is now deleted; "
            "false when it had expired or belongs to another holder."
        ),
    )


class LockStatusResponse(BaseModel):
    """Current state of a lease."""

    lock_key: str
    is_locked: bool
    remaining_lock_time: float | None = Field(
        default=None, description="Seconds until the lease expires, if locked."
    )


class LockConflictResponse(BaseModel):
    """Returned with HTTP 409 when another holder owns the lease."""

    message: str
    lock_key: str
    remaining_lock_time: float | None = Field(
        default=None, description="Seconds until the current lease expires."
    )


class ExecuteWithLockResponse(BaseModel):
    message: str
    lock_key: str
    execution_time: float = Field(
        ..., description="Seconds spent inside the exclusive section."
    )
