"""Lease-based distributed lock over the shared store.

A lease is a single store key holding a random ownership token with a TTL.
Creation relies on the store's set-if-absent, release on an atomic
compare-and-delete script, so a caller can never delete a lease that has
since expired and been re-acquired by someone else.

Known limitation: a holder whose lease expires mid-operation is not told.
Choose ``lease_seconds`` comfortably longer than the protected work.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from coordination.adapters.store.base import AbstractSharedStore
from coordination.core.errors import StoreUnavailableError, ValidationAppError
from coordination.core.logging import hash_identifier

logger = logging.getLogger(__name__)

RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
else
    return 0
end
"""


@dataclass(frozen=True)
class LockAcquisition:
    """Outcome of an acquisition attempt.

    Attributes:
        resource_key: Key of the protected resource.
        granted: Whether the caller now holds the lease.
        token: Ownership token when granted, otherwise None.
    """

    resource_key: str
    granted: bool
    token: str | None = None


@dataclass(frozen=True)
class LockStatus:
    resource_key: str
    is_locked: bool
    remaining_lease_seconds: float | None = None


def _require_resource_key(resource_key: str) -> None:
    if not resource_key:
        raise ValidationAppError(
            code="invalid_resource_key",
            message="resource_key must be a non-empty string",
            details={"field": "resource_key", "value": resource_key},
        )


class LockManager:
    """Grants and revokes named, time-bounded exclusive leases.

    The manager is stateless: all coordination happens in the store, so one
    instance can be shared by any number of concurrent tasks.

    Args:
        store: Shared store holding the lease keys.
    """

    def __init__(self, store: AbstractSharedStore) -> None:
        self._store = store

    async def acquire(self, resource_key: str, lease_seconds: float) -> LockAcquisition:
        """Try to take the lease on ``resource_key`` without waiting.

        Args:
            resource_key: Key of the protected resource.
            lease_seconds: Lease duration; the store drops the key afterwards.

        Returns:
            LockAcquisition with the new token when granted.

        Raises:
            ValidationAppError: If the key is empty or the lease is not positive.
            StoreUnavailableError: If the store cannot be reached.
        """
        _require_resource_key(resource_key)
        if lease_seconds <= 0:
            raise ValidationAppError(
                code="invalid_lease_duration",
                message="lease_seconds must be > 0",
                details={"field": "lease_seconds", "value": lease_seconds},
            )

        token = str(uuid.uuid4())
        granted = await self._store.set_if_absent(resource_key, token, lease_seconds)

        if not granted:
            logger.warning(
                "lock.contended",
                extra={"resource_hash": hash_identifier(resource_key)},
            )
            return LockAcquisition(resource_key=resource_key, granted=False)

        logger.info(
            "lock.acquired",
            extra={
                "resource_hash": hash_identifier(resource_key),
                "lease_seconds": lease_seconds,
            },
        )
        return LockAcquisition(resource_key=resource_key, granted=True, token=token)

    async def release(self, resource_key: str, token: str) -> bool:
        """Delete the lease only if ``token`` still owns it.

        Returns:
            True when the lease was released, False when the key is absent or
            held under a different token. A False result changes nothing.

        Raises:
            ValidationAppError: If the key is empty.
            StoreUnavailableError: If the store cannot be reached.
        """
        _require_resource_key(resource_key)
        if not token:
            return False

        deleted = await self._store.execute_atomic(RELEASE_SCRIPT, [resource_key], [token])
        released = int(deleted or 0) == 1

        if released:
            logger.info(
                "lock.released",
                extra={"resource_hash": hash_identifier(resource_key)},
            )
        else:
            logger.warning(
                "lock.release_rejected",
                extra={"resource_hash": hash_identifier(resource_key)},
            )
        return released

    async def get_remaining_lease(self, resource_key: str) -> float | None:
        """Seconds left on the current lease, or None when unlocked."""
        _require_resource_key(resource_key)
        return await self._store.get_ttl(resource_key)

    async def status(self, resource_key: str) -> LockStatus:
        remaining = await self.get_remaining_lease(resource_key)
        return LockStatus(
            resource_key=resource_key,
            is_locked=remaining is not None,
            remaining_lease_seconds=remaining,
        )

    @asynccontextmanager
    async def held(
        self,
        resource_key: str,
        lease_seconds: float,
    ) -> AsyncIterator[LockAcquisition]:
        """Acquire for the duration of a ``async with`` block.

        The acquisition is yielded whether or not it was granted; callers check
        ``granted`` before doing exclusive work. A granted lease is released on
        exit, including when the block raises. A store failure during that
        release is logged rather than allowed to mask the block's own error.

        Example:
            >>> async with locks.held("report-job", 30) as lease:
            ...     if not lease.granted:
            ...         return conflict()
            ...     await build_report()
        """
        acquisition = await self.acquire(resource_key, lease_seconds)
        owned = acquisition.granted and bool(acquisition.token)
        try:
            yield acquisition
        except BaseException:
            if owned:
                try:
                    await self.release(resource_key, acquisition.token)
                except StoreUnavailableError as release_exc:
                    logger.error(
                        "lock.release_failed",
                        extra={
                            "resource_hash": hash_identifier(resource_key),
                            "error_code": release_exc.code,
                        },
                    )
            raise
        if owned:
            await self.release(resource_key, acquisition.token)
