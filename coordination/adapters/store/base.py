"""Shared store interface consumed by the lock manager and the rate limiter."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence


class AbstractSharedStore(ABC):
    """Narrow view of an atomic key-value store shared between processes.

    Implementations must raise ``StoreUnavailableError`` for infrastructure
    failures and must let cancellation propagate into the underlying call.
    """

    @abstractmethod
    async def set_if_absent(self, key: str, value: str, ttl_seconds: float) -> bool:
        """Write ``key -> value`` with a TTL only if the key does not exist.

        Returns:
            True when the value was written, False when the key already exists.
        """
        raise NotImplementedError

    @abstractmethod
    async def execute_atomic(
        self,
        script: str,
        keys: Sequence[str],
        args: Sequence[Any],
    ) -> Any:
        """Run a short read/modify/write script atomically against ``keys``.

        Returns:
            Whatever the script returns, decoded by the store client.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_ttl(self, key: str) -> float | None:
        """Return the remaining time to live of ``key`` in seconds.

        Returns:
            Seconds until expiry, or None when the key is absent or has no expiry.
        """
        raise NotImplementedError
