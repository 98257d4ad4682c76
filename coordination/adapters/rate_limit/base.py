"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so policies and storage can change without touching the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a single admission attempt.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max admissions per window.
        remaining: Admissions left in the current window (0 when denied).
        retry_after_seconds: Suggested wait before retrying; None when admitted.
        degraded: True when the decision came from the failure policy because
            the shared store could not evaluate the window.
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: float | None = None
    degraded: bool = False


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def try_admit(
        self,
        identity: str,
        *,
        permit_limit: int | None = None,
        window_seconds: float | None = None,
    ) -> RateLimitResult:
        """Admit or reject one request for ``identity``.

        Args:
            identity: Caller identity (e.g., client address).
            permit_limit: Override of the limiter's permit limit.
            window_seconds: Override of the limiter's window duration.

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError
