from __future__ import annotations

from coordination.api.routes.health import router as health_router
from coordination.api.routes.locking import router as locking_router
from coordination.api.routes.rate_limiting import router as rate_limiting_router

__all__ = ["health_router", "locking_router", "rate_limiting_router"]
