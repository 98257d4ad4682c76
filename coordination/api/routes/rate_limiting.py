from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from coordination.core.rate_limit import enforce_rate_limit
from coordination.schemas.rate_limiting import ProcessedResponse

router = APIRouter(prefix="/api/ratelimit", tags=["Rate Limiting"])


@router.get(
    "/test",
    response_model=ProcessedResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def rate_limited() -> ProcessedResponse:
    """A rate-limited endpoint (3 requests per 5-second window by default)."""
    return ProcessedResponse(
        message="Request processed successfully",
        processed_at=datetime.now(timezone.utc),
    )


@router.get("/unlimited", response_model=ProcessedResponse)
async def unlimited() -> ProcessedResponse:
    """Same payload without rate limiting, for comparison."""
    return ProcessedResponse(
        message="This endpoint has no rate limiting",
        processed_at=datetime.now(timezone.utc),
    )
