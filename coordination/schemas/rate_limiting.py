"""Pydantic schemas for the rate limiting demo endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ProcessedResponse(BaseModel):
    message: str
    processed_at: datetime = Field(..., description="UTC time the request was served.")
