"""Pydantic schemas for the demo and admin endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RootResponse(BaseModel):
    """Service banner returned by ``GET /``."""

    message: str = Field(..., description="Service name.")
    status: str = Field(..., description="Service state, 'running' when up.")


class ProcessedResponse(BaseModel):
    """Acknowledgement returned by ``POST /test``."""

    message: str = Field(..., description="Processing result message.")
    time: datetime = Field(..., description="Server time when the request was processed (UTC).")


class HealthResponse(BaseModel):
    """Liveness payload returned by ``GET /health``."""

    status: str = Field(..., description="'ok' when the API is serving requests.")
    time: datetime = Field(..., description="Current server time (UTC).")


class LimitStatusResponse(BaseModel):
    """Quota state of one identity, as seen by the counter store."""

    limit_type: str = Field(..., description="Limit class: 'ip' or 'token'.")
    limit: int = Field(..., description="Requests allowed per 1-second window.")
    count: int = Field(
        ...,
        description="Requests counted in the live window (0 once the window key expired).",
    )
    blocked: bool = Field(..., description="Whether a cooldown block is active.")
