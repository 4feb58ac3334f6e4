from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from quota_guard.schemas.limits import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint.

    Not rate limited, so load balancers probing it never consume or trip a
    client's quota.

    Returns:
        HealthResponse: ``{"status": "ok", "time": ...}``.
    """

    return HealthResponse(status="ok", time=datetime.now(timezone.utc))
