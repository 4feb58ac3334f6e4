from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from quota_guard.core.rate_limit import enforce_rate_limit
from quota_guard.schemas.limits import ProcessedResponse, RootResponse

router = APIRouter(tags=["Demo"], dependencies=[Depends(enforce_rate_limit)])


@router.get("/", response_model=RootResponse)
async def root() -> RootResponse:
    """Service banner, rate limited like any protected endpoint."""
    return RootResponse(message="Rate Limiter API", status="running")


@router.post("/test", response_model=ProcessedResponse)
async def process_test_request() -> ProcessedResponse:
    """Sample protected action used to exercise the rate limiter."""
    return ProcessedResponse(
        message="Request processed successfully",
        time=datetime.now(timezone.utc),
    )
