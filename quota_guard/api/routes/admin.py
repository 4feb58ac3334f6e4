from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from quota_guard.core.auth import verify_admin_key
from quota_guard.core.rate_limit import get_rate_limiter
from quota_guard.schemas.limits import LimitStatusResponse
from quota_guard.services.limiter_service import RateLimiterService

router = APIRouter(
    prefix="/admin/limits",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_key)],
)

Limiter = Annotated[RateLimiterService, Depends(get_rate_limiter)]


@router.get("/{limit_type}/{identity}", response_model=LimitStatusResponse)
async def get_limit_status(limit_type: str, identity: str, limiter: Limiter) -> LimitStatusResponse:
    """Return the live counter and block state of one identity.

    Raises:
        InvalidLimitTypeError: ``limit_type`` is not 'ip' or 'token' (400).
        StoreAppError: The counter store failed (500).
    """
    limit_status = await limiter.get_status(identity, limit_type)
    return LimitStatusResponse(
        limit_type=limit_status.limit_type.value,
        limit=limit_status.limit,
        count=limit_status.count,
        blocked=limit_status.blocked,
    )


@router.delete("/{limit_type}/{identity}", status_code=status.HTTP_204_NO_CONTENT)
async def reset_limit(limit_type: str, identity: str, limiter: Limiter) -> Response:
    """Clear the identity's counter and lift any active block."""
    await limiter.reset(identity, limit_type)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
