"""Rate limiting dependency for FastAPI routes.

This module is the thin HTTP adapter around the decision engine:

- Identity: a non-blank token header (``RATE_LIMIT_TOKEN_HEADER``, default
  ``API_KEY``) is limited as ``token``; otherwise the client IP resolved from
  proxy headers is limited as ``ip``.
- Allowed: the request passes through with X-RateLimit-* headers.
- Denied: HTTP 429 with X-RateLimit-* and Retry-After headers.
- Engine errors propagate to the global exception handlers, unless
  ``RATE_LIMIT_FAIL_OPEN`` lets the request through.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, Response, status

from quota_guard.core.config import settings
from quota_guard.core.errors import StoreAppError
from quota_guard.core.identity import (
    extract_identity_from_token,
    hash_identity,
    resolve_client_identity,
)
from quota_guard.services.limiter_service import LimitClass, LimitResult, RateLimiterService

logger = logging.getLogger(__name__)

RATE_LIMIT_EXCEEDED_DETAIL = (
    "you have reached the maximum number of requests or actions allowed within a certain time frame"
)


def get_rate_limiter(request: Request) -> RateLimiterService:
    """Return the engine built by the app factory for this application."""
    return request.app.state.rate_limiter


def resolve_request_identity(request: Request) -> tuple[str, LimitClass]:
    """Pick the identity and limit class for a request.

    Returns:
        Tuple of (identity, limit class); a token always wins over the IP.
    """
    token = extract_identity_from_token(request.headers.get(settings.rate_limit.token_header))
    if token:
        return token, LimitClass.TOKEN

    remote_addr = request.client.host if request.client else None
    return resolve_client_identity(request.headers, remote_addr), LimitClass.IP


def rate_limit_headers(result: LimitResult, *, retry_after: int | None = None) -> dict[str, str]:
    """Render a LimitResult as X-RateLimit-* response headers."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return headers


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing per-identity rate limits.

    Args:
        request: FastAPI request.
        response: Response whose headers receive the quota metadata.

    Raises:
        HTTPException: 429 Too Many Requests when the identity is over quota
            or blocked.
        StoreAppError: When the counter store fails and fail-open is off.
    """

    if not settings.rate_limit.enabled:
        return

    limiter = get_rate_limiter(request)
    identity, limit_class = resolve_request_identity(request)
    identity_hash = hash_identity(identity)

    try:
        result = await limiter.check_limit(identity, limit_class)
    except StoreAppError as exc:
        if not settings.rate_limit.fail_open:
            raise
        logger.warning(
            "rate_limit.fail_open",
            extra={
                "limit_type": limit_class.value,
                "identity_hash": identity_hash,
                "error_code": exc.code,
                "operation": exc.operation,
            },
        )
        return

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "limit_type": limit_class.value,
                "identity_hash": identity_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        if settings.rate_limit.include_headers:
            response.headers.update(rate_limit_headers(result))
        return

    retry_after = result.retry_after_seconds()
    logger.warning(
        "rate_limit.denied",
        extra={
            "limit_type": limit_class.value,
            "identity_hash": identity_hash,
            "limit": result.limit,
            "retry_after_s": retry_after,
        },
    )

    headers = rate_limit_headers(result, retry_after=retry_after) if settings.rate_limit.include_headers else None

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=RATE_LIMIT_EXCEEDED_DETAIL,
        headers=headers,
    )
