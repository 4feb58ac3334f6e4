"""Admin API key authentication.

The admin endpoints can read and reset any identity's quota, so they sit
behind a shared key list configured with ``APP_ADMIN_API_KEYS``. When no
keys are configured the admin surface is closed.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header

from quota_guard.core.config import settings
from quota_guard.core.errors import AuthenticationAppError
from quota_guard.core.identity import hash_identity

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def validate_admin_key(provided_key: str | None) -> None:
    """Validate a provided admin key against the configured list.

    Raises:
        AuthenticationAppError: If no keys are configured or the key is
            missing or unknown.
    """
    valid_keys = parse_api_keys(settings.app.admin_api_keys)

    if not valid_keys:
        logger.warning("admin_auth.failed", extra={"reason": "admin_keys_not_configured"})
        raise AuthenticationAppError(
            code="admin_keys_not_configured",
            message="Admin endpoints are disabled because no admin keys are configured",
            details={"hint": "Set APP_ADMIN_API_KEYS to enable the admin endpoints"},
        )

    if not provided_key or provided_key not in valid_keys:
        logger.warning(
            "admin_auth.failed",
            extra={
                "reason": "invalid_admin_key" if provided_key else "missing_admin_key",
                "key_hash": hash_identity(provided_key) if provided_key else None,
            },
        )
        raise AuthenticationAppError(
            code="invalid_admin_key",
            message="Invalid or missing admin key",
        )


async def verify_admin_key(
    x_admin_key: Annotated[str | None, Header(alias="X-Admin-Key")] = None,
) -> None:
    """FastAPI dependency guarding the admin routes.

    Usage:
        @router.get("/admin/...", dependencies=[Depends(verify_admin_key)])

    Raises:
        AuthenticationAppError: Rendered as 403 by the global handlers.
    """
    validate_admin_key(x_admin_key)
