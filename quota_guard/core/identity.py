"""Client identity resolution for rate limiting.

Pure string helpers used by the HTTP adapter to decide *who* a request is
limited as:

- A non-blank API token always wins; the request is limited as ``token``.
- Otherwise the client IP is resolved from proxy headers, in order:
  X-Forwarded-For (first entry) > X-Real-IP > X-Client-IP > remote address.

Known limitation: proxy headers are supplied by the client, so the first
X-Forwarded-For entry can be spoofed unless a trusted proxy rewrites it.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Mapping

FORWARDED_FOR_HEADER = "x-forwarded-for"
REAL_IP_HEADER = "x-real-ip"
CLIENT_IP_HEADER = "x-client-ip"

UNKNOWN_CLIENT = "unknown"


def extract_identity_from_token(header_value: str | None) -> str:
    """Extract the API token used as a rate limit identity.

    Args:
        header_value: Raw value of the token header, or None when absent.

    Returns:
        The token with surrounding whitespace removed, or "" when no token is
        present (the caller then falls back to IP-based limiting).

    Examples:
        >>> extract_identity_from_token("  abc123 ")
        'abc123'
        >>> extract_identity_from_token(None)
        ''
    """
    if not header_value:
        return ""
    return header_value.strip()


def _lowered(headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> dict[str, str]:
    items = headers.items() if isinstance(headers, Mapping) else headers
    lowered: dict[str, str] = {}
    for name, value in items:
        # First occurrence wins, like Starlette's Headers.get
        lowered.setdefault(name.lower(), value)
    return lowered


def resolve_client_identity(
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
    remote_addr: str | None,
) -> str:
    """Resolve the client IP used as a rate limit identity.

    Args:
        headers: Request headers (any case).
        remote_addr: Address of the peer connection, if known.

    Returns:
        The resolved client address, or "unknown" when nothing is available.

    Examples:
        >>> resolve_client_identity({"X-Forwarded-For": "1.1.1.1, 10.0.0.1"}, "127.0.0.1")
        '1.1.1.1'
        >>> resolve_client_identity({}, "127.0.0.1")
        '127.0.0.1'
    """
    lowered = _lowered(headers)

    forwarded_for = lowered.get(FORWARDED_FOR_HEADER, "")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    for header in (REAL_IP_HEADER, CLIENT_IP_HEADER):
        value = lowered.get(header, "").strip()
        if value:
            return value

    return remote_addr or UNKNOWN_CLIENT


def hash_identity(value: str) -> str:
    """Hash an identity or store key for logging without exposing secrets."""
    return hashlib.sha256(value.encode()).hexdigest()[:16]
