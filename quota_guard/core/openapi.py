"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- the optional API token header used as rate limit identity
- the admin key security scheme, required only on admin operations
- tags metadata

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from quota_guard.core.config import settings

ADMIN_PATH_PREFIX = "/v1/admin/"

DESIRED_TAGS = [
    {
        "name": "Demo",
        "description": "Rate limited sample endpoints.",
    },
    {
        "name": "Admin",
        "description": "Inspect and reset per-identity quota state.",
    },
    {
        "name": "Health",
        "description": "Liveness checks (never rate limited).",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add security schemes and tags.

    - ``ApiToken`` (header from RATE_LIMIT_TOKEN_HEADER) is optional on every
      rate limited operation: with it the token quota applies, without it
      the IP quota does.
    - ``AdminKey`` (``X-Admin-Key``) is required on admin operations.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiToken",
            {
                "type": "apiKey",
                "in": "header",
                "name": settings.rate_limit.token_header,
                "description": "Optional API token; selects the token quota instead of the IP quota.",
            },
        )
        security_schemes.setdefault(
            "AdminKey",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-Admin-Key",
                "description": "Admin key listed in APP_ADMIN_API_KEYS.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in DESIRED_TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if path.startswith(ADMIN_PATH_PREFIX):
                    method_obj["security"] = [{"AdminKey": []}]
                elif path.endswith("/health"):
                    method_obj["security"] = []
                else:
                    # Empty requirement object marks the token as optional
                    method_obj["security"] = [{"ApiToken": []}, {}]

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
