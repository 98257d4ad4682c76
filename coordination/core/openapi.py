"""OpenAPI tag metadata for the generated schema."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Distributed Locking",
        "description": (
            "Lease-based exclusive access to named resources. Leases expire "
            "automatically and can only be released with their token."
        ),
    },
    {
        "name": "Rate Limiting",
        "description": "Sliding-window admission control shared by all API processes.",
    },
    {
        "name": "Health",
        "description": "Liveness and readiness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tag descriptions."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()
        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
