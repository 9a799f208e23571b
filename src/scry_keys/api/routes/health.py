"""Health check endpoint."""

from typing import Any

from fastapi import APIRouter, Request

from scry_keys import __version__


router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Liveness probe; reports whether API key auth is active."""
    store = getattr(request.app.state, "credential_store", None)
    return {
        "status": "ok",
        "version": __version__,
        "credential_store": type(store).__name__ if store is not None else None,
    }
