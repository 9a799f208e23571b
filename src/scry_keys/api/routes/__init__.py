"""API routes for Scry Keys."""

from scry_keys.api.routes.health import router as health_router
from scry_keys.api.routes.projects import router as projects_router


__all__ = [
    "health_router",
    "projects_router",
]
