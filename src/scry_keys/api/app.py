"""FastAPI application factory for Scry Keys."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from structlog import get_logger

from scry_keys import __version__
from scry_keys.api.middleware.api_key_auth import (
    APIKeyAuthMiddleware,
    APIKeyAuthOptions,
    APIKeyGate,
    PublicRoutesConfig,
)
from scry_keys.api.middleware.errors import setup_error_handlers
from scry_keys.api.middleware.request_id import RequestIDMiddleware
from scry_keys.api.routes.health import router as health_router
from scry_keys.api.routes.projects import router as projects_router
from scry_keys.api_keys.database import DatabaseApiKeyStore
from scry_keys.api_keys.factory import create_credential_store
from scry_keys.api_keys.store import CredentialStore
from scry_keys.config.settings import Settings, get_settings
from scry_keys.core.logging import setup_logging


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Prepare the credential store on startup and release it on shutdown."""
    store: CredentialStore | None = app.state.credential_store
    gate: APIKeyGate = app.state.api_key_gate

    if isinstance(store, DatabaseApiKeyStore):
        await store.database.create_all()

    logger.info(
        "server_start",
        version=__version__,
        credential_store=type(store).__name__ if store is not None else None,
    )

    yield

    logger.debug("server_stop")
    await gate.drain()
    if store is not None:
        await store.aclose()


def create_app(
    settings: Settings | None = None, store: CredentialStore | None = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override. If None, uses get_settings().
        store: Optional credential store. If None, one is built from settings.

    Returns:
        Configured FastAPI application instance.

    """
    if settings is None:
        settings = get_settings()

    if not structlog.is_configured():
        setup_logging(
            json_logs=settings.server.json_logs,
            log_level_name=settings.server.log_level,
        )

    if store is None:
        store = create_credential_store(settings)

    gate = APIKeyGate(store, APIKeyAuthOptions.from_settings(settings.auth))
    public_routes = PublicRoutesConfig(
        exact_matches=frozenset(settings.auth.public_routes)
    )

    app = FastAPI(
        title="Scry Keys",
        description="Project-scoped API key authentication",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.credential_store = store
    app.state.api_key_gate = gate

    setup_error_handlers(app)

    app.add_middleware(APIKeyAuthMiddleware, gate=gate, public_routes=public_routes)

    # Added last so it runs first and wraps auth logging with the request id
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health_router)
    app.include_router(projects_router)

    return app
