"""API key authentication middleware for project routes.

Requests carry a project key in a header (``X-API-Key`` by default). The key
embeds its project id, so malformed keys and keys used against another
project's routes are rejected before the credential store is consulted.
"""

import asyncio
from dataclasses import dataclass, field

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.routing import Match
from starlette.types import ASGIApp

from scry_keys.api.middleware.errors import error_response_for
from scry_keys.api_keys.codec import extract_project_id
from scry_keys.api_keys.models import AuthenticatedApiKey
from scry_keys.api_keys.store import CredentialStore
from scry_keys.config.settings import AuthSettings
from scry_keys.exceptions import (
    AuthenticationRequiredError,
    InvalidApiKeyError,
    InvalidApiKeyFormatError,
    ProjectMismatchError,
    ScryKeysError,
)


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PublicRoutesConfig:
    """Configuration for routes that don't require API key authentication."""

    exact_matches: frozenset[str] = field(
        default_factory=lambda: frozenset(
            {
                "/health",
                "/docs",
                "/openapi.json",
                "/redoc",
            }
        )
    )

    prefixes: tuple[str, ...] = ()

    def is_public(self, path: str) -> bool:
        """Check if a path is public (doesn't require authentication).

        Args:
            path: Request path to check

        Returns:
            True if path is public, False otherwise

        """
        if path in self.exact_matches:
            return True

        return any(path.startswith(prefix) for prefix in self.prefixes)


# Default public routes configuration
DEFAULT_PUBLIC_ROUTES = PublicRoutesConfig()


@dataclass(frozen=True)
class APIKeyAuthOptions:
    """Behaviour switches for the API key gate."""

    header_name: str = "X-API-Key"
    validate_project_match: bool = True
    project_param_name: str = "project"
    track_usage: bool = True
    optional: bool = False

    @classmethod
    def from_settings(cls, settings: AuthSettings) -> "APIKeyAuthOptions":
        return cls(
            header_name=settings.header_name,
            validate_project_match=settings.validate_project_match,
            project_param_name=settings.project_param_name,
            track_usage=settings.track_usage,
            optional=settings.optional,
        )


class APIKeyGate:
    """Decides whether a request's API key grants access to a project.

    The gate is framework independent: it takes the raw header value and the
    project id from the route, and either returns the authenticated identity
    or raises an authentication error carrying the HTTP status to send.
    """

    def __init__(
        self,
        store: CredentialStore | None,
        options: APIKeyAuthOptions | None = None,
    ) -> None:
        """Initialize the gate.

        Args:
            store: Credential store, or None to let every request through
            options: Gate options, defaults used when omitted

        """
        self.store = store
        self.options = options or APIKeyAuthOptions()
        self._usage_tasks: set[asyncio.Task[None]] = set()

    async def authenticate(
        self, raw_key: str | None, route_project_id: str | None = None
    ) -> AuthenticatedApiKey | None:
        """Authenticate a raw key for the requested project.

        Args:
            raw_key: Header value, None or empty when absent
            route_project_id: Project id named by the route, if any

        Returns:
            The authenticated identity, or None when the request passes
            through unauthenticated (no store configured, or key optional
            and absent)

        Raises:
            AuthenticationRequiredError: No key on a required route
            InvalidApiKeyFormatError: Key does not parse
            ProjectMismatchError: Key belongs to another project
            InvalidApiKeyError: Key unknown, revoked or expired
            TokenExchangeError: Store could not authenticate upstream
            DocumentStoreError: Store call failed

        """
        if self.store is None:
            logger.warning("api_key_store_not_configured", message="skipping auth")
            return None

        if not raw_key:
            if self.options.optional:
                return None
            raise AuthenticationRequiredError(self.options.header_name)

        key_project_id = extract_project_id(raw_key)
        if key_project_id is None:
            raise InvalidApiKeyFormatError()

        if (
            self.options.validate_project_match
            and route_project_id
            and key_project_id != route_project_id
        ):
            logger.warning(
                "api_key_project_mismatch",
                key_project_id=key_project_id,
                route_project_id=route_project_id,
            )
            raise ProjectMismatchError()

        project_id = route_project_id or key_project_id
        result = await self.store.validate_key(project_id, raw_key)
        if not result.valid or result.api_key is None:
            logger.warning(
                "api_key_rejected", project_id=project_id, reason=result.reason
            )
            raise InvalidApiKeyError()

        api_key = result.api_key
        identity = AuthenticatedApiKey(
            id=api_key.id,
            name=api_key.name,
            prefix=api_key.prefix,
            project_id=project_id,
        )

        if self.options.track_usage:
            self._schedule_touch(project_id, api_key.id)

        return identity

    def _schedule_touch(self, project_id: str, key_id: str) -> None:
        task = asyncio.create_task(self._touch(project_id, key_id))
        # The loop only keeps weak references to tasks
        self._usage_tasks.add(task)
        task.add_done_callback(self._usage_tasks.discard)

    async def _touch(self, project_id: str, key_id: str) -> None:
        if self.store is None:
            return
        try:
            await self.store.touch_last_used(project_id, key_id)
        except Exception as e:
            # Usage tracking never affects the request outcome
            logger.error(
                "api_key_usage_update_failed",
                project_id=project_id,
                key_id=key_id,
                error=str(e),
            )

    async def drain(self) -> None:
        """Wait for pending usage updates to finish."""
        if self._usage_tasks:
            await asyncio.gather(*self._usage_tasks)


class APIKeyAuthMiddleware(BaseHTTPMiddleware):
    """Middleware for API key authentication on project routes."""

    def __init__(
        self,
        app: ASGIApp,
        gate: APIKeyGate,
        public_routes: PublicRoutesConfig | None = None,
    ):
        """Initialize the API key auth middleware.

        Args:
            app: The ASGI application
            gate: Gate that authenticates keys
            public_routes: Optional custom public routes configuration

        """
        super().__init__(app)
        self.gate = gate
        self.public_routes = public_routes or DEFAULT_PUBLIC_ROUTES

    def _route_project_id(self, request: Request) -> str | None:
        """Resolve the project route parameter before routing happens.

        Middleware runs ahead of the router, so the request is matched
        against the application's routes here.
        """
        param_name = self.gate.options.project_param_name
        for route in request.app.router.routes:
            match, child_scope = route.matches(request.scope)
            if match is Match.FULL:
                value = child_scope.get("path_params", {}).get(param_name)
                return str(value) if value is not None else None
        return None

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with API key authentication.

        Args:
            request: The incoming HTTP request
            call_next: The next middleware/handler in the chain

        Returns:
            The HTTP response, or the error response of a rejected key

        """
        path = request.url.path

        if self.public_routes.is_public(path):
            return await call_next(request)

        raw_key = request.headers.get(self.gate.options.header_name)
        try:
            api_key = await self.gate.authenticate(
                raw_key, self._route_project_id(request)
            )
        except ScryKeysError as e:
            logger.warning(
                "api_key_auth_failed",
                path=path,
                method=request.method,
                error_type=e.error_type.value,
                status_code=e.status_code,
            )
            return error_response_for(e)

        request.state.api_key = api_key
        if api_key is not None:
            logger.debug(
                "api_key_auth_success",
                key_id=api_key.id,
                project_id=api_key.project_id,
                path=path,
            )

        return await call_next(request)


def get_authenticated_api_key(request: Request) -> AuthenticatedApiKey | None:
    """Identity set by APIKeyAuthMiddleware, None if unauthenticated."""
    return getattr(request.state, "api_key", None)


def is_authenticated(request: Request) -> bool:
    return get_authenticated_api_key(request) is not None


def require_api_key(request: Request) -> AuthenticatedApiKey:
    """FastAPI dependency returning the authenticated identity.

    Raises:
        AuthenticationRequiredError: If the request was let through without a
            key, for example with optional authentication

    """
    api_key = get_authenticated_api_key(request)
    if api_key is None:
        raise AuthenticationRequiredError()
    return api_key
