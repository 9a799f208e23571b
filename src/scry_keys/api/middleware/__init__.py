"""API middleware for Scry Keys."""

from scry_keys.api.middleware.api_key_auth import (
    DEFAULT_PUBLIC_ROUTES,
    APIKeyAuthMiddleware,
    APIKeyAuthOptions,
    APIKeyGate,
    PublicRoutesConfig,
    get_authenticated_api_key,
    is_authenticated,
    require_api_key,
)
from scry_keys.api.middleware.errors import setup_error_handlers
from scry_keys.api.middleware.request_id import RequestIDMiddleware


__all__ = [
    "DEFAULT_PUBLIC_ROUTES",
    "APIKeyAuthMiddleware",
    "APIKeyAuthOptions",
    "APIKeyGate",
    "PublicRoutesConfig",
    "RequestIDMiddleware",
    "get_authenticated_api_key",
    "is_authenticated",
    "require_api_key",
    "setup_error_handlers",
]
