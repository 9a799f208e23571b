"""Consolidated exception hierarchy for Scry Keys.

All exceptions use proper exception chaining with the `from` keyword.
Error types use StrEnum so responses carry a machine-readable kind.
"""

from enum import StrEnum
from typing import Any

from starlette import status


class ErrorType(StrEnum):
    """Error type codes for API responses."""

    INVALID_REQUEST = "invalid_request_error"
    AUTHENTICATION_REQUIRED = "authentication_required"
    INVALID_KEY_FORMAT = "invalid_key_format"
    INVALID_API_KEY = "invalid_api_key"
    PROJECT_MISMATCH = "project_mismatch"
    NOT_FOUND = "not_found_error"
    TOKEN_EXCHANGE = "token_exchange_error"
    DOCUMENT_STORE = "document_store_error"
    CONFIGURATION = "configuration_error"
    INTERNAL_SERVER = "internal_server_error"


# ============================================================================
# Base Exceptions
# ============================================================================


class ScryKeysError(Exception):
    """Base exception for all Scry Keys errors.

    Carries an HTTP status code and an error type so the API layer can
    render any subclass without knowing about it.
    """

    def __init__(
        self,
        message: str,
        *,
        error_type: ErrorType = ErrorType.INTERNAL_SERVER,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.details = details or {}


# ============================================================================
# Authentication Errors (client faults)
# ============================================================================


class AuthenticationError(ScryKeysError):
    """Base class for request authentication failures (401)."""

    def __init__(
        self,
        message: str = "Authentication failed",
        *,
        error_type: ErrorType = ErrorType.INVALID_API_KEY,
        status_code: int = status.HTTP_401_UNAUTHORIZED,
    ) -> None:
        super().__init__(message, error_type=error_type, status_code=status_code)


class AuthenticationRequiredError(AuthenticationError):
    """No API key was supplied on a protected route."""

    def __init__(self, header_name: str = "X-API-Key") -> None:
        super().__init__(
            f"Missing {header_name} header",
            error_type=ErrorType.AUTHENTICATION_REQUIRED,
        )
        self.header_name = header_name


class InvalidApiKeyFormatError(AuthenticationError):
    """The supplied key does not follow the project key format."""

    def __init__(
        self, message: str = "The provided API key has an invalid format"
    ) -> None:
        super().__init__(message, error_type=ErrorType.INVALID_KEY_FORMAT)


class InvalidApiKeyError(AuthenticationError):
    """The key is unknown, revoked or expired.

    The message never says which one.
    """

    def __init__(
        self,
        message: str = "The provided API key is invalid, expired, or revoked",
    ) -> None:
        super().__init__(message, error_type=ErrorType.INVALID_API_KEY)


class ProjectMismatchError(AuthenticationError):
    """The key belongs to a different project than the requested one (403)."""

    def __init__(
        self,
        message: str = "The API key does not belong to the requested project",
    ) -> None:
        super().__init__(
            message,
            error_type=ErrorType.PROJECT_MISMATCH,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class ApiKeyNotFoundError(ScryKeysError):
    """No key with the given id exists in the project (404)."""

    def __init__(self, project_id: str, key_id: str) -> None:
        super().__init__(
            f"API key '{key_id}' not found in project '{project_id}'",
            error_type=ErrorType.NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"project_id": project_id, "key_id": key_id},
        )
        self.project_id = project_id
        self.key_id = key_id


# ============================================================================
# Transport Errors (infrastructure faults)
# ============================================================================


class TokenExchangeError(ScryKeysError):
    """Exchanging the service-account assertion for an access token failed."""

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        response_text: str | None = None,
    ) -> None:
        super().__init__(message, error_type=ErrorType.TOKEN_EXCHANGE)
        self.upstream_status = upstream_status
        self.response_text = response_text


class ServiceAccountKeyError(TokenExchangeError):
    """The service-account private key could not be imported."""


class DocumentStoreError(ScryKeysError):
    """A document store REST call returned a non-success response."""

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(
            message,
            error_type=ErrorType.DOCUMENT_STORE,
            details={"path": path} if path else None,
        )
        self.upstream_status = upstream_status
        self.path = path


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(ScryKeysError):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_type=ErrorType.CONFIGURATION)


__all__ = [
    # Enums
    "ErrorType",
    # Base
    "ScryKeysError",
    # Authentication
    "AuthenticationError",
    "AuthenticationRequiredError",
    "InvalidApiKeyFormatError",
    "InvalidApiKeyError",
    "ProjectMismatchError",
    "ApiKeyNotFoundError",
    # Transport
    "TokenExchangeError",
    "ServiceAccountKeyError",
    "DocumentStoreError",
    # Configuration
    "ConfigurationError",
]
