"""Pydantic models for project API keys."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ApiKeyStatus(StrEnum):
    """Lifecycle status of an API key."""

    ACTIVE = "active"
    REVOKED = "revoked"


class ValidationFailure(StrEnum):
    """Why a key failed validation.

    Unknown and revoked keys share one reason on purpose.
    """

    INVALID_FORMAT = "invalid_format"
    INVALID_OR_REVOKED = "invalid_or_revoked"
    EXPIRED = "expired"


_FAILURE_MESSAGES = {
    ValidationFailure.INVALID_FORMAT: "Invalid API key format",
    ValidationFailure.INVALID_OR_REVOKED: "Invalid or revoked API key",
    ValidationFailure.EXPIRED: "API key has expired",
}


class ApiKeyCreate(BaseModel):
    """Input model for creating a new API key."""

    name: str = Field(
        ..., min_length=1, max_length=255, description="Human-readable key name"
    )
    created_by: str = Field(
        ..., min_length=1, max_length=255, description="User creating the key"
    )
    expires_at: datetime | None = Field(
        default=None, description="Optional absolute expiry"
    )


class ApiKey(BaseModel):
    """API key metadata as returned to callers.

    The secret hash is deliberately not part of this model.
    """

    id: str = Field(..., description="Key identifier, unique within a project")
    name: str = Field(default="", description="Human-readable key name")
    prefix: str = Field(default="", description="First characters of the raw key")
    status: ApiKeyStatus = Field(default=ApiKeyStatus.ACTIVE)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    created_by: str = Field(default="", description="User who created the key")
    last_used_at: datetime | None = None
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    revoked_by: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the key's expiry lies in the past."""
        if self.expires_at is None:
            return False
        return self.expires_at < (now or datetime.now(UTC))


class CreatedApiKey(BaseModel):
    """Result of creating a key: the metadata plus the raw key, shown once."""

    api_key: ApiKey
    raw_key: str = Field(..., repr=False)


class ApiKeyValidation(BaseModel):
    """Outcome of validating a raw key against a project."""

    valid: bool
    api_key: ApiKey | None = None
    reason: ValidationFailure | None = None

    @classmethod
    def success(cls, api_key: ApiKey) -> "ApiKeyValidation":
        return cls(valid=True, api_key=api_key)

    @classmethod
    def failure(cls, reason: ValidationFailure) -> "ApiKeyValidation":
        return cls(valid=False, reason=reason)

    @property
    def error(self) -> str | None:
        """Human-readable failure message, None when valid."""
        if self.reason is None:
            return None
        return _FAILURE_MESSAGES[self.reason]


class AuthenticatedApiKey(BaseModel):
    """Identity exposed to downstream handlers after authentication."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    prefix: str
    project_id: str
