"""Credential store contract shared by every API key backend."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from scry_keys.api_keys.codec import (
    generate_api_key,
    generate_key_id,
    hash_api_key,
    key_prefix,
)
from scry_keys.api_keys.models import (
    ApiKey,
    ApiKeyCreate,
    ApiKeyValidation,
    CreatedApiKey,
    ValidationFailure,
)


@runtime_checkable
class CredentialStore(Protocol):
    """Operations every API key backend provides with identical semantics.

    Backends are interchangeable and picked at startup; see
    `scry_keys.api_keys.factory.create_credential_store`.
    """

    async def create_key(
        self, project_id: str, request: ApiKeyCreate
    ) -> CreatedApiKey:
        """Issue a key. Only hash, prefix and metadata are persisted."""
        ...

    async def validate_key(self, project_id: str, raw_key: str) -> ApiKeyValidation:
        """Check a raw key against the project's active keys."""
        ...

    async def list_keys(self, project_id: str) -> list[ApiKey]:
        """List every key of a project, newest first."""
        ...

    async def get_key(self, project_id: str, key_id: str) -> ApiKey | None:
        """Fetch a single key's metadata."""
        ...

    async def revoke_key(self, project_id: str, key_id: str, revoked_by: str) -> None:
        """Mark a key revoked, recording who did it and when."""
        ...

    async def delete_key(self, project_id: str, key_id: str) -> None:
        """Permanently remove a key. Deleting a missing key is not an error."""
        ...

    async def touch_last_used(self, project_id: str, key_id: str) -> None:
        """Record a successful use of a key."""
        ...

    async def aclose(self) -> None:
        """Release backend resources."""
        ...


@dataclass(frozen=True)
class KeyMaterial:
    """Everything derived from a freshly generated raw key."""

    key_id: str
    raw_key: str
    hash: str
    prefix: str

    def __repr__(self) -> str:
        return f"KeyMaterial(key_id={self.key_id!r}, prefix={self.prefix!r})"


def new_key_material(project_id: str) -> KeyMaterial:
    """Generate a raw key for a project along with its id, hash and prefix."""
    raw_key = generate_api_key(project_id)
    return KeyMaterial(
        key_id=generate_key_id(),
        raw_key=raw_key,
        hash=hash_api_key(raw_key),
        prefix=key_prefix(raw_key),
    )


def build_created_key(
    material: KeyMaterial, request: ApiKeyCreate, created_at: datetime
) -> CreatedApiKey:
    """Assemble the one-time creation result returned to the caller."""
    api_key = ApiKey(
        id=material.key_id,
        name=request.name,
        prefix=material.prefix,
        created_at=created_at,
        created_by=request.created_by,
        expires_at=request.expires_at,
    )
    return CreatedApiKey(api_key=api_key, raw_key=material.raw_key)


def check_expiry(api_key: ApiKey, now: datetime | None = None) -> ApiKeyValidation:
    """Turn a matched active key into the final validation result."""
    if api_key.is_expired(now or datetime.now(UTC)):
        return ApiKeyValidation.failure(ValidationFailure.EXPIRED)
    return ApiKeyValidation.success(api_key)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
