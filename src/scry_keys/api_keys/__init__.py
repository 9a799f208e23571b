"""Project-scoped API keys: format, storage contract and backends."""

from scry_keys.api_keys.codec import (
    extract_project_id,
    generate_api_key,
    hash_api_key,
    is_well_formed,
    key_prefix,
)
from scry_keys.api_keys.database import DatabaseApiKeyStore
from scry_keys.api_keys.factory import create_credential_store
from scry_keys.api_keys.firestore import FirestoreApiKeyStore
from scry_keys.api_keys.models import (
    ApiKey,
    ApiKeyCreate,
    ApiKeyStatus,
    ApiKeyValidation,
    AuthenticatedApiKey,
    CreatedApiKey,
    ValidationFailure,
)
from scry_keys.api_keys.store import CredentialStore


__all__ = [
    # Codec
    "extract_project_id",
    "generate_api_key",
    "hash_api_key",
    "is_well_formed",
    "key_prefix",
    # Models
    "ApiKey",
    "ApiKeyCreate",
    "ApiKeyStatus",
    "ApiKeyValidation",
    "AuthenticatedApiKey",
    "CreatedApiKey",
    "ValidationFailure",
    # Stores
    "CredentialStore",
    "DatabaseApiKeyStore",
    "FirestoreApiKeyStore",
    "create_credential_store",
]
