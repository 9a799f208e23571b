"""API key store speaking the Firestore REST protocol directly.

Keys live at ``projects/{projectId}/apiKeys/{keyId}``. The store needs only a
service account and outbound HTTPS, which makes it usable where the Firebase
SDK is not available.
"""

from datetime import UTC, datetime
from typing import Any

import httpx
from structlog import get_logger

from scry_keys.api_keys.codec import hash_api_key, is_well_formed
from scry_keys.api_keys.models import (
    ApiKey,
    ApiKeyCreate,
    ApiKeyStatus,
    ApiKeyValidation,
    CreatedApiKey,
    ValidationFailure,
)
from scry_keys.api_keys.store import build_created_key, check_expiry, new_key_material
from scry_keys.config.settings import FirebaseSettings
from scry_keys.exceptions import ApiKeyNotFoundError, DocumentStoreError
from scry_keys.firestore.client import FirestoreDocument, FirestoreRestClient
from scry_keys.firestore.query import Direction, StructuredQuery
from scry_keys.firestore.service_account import AccessTokenProvider, ServiceAccount


logger = get_logger(__name__)

API_KEYS_COLLECTION = "apiKeys"


def project_path(project_id: str) -> str:
    return f"projects/{project_id}"


def key_path(project_id: str, key_id: str) -> str:
    return f"{project_path(project_id)}/{API_KEYS_COLLECTION}/{key_id}"


def _string(fields: dict[str, Any], name: str) -> str:
    value = fields.get(name)
    return value if isinstance(value, str) else ""


def _timestamp(fields: dict[str, Any], name: str) -> datetime | None:
    value = fields.get(name)
    return value if isinstance(value, datetime) else None


def document_to_api_key(document: FirestoreDocument) -> ApiKey:
    """Map a stored document to public metadata.

    The store has no schema, so missing or malformed fields fall back to
    empty strings, ``active`` status and the current time.
    """
    fields = document.fields
    try:
        status = ApiKeyStatus(fields.get("status") or ApiKeyStatus.ACTIVE)
    except ValueError:
        status = ApiKeyStatus.ACTIVE

    revoked_by = fields.get("revokedBy")
    return ApiKey(
        id=document.id,
        name=_string(fields, "name"),
        prefix=_string(fields, "prefix"),
        status=status,
        created_at=_timestamp(fields, "createdAt") or datetime.now(UTC),
        created_by=_string(fields, "createdBy"),
        last_used_at=_timestamp(fields, "lastUsedAt"),
        expires_at=_timestamp(fields, "expiresAt"),
        revoked_at=_timestamp(fields, "revokedAt"),
        revoked_by=revoked_by if isinstance(revoked_by, str) else None,
    )


class FirestoreApiKeyStore:
    """Credential store implemented on raw Firestore REST calls."""

    def __init__(self, client: FirestoreRestClient) -> None:
        self.client = client

    @classmethod
    def from_settings(
        cls,
        settings: FirebaseSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> "FirestoreApiKeyStore":
        """Build the store, its token provider and REST client from settings."""
        token_provider = AccessTokenProvider(
            ServiceAccount.from_settings(settings),
            refresh_margin=settings.token_refresh_margin_seconds,
            http_client=http_client,
            timeout=settings.request_timeout,
        )
        client = FirestoreRestClient(
            settings.project_id or "",
            token_provider,
            base_url=settings.firestore_base_url,
            database=settings.database,
            http_client=http_client,
            timeout=settings.request_timeout,
        )
        return cls(client)

    async def create_key(
        self, project_id: str, request: ApiKeyCreate
    ) -> CreatedApiKey:
        material = new_key_material(project_id)
        now = datetime.now(UTC)

        await self.client.set_document(
            key_path(project_id, material.key_id),
            {
                "name": request.name,
                "prefix": material.prefix,
                "hash": material.hash,
                "status": ApiKeyStatus.ACTIVE.value,
                "createdAt": now,
                "createdBy": request.created_by,
                "expiresAt": request.expires_at,
            },
        )

        logger.info(
            "api_key_created",
            project_id=project_id,
            key_id=material.key_id,
            prefix=material.prefix,
            created_by=request.created_by,
        )
        return build_created_key(material, request, now)

    async def validate_key(self, project_id: str, raw_key: str) -> ApiKeyValidation:
        if not is_well_formed(raw_key):
            return ApiKeyValidation.failure(ValidationFailure.INVALID_FORMAT)

        query = (
            StructuredQuery(API_KEYS_COLLECTION)
            .where("hash", hash_api_key(raw_key))
            .where("status", ApiKeyStatus.ACTIVE.value)
            .take(1)
        )
        documents = await self.client.query_documents(project_path(project_id), query)
        if not documents:
            return ApiKeyValidation.failure(ValidationFailure.INVALID_OR_REVOKED)
        return check_expiry(document_to_api_key(documents[0]))

    async def list_keys(self, project_id: str) -> list[ApiKey]:
        query = StructuredQuery(API_KEYS_COLLECTION).order(
            "createdAt", Direction.DESCENDING
        )
        documents = await self.client.query_documents(project_path(project_id), query)
        return [document_to_api_key(doc) for doc in documents]

    async def get_key(self, project_id: str, key_id: str) -> ApiKey | None:
        document = await self.client.get_document(key_path(project_id, key_id))
        return document_to_api_key(document) if document else None

    async def _patch_existing(
        self, project_id: str, key_id: str, fields: dict[str, Any]
    ) -> None:
        try:
            await self.client.patch_document(
                key_path(project_id, key_id), fields, must_exist=True
            )
        except DocumentStoreError as e:
            if e.upstream_status == httpx.codes.NOT_FOUND:
                raise ApiKeyNotFoundError(project_id, key_id) from e
            raise

    async def revoke_key(self, project_id: str, key_id: str, revoked_by: str) -> None:
        await self._patch_existing(
            project_id,
            key_id,
            {
                "status": ApiKeyStatus.REVOKED.value,
                "revokedAt": datetime.now(UTC),
                "revokedBy": revoked_by,
            },
        )
        logger.info(
            "api_key_revoked",
            project_id=project_id,
            key_id=key_id,
            revoked_by=revoked_by,
        )

    async def delete_key(self, project_id: str, key_id: str) -> None:
        await self.client.delete_document(
            key_path(project_id, key_id), missing_ok=True
        )
        logger.info("api_key_deleted", project_id=project_id, key_id=key_id)

    async def touch_last_used(self, project_id: str, key_id: str) -> None:
        await self._patch_existing(
            project_id, key_id, {"lastUsedAt": datetime.now(UTC)}
        )

    async def aclose(self) -> None:
        """Nothing to release: connections never outlive a call."""
