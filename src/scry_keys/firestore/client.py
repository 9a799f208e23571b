"""Minimal Firestore REST client: documents addressed by path."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx
from structlog import get_logger

from scry_keys.core.http import http_client_scope, log_http_error
from scry_keys.exceptions import DocumentStoreError
from scry_keys.firestore.query import StructuredQuery
from scry_keys.firestore.service_account import AccessTokenProvider
from scry_keys.firestore.values import decode_fields, encode_fields, parse_timestamp


logger = get_logger(__name__)

FIRESTORE_API_URL = "https://firestore.googleapis.com/v1"
DEFAULT_DATABASE = "(default)"


@dataclass(frozen=True)
class FirestoreDocument:
    """A document read from the REST API with its fields decoded."""

    name: str
    fields: dict[str, Any] = field(default_factory=dict)
    create_time: datetime | None = None
    update_time: datetime | None = None

    @property
    def id(self) -> str:
        """Last segment of the document's resource name."""
        return self.name.rsplit("/", 1)[-1]

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "FirestoreDocument":
        return cls(
            name=data.get("name", ""),
            fields=decode_fields(data.get("fields") or {}),
            create_time=parse_timestamp(data.get("createTime")),
            update_time=parse_timestamp(data.get("updateTime")),
        )


class FirestoreRestClient:
    """Issues authenticated document calls against one Firestore database.

    No connection is kept between calls unless a shared ``http_client`` is
    passed in.
    """

    def __init__(
        self,
        gcp_project_id: str,
        token_provider: AccessTokenProvider,
        *,
        base_url: str = FIRESTORE_API_URL,
        database: str = DEFAULT_DATABASE,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.gcp_project_id = gcp_project_id
        self.token_provider = token_provider
        self.documents_url = (
            f"{base_url.rstrip('/')}/projects/{gcp_project_id}"
            f"/databases/{database}/documents"
        )
        self.timeout = timeout
        self._http_client = http_client

    def document_url(self, path: str) -> str:
        return f"{self.documents_url}/{path.strip('/')}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        path: str,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        token = await self.token_provider.get_token()
        headers = {"Authorization": f"Bearer {token}"}

        try:
            async with http_client_scope(self._http_client, self.timeout) as client:
                return await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=headers,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(
                "document_request_failed", operation=operation, path=path, error=str(e)
            )
            raise DocumentStoreError(
                f"Failed to {operation}: {e}", path=path
            ) from e

    def _raise_for_status(
        self, response: httpx.Response, operation: str, path: str
    ) -> None:
        if response.is_success:
            return
        log_http_error(operation, response)
        raise DocumentStoreError(
            f"Failed to {operation}: {response.status_code} {response.reason_phrase}",
            upstream_status=response.status_code,
            path=path,
        )

    async def get_document(self, path: str) -> FirestoreDocument | None:
        """Read one document, None if it does not exist."""
        response = await self._request(
            "GET", self.document_url(path), operation="get document", path=path
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        self._raise_for_status(response, "get document", path)
        return FirestoreDocument.from_wire(response.json())

    async def set_document(self, path: str, fields: Mapping[str, Any]) -> None:
        """Create or replace the document at ``path``."""
        response = await self._request(
            "PATCH",
            self.document_url(path),
            operation="set document",
            path=path,
            json={"fields": encode_fields(fields)},
        )
        self._raise_for_status(response, "set document", path)

    async def patch_document(
        self,
        path: str,
        fields: Mapping[str, Any],
        *,
        must_exist: bool = False,
    ) -> None:
        """Update exactly the named fields, leaving the rest untouched.

        Args:
            path: Document path relative to the database root
            fields: Field values to write; a None value removes the field
            must_exist: Fail with 404 instead of creating a missing document

        """
        params = [("updateMask.fieldPaths", name) for name in fields]
        if must_exist:
            params.append(("currentDocument.exists", "true"))

        response = await self._request(
            "PATCH",
            self.document_url(path),
            operation="patch document",
            path=path,
            params=params,
            json={"fields": encode_fields(fields)},
        )
        self._raise_for_status(response, "patch document", path)

    async def delete_document(self, path: str, *, missing_ok: bool = False) -> None:
        """Delete the document at ``path``.

        Args:
            path: Document path relative to the database root
            missing_ok: Treat 404 as success

        """
        response = await self._request(
            "DELETE", self.document_url(path), operation="delete document", path=path
        )
        if missing_ok and response.status_code == httpx.codes.NOT_FOUND:
            return
        self._raise_for_status(response, "delete document", path)

    async def query_documents(
        self, parent: str, query: StructuredQuery
    ) -> list[FirestoreDocument]:
        """Run a structured query over a collection below ``parent``."""
        base = self.document_url(parent) if parent else self.documents_url
        response = await self._request(
            "POST",
            f"{base}:runQuery",
            operation="query documents",
            path=parent,
            json={"structuredQuery": query.to_wire()},
        )
        self._raise_for_status(response, "query documents", parent)

        # Entries without a document only carry read metadata
        return [
            FirestoreDocument.from_wire(entry["document"])
            for entry in response.json()
            if entry.get("document")
        ]
