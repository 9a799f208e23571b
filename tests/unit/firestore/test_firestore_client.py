"""Tests for the Firestore REST client against the fake server."""

import json
from datetime import UTC, datetime

import httpx
import pytest

from scry_keys.exceptions import DocumentStoreError
from scry_keys.firestore.client import FirestoreDocument, FirestoreRestClient
from scry_keys.firestore.query import Direction, StructuredQuery
from scry_keys.firestore.service_account import AccessTokenProvider
from tests.fakes import FAKE_FIRESTORE_URL, FAKE_GCP_PROJECT


class TestDocuments:
    """Tests for single-document operations."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, firestore_client, fake_firestore):
        created_at = datetime(2024, 1, 1, tzinfo=UTC)
        await firestore_client.set_document(
            "projects/p/things/a", {"name": "A", "createdAt": created_at}
        )

        document = await firestore_client.get_document("projects/p/things/a")

        assert document is not None
        assert document.id == "a"
        assert document.fields == {"name": "A", "createdAt": created_at}
        assert document.create_time is not None

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, firestore_client):
        assert await firestore_client.get_document("projects/p/things/none") is None

    @pytest.mark.asyncio
    async def test_requests_carry_bearer_token(self, firestore_client, fake_firestore):
        await firestore_client.get_document("projects/p/things/a")

        [request] = fake_firestore.document_requests
        assert request.headers["authorization"] == "Bearer fake-token-1"

    @pytest.mark.asyncio
    async def test_patch_sends_field_mask(self, firestore_client, fake_firestore):
        """Test one updateMask.fieldPaths parameter per written field."""
        await firestore_client.set_document("projects/p/things/a", {"a": 1, "b": 2})
        fake_firestore.requests.clear()

        await firestore_client.patch_document("projects/p/things/a", {"b": 3, "c": 4})

        [request] = fake_firestore.document_requests
        assert request.method == "PATCH"
        assert request.url.params.get_list("updateMask.fieldPaths") == ["b", "c"]
        assert "currentDocument.exists" not in request.url.params
        assert json.loads(request.content) == {
            "fields": {"b": {"integerValue": "3"}, "c": {"integerValue": "4"}}
        }

        document = await firestore_client.get_document("projects/p/things/a")
        assert document is not None
        assert document.fields == {"a": 1, "b": 3, "c": 4}

    @pytest.mark.asyncio
    async def test_patch_must_exist(self, firestore_client, fake_firestore):
        """Test that the existence precondition stops an upsert."""
        with pytest.raises(DocumentStoreError) as exc_info:
            await firestore_client.patch_document(
                "projects/p/things/none", {"a": 1}, must_exist=True
            )

        assert exc_info.value.upstream_status == 404
        assert "projects/p/things/none" not in fake_firestore.documents

    @pytest.mark.asyncio
    async def test_delete(self, firestore_client, fake_firestore):
        await firestore_client.set_document("projects/p/things/a", {"a": 1})

        await firestore_client.delete_document("projects/p/things/a")

        assert fake_firestore.documents == {}

    @pytest.mark.asyncio
    async def test_delete_missing(self, firestore_client):
        """Test that a missing document is an error unless allowed."""
        with pytest.raises(DocumentStoreError):
            await firestore_client.delete_document("projects/p/things/none")

        await firestore_client.delete_document(
            "projects/p/things/none", missing_ok=True
        )

    @pytest.mark.asyncio
    async def test_error_message_has_status_text(
        self, firestore_client, fake_firestore
    ):
        fake_firestore.document_failure = 503

        with pytest.raises(DocumentStoreError) as exc_info:
            await firestore_client.get_document("projects/p/things/a")

        assert str(exc_info.value) == "Failed to get document: 503 Service Unavailable"
        assert exc_info.value.path == "projects/p/things/a"


class TestQuery:
    """Tests for structured queries."""

    @pytest.mark.asyncio
    async def test_query_filters_and_orders(self, firestore_client):
        for name, rank, color in [("a", 1, "red"), ("b", 2, "blue"), ("c", 3, "red")]:
            await firestore_client.set_document(
                f"projects/p/things/{name}", {"rank": rank, "color": color}
            )
        # Same collection id under another parent
        await firestore_client.set_document(
            "projects/q/things/d", {"rank": 4, "color": "red"}
        )

        query = (
            StructuredQuery("things")
            .where("color", "red")
            .order("rank", Direction.DESCENDING)
        )
        documents = await firestore_client.query_documents("projects/p", query)

        assert [d.id for d in documents] == ["c", "a"]

    @pytest.mark.asyncio
    async def test_query_posts_to_run_query(self, firestore_client, fake_firestore):
        await firestore_client.query_documents(
            "projects/p", StructuredQuery("things").take(5)
        )

        [request] = fake_firestore.document_requests
        assert request.method == "POST"
        assert str(request.url) == (
            f"{FAKE_FIRESTORE_URL}/projects/{FAKE_GCP_PROJECT}"
            "/databases/(default)/documents/projects/p:runQuery"
        )
        assert json.loads(request.content) == {
            "structuredQuery": {"from": [{"collectionId": "things"}], "limit": 5}
        }

    @pytest.mark.asyncio
    async def test_entries_without_document_are_dropped(self, service_account):
        """Test that read-time-only entries are not returned as results."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "t", "expires_in": 3600})
            return httpx.Response(
                200,
                json=[
                    {"readTime": "2024-01-01T00:00:00Z"},
                    {
                        "document": {
                            "name": "projects/x/databases/(default)/documents/c/d1",
                            "fields": {"n": {"stringValue": "one"}},
                        },
                        "readTime": "2024-01-01T00:00:00Z",
                    },
                    {"skippedResults": 1},
                ],
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = FirestoreRestClient(
                "x",
                AccessTokenProvider(service_account, http_client=http),
                http_client=http,
            )
            documents = await client.query_documents("", StructuredQuery("c"))

        assert documents == [
            FirestoreDocument(
                name="projects/x/databases/(default)/documents/c/d1",
                fields={"n": "one"},
            )
        ]

    @pytest.mark.asyncio
    async def test_query_failure(self, firestore_client, fake_firestore):
        fake_firestore.document_failure = 500

        with pytest.raises(DocumentStoreError, match="500 Internal Server Error"):
            await firestore_client.query_documents("projects/p", StructuredQuery("t"))


class TestTransportErrors:
    @pytest.mark.asyncio
    async def test_connection_errors_are_wrapped(self, service_account):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "t", "expires_in": 3600})
            raise httpx.ReadTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = FirestoreRestClient(
                "x",
                AccessTokenProvider(service_account, http_client=http),
                http_client=http,
            )
            with pytest.raises(DocumentStoreError) as exc_info:
                await client.get_document("a/b")

        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
