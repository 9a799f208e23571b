"""Tests for API key models."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from scry_keys.api_keys.models import (
    ApiKey,
    ApiKeyCreate,
    ApiKeyStatus,
    ApiKeyValidation,
    AuthenticatedApiKey,
    CreatedApiKey,
    ValidationFailure,
)
from scry_keys.api_keys.store import KeyMaterial, check_expiry, ensure_utc


class TestApiKeyCreate:
    """Tests for the creation request."""

    def test_valid_request(self):
        request = ApiKeyCreate(name="CI uploader", created_by="user-1")
        assert request.expires_at is None

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            ApiKeyCreate(name="", created_by="user-1")


class TestApiKey:
    """Tests for key metadata."""

    def test_defaults(self):
        """Test that a bare key is active with empty strings."""
        key = ApiKey(id="k1")
        assert key.status == ApiKeyStatus.ACTIVE
        assert key.name == ""
        assert key.prefix == ""
        assert key.created_at.tzinfo is not None

    def test_hash_is_not_a_field(self):
        assert "hash" not in ApiKey.model_fields

    def test_is_expired(self):
        """Test expiry relative to a given time."""
        now = datetime.now(UTC)
        assert not ApiKey(id="k1").is_expired(now)
        assert not ApiKey(id="k1", expires_at=now + timedelta(hours=1)).is_expired(now)
        assert ApiKey(id="k1", expires_at=now - timedelta(seconds=1)).is_expired(now)


class TestApiKeyValidation:
    """Tests for validation results."""

    def test_success(self):
        result = ApiKeyValidation.success(ApiKey(id="k1"))
        assert result.valid
        assert result.error is None

    @pytest.mark.parametrize(
        ("reason", "message"),
        [
            (ValidationFailure.INVALID_FORMAT, "Invalid API key format"),
            (ValidationFailure.INVALID_OR_REVOKED, "Invalid or revoked API key"),
            (ValidationFailure.EXPIRED, "API key has expired"),
        ],
    )
    def test_failure_messages(self, reason, message):
        result = ApiKeyValidation.failure(reason)
        assert not result.valid
        assert result.api_key is None
        assert result.error == message


class TestCheckExpiry:
    """Tests for turning a matched key into a result."""

    def test_expired_key_fails(self):
        now = datetime.now(UTC)
        key = ApiKey(id="k1", expires_at=now - timedelta(minutes=1))
        result = check_expiry(key, now)
        assert result.reason == ValidationFailure.EXPIRED

    def test_unexpired_key_passes(self):
        key = ApiKey(id="k1", expires_at=datetime.now(UTC) + timedelta(days=1))
        result = check_expiry(key)
        assert result.valid
        assert result.api_key == key


class TestSecretsStayHidden:
    """Tests that raw keys and hashes do not leak through repr."""

    def test_created_key_repr(self):
        created = CreatedApiKey(api_key=ApiKey(id="k1"), raw_key="scry_proj_p_secret")
        assert "scry_proj_p_secret" not in repr(created)

    def test_key_material_repr(self):
        material = KeyMaterial(
            key_id="k1", raw_key="raw-secret", hash="deadbeef", prefix="scry_proj_p_"
        )
        assert "raw-secret" not in repr(material)
        assert "deadbeef" not in repr(material)


class TestAuthenticatedApiKey:
    def test_is_frozen(self):
        identity = AuthenticatedApiKey(id="k1", name="n", prefix="p", project_id="a")
        with pytest.raises(ValidationError):
            identity.project_id = "b"


class TestEnsureUtc:
    def test_naive_is_tagged_utc(self):
        naive = datetime(2024, 1, 1, 12, 0)
        assert ensure_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def test_none_passes_through(self):
        assert ensure_utc(None) is None
