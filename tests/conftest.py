"""Shared fixtures: signing keys, the fake Firestore server and both stores."""

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from scry_keys.api_keys.database import DatabaseApiKeyStore
from scry_keys.api_keys.firestore import FirestoreApiKeyStore
from scry_keys.api_keys.store import CredentialStore
from scry_keys.db.engine import Database, init_db
from scry_keys.firestore.client import FirestoreRestClient
from scry_keys.firestore.service_account import AccessTokenProvider, ServiceAccount
from tests.fakes import (
    FAKE_FIRESTORE_URL,
    FAKE_GCP_PROJECT,
    FAKE_TOKEN_URL,
    SERVICE_ACCOUNT_EMAIL,
    FakeFirestore,
)


@pytest.fixture(scope="session")
def rsa_key() -> RSAPrivateKey:
    """One RSA key per session; generating keys is slow."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key: RSAPrivateKey) -> str:
    """The key as a PKCS#8 PEM string, the way service account files carry it."""
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def service_account(private_key_pem: str) -> ServiceAccount:
    return ServiceAccount(
        SERVICE_ACCOUNT_EMAIL,
        private_key_pem,
        private_key_id="test-key-id",
        token_url=FAKE_TOKEN_URL,
    )


@pytest.fixture
def fake_firestore(rsa_key: RSAPrivateKey) -> FakeFirestore:
    return FakeFirestore(public_key=rsa_key.public_key())


@pytest.fixture
async def http_client(
    fake_firestore: FakeFirestore,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=fake_firestore.transport()) as client:
        yield client


def build_firestore_client(
    service_account: ServiceAccount, http_client: httpx.AsyncClient
) -> FirestoreRestClient:
    provider = AccessTokenProvider(service_account, http_client=http_client)
    return FirestoreRestClient(
        FAKE_GCP_PROJECT,
        provider,
        base_url=FAKE_FIRESTORE_URL,
        http_client=http_client,
    )


@pytest.fixture
def firestore_client(
    service_account: ServiceAccount, http_client: httpx.AsyncClient
) -> FirestoreRestClient:
    return build_firestore_client(service_account, http_client)


@pytest.fixture
def firestore_store(firestore_client: FirestoreRestClient) -> FirestoreApiKeyStore:
    return FirestoreApiKeyStore(firestore_client)


def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'api_keys.db'}"


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Database with tables created in a temporary SQLite file."""
    db = await init_db(sqlite_url(tmp_path))
    yield db
    await db.dispose()


@pytest.fixture
def database_store(database: Database) -> DatabaseApiKeyStore:
    return DatabaseApiKeyStore(database)


@pytest.fixture(params=["firestore", "database"])
async def credential_store(
    request: pytest.FixtureRequest,
    tmp_path: Path,
    service_account: ServiceAccount,
    rsa_key: RSAPrivateKey,
) -> AsyncGenerator[CredentialStore, None]:
    """Each backend in turn, for tests of the shared store contract."""
    if request.param == "firestore":
        fake = FakeFirestore(public_key=rsa_key.public_key())
        async with httpx.AsyncClient(transport=fake.transport()) as client:
            store = FirestoreApiKeyStore(build_firestore_client(service_account, client))
            yield store
            await store.aclose()
    else:
        store = DatabaseApiKeyStore(await init_db(sqlite_url(tmp_path)))
        yield store
        await store.aclose()
