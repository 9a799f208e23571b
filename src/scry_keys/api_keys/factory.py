"""Credential store selection at startup."""

from structlog import get_logger

from scry_keys.api_keys.database import DatabaseApiKeyStore
from scry_keys.api_keys.firestore import FirestoreApiKeyStore
from scry_keys.api_keys.store import CredentialStore
from scry_keys.config.settings import CredentialBackend, Settings
from scry_keys.db.engine import Database
from scry_keys.exceptions import ConfigurationError


logger = get_logger(__name__)


def create_credential_store(settings: Settings) -> CredentialStore | None:
    """Build the configured credential store.

    ``auto`` picks Firestore when its service-account credentials are all set
    and otherwise returns None, which leaves the API key gate open.

    Raises:
        ConfigurationError: If Firestore is requested without credentials

    """
    backend = settings.auth.backend
    firebase = settings.firebase

    if backend is CredentialBackend.AUTO:
        backend = (
            CredentialBackend.FIRESTORE
            if firebase.has_credentials
            else CredentialBackend.NONE
        )

    if backend is CredentialBackend.FIRESTORE:
        if not firebase.has_credentials:
            raise ConfigurationError(
                "Firestore backend requires FIREBASE_PROJECT_ID, "
                "FIREBASE_CLIENT_EMAIL and FIREBASE_PRIVATE_KEY"
            )
        logger.info(
            "credential_store_selected",
            backend=backend.value,
            gcp_project_id=firebase.project_id,
        )
        return FirestoreApiKeyStore.from_settings(firebase)

    if backend is CredentialBackend.DATABASE:
        database = Database(settings.database.url, echo=settings.database.echo)
        logger.info("credential_store_selected", backend=backend.value)
        return DatabaseApiKeyStore(database)

    logger.warning(
        "credential_store_disabled",
        message="API key authentication is disabled; all requests pass through",
    )
    return None
