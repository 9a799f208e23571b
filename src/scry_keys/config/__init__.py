"""Configuration module for Scry Keys."""

from .settings import (
    AuthSettings,
    CredentialBackend,
    DatabaseSettings,
    FirebaseSettings,
    ServerSettings,
    Settings,
    get_settings,
)


__all__ = [
    "Settings",
    "get_settings",
    "AuthSettings",
    "CredentialBackend",
    "DatabaseSettings",
    "FirebaseSettings",
    "ServerSettings",
]
