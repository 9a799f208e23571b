"""Settings configuration for Scry Keys."""

import os
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scry_keys.exceptions import ConfigurationError
from scry_keys.firestore.client import DEFAULT_DATABASE, FIRESTORE_API_URL
from scry_keys.firestore.service_account import (
    ASSERTION_LIFETIME_SECONDS,
    DATASTORE_SCOPE,
    GOOGLE_TOKEN_URL,
    TOKEN_REFRESH_MARGIN_SECONDS,
)


__all__ = [
    "AuthSettings",
    "CredentialBackend",
    "DatabaseSettings",
    "FirebaseSettings",
    "ServerSettings",
    "Settings",
    "get_settings",
]


def _coerce_settings(value: Any, settings_class: type) -> Any:
    """Coerce value to settings class instance.

    Handles: None -> default, dict -> instance, passthrough existing instances.
    """
    if value is None:
        return settings_class()
    if isinstance(value, settings_class):
        return value
    if isinstance(value, dict):
        return settings_class(**value)
    return value


class ServerSettings(BaseSettings):
    """Process-level settings."""

    model_config = SettingsConfigDict(
        env_prefix="SCRY_SERVER_",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON instead of console output",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v


class CredentialBackend(StrEnum):
    """Which credential store serves the API key gate."""

    AUTO = "auto"
    FIRESTORE = "firestore"
    DATABASE = "database"
    NONE = "none"


class AuthSettings(BaseSettings):
    """API key gate settings."""

    model_config = SettingsConfigDict(
        env_prefix="SCRY_AUTH_",
        case_sensitive=False,
        extra="ignore",
    )

    backend: CredentialBackend = Field(
        default=CredentialBackend.AUTO,
        description="Credential store backend; 'auto' uses Firestore when configured",
    )

    header_name: str = Field(
        default="X-API-Key",
        min_length=1,
        description="Request header carrying the API key",
    )

    validate_project_match: bool = Field(
        default=True,
        description="Reject keys whose project differs from the route project",
    )

    project_param_name: str = Field(
        default="project",
        min_length=1,
        description="Route parameter holding the requested project id",
    )

    track_usage: bool = Field(
        default=True,
        description="Record last use of a key after successful authentication",
    )

    optional: bool = Field(
        default=False,
        description="Let requests without a key through unauthenticated",
    )

    public_routes: list[str] = Field(
        default_factory=lambda: ["/health", "/docs", "/openapi.json", "/redoc"],
        description="Paths that never require an API key",
    )


class FirebaseSettings(BaseSettings):
    """Service account and endpoints for the Firestore backend.

    Read from the ``FIREBASE_*`` variables the service is deployed with.
    """

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        case_sensitive=False,
        extra="ignore",
    )

    project_id: str | None = Field(
        default=None, description="Google Cloud project hosting the database"
    )
    client_email: str | None = Field(
        default=None, description="Service account email"
    )
    private_key: SecretStr | None = Field(
        default=None, description="Service account PEM private key"
    )
    private_key_id: str | None = Field(
        default=None, description="Optional key id placed in the JWT header"
    )

    token_url: str = Field(default=GOOGLE_TOKEN_URL)
    scope: str = Field(default=DATASTORE_SCOPE)
    firestore_base_url: str = Field(default=FIRESTORE_API_URL)
    database: str = Field(default=DEFAULT_DATABASE)

    assertion_lifetime_seconds: int = Field(
        default=ASSERTION_LIFETIME_SECONDS, ge=60, le=3600
    )
    token_refresh_margin_seconds: int = Field(
        default=TOKEN_REFRESH_MARGIN_SECONDS, ge=0, le=600
    )
    request_timeout: float = Field(default=30.0, gt=0)

    @property
    def has_credentials(self) -> bool:
        """Whether project, email and private key are all present."""
        return bool(
            self.project_id
            and self.client_email
            and self.private_key
            and self.private_key.get_secret_value()
        )


class DatabaseSettings(BaseSettings):
    """Reference database backend settings."""

    model_config = SettingsConfigDict(
        env_prefix="SCRY_DATABASE_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str | None = Field(
        default=None,
        description="SQLAlchemy async URL; defaults to a SQLite file under ~/.scry",
    )
    echo: bool = Field(default=False, description="Log emitted SQL")


class Settings(BaseSettings):
    """
    Configuration settings for Scry Keys.

    Settings are loaded from environment variables, .env files, and an
    optional TOML configuration file named by ``CONFIG_FILE``.
    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    server: ServerSettings = Field(
        default_factory=ServerSettings,
        description="Server configuration settings",
    )

    auth: AuthSettings = Field(
        default_factory=AuthSettings,
        description="API key gate configuration",
    )

    firebase: FirebaseSettings = Field(
        default_factory=FirebaseSettings,
        description="Firestore backend configuration",
    )

    database: DatabaseSettings = Field(
        default_factory=DatabaseSettings,
        description="Database backend configuration",
    )

    @field_validator("server", mode="before")
    @classmethod
    def validate_server(cls, v: Any) -> Any:
        return _coerce_settings(v, ServerSettings)

    @field_validator("auth", mode="before")
    @classmethod
    def validate_auth(cls, v: Any) -> Any:
        return _coerce_settings(v, AuthSettings)

    @field_validator("firebase", mode="before")
    @classmethod
    def validate_firebase(cls, v: Any) -> Any:
        return _coerce_settings(v, FirebaseSettings)

    @field_validator("database", mode="before")
    @classmethod
    def validate_database(cls, v: Any) -> Any:
        return _coerce_settings(v, DatabaseSettings)

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file.

        Args:
            toml_path: Path to the TOML configuration file

        Returns:
            dict: Configuration data from the TOML file

        Raises:
            ValueError: If the TOML file is invalid or cannot be read
        """
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ValueError(f"Cannot read TOML config file {toml_path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML syntax in {toml_path}: {e}") from e

    @classmethod
    def from_config(
        cls, config_path: Path | str | None = None, **kwargs: Any
    ) -> "Settings":
        """Create Settings instance from configuration file.

        Args:
            config_path: Path to a TOML file. If None, uses the CONFIG_FILE
                env var when set.
            **kwargs: Additional keyword arguments to override config values

        Returns:
            Settings: Configured Settings instance
        """
        if config_path is None:
            config_path_env = os.environ.get("CONFIG_FILE")
            if config_path_env:
                config_path = Path(config_path_env)

        if isinstance(config_path, str):
            config_path = Path(config_path)

        config_data: dict[str, Any] = {}
        if config_path is not None:
            if config_path.suffix.lower() != ".toml":
                raise ValueError(
                    f"Unsupported config file format: {config_path.suffix}. "
                    "Only TOML (.toml) files are supported."
                )
            config_data = cls.load_toml_config(config_path)

        # kwargs take precedence over the file
        return cls(**{**config_data, **kwargs})


def get_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings, wrapping any failure in a ConfigurationError.

    Args:
        config_path: Optional path to a TOML configuration file. If None, uses
            the CONFIG_FILE env var.

    Returns:
        Settings: Configured Settings instance
    """
    try:
        return Settings.from_config(config_path=config_path)
    except (OSError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        raise ConfigurationError(f"Configuration error: {e}") from e
