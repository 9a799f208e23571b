"""SQLModel database models."""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class ApiKeyRow(SQLModel, table=True):
    """Persisted API key. Holds the hash, never the raw key."""

    __tablename__ = "api_keys"

    id: str = Field(primary_key=True)
    project_id: str = Field(primary_key=True, index=True)
    name: str
    prefix: str
    hash: str = Field(index=True)
    status: str = Field(default="active", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    created_by: str

    # Optional lifecycle metadata
    last_used_at: datetime | None = None
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    revoked_by: str | None = None
