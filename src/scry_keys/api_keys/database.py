"""API key store backed by a relational database through SQLModel."""

from datetime import UTC, datetime

from sqlalchemy import delete
from sqlmodel import col, select
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
from scry_keys.api_keys.store import (
    build_created_key,
    check_expiry,
    ensure_utc,
    new_key_material,
)
from scry_keys.db.engine import Database
from scry_keys.db.models import ApiKeyRow
from scry_keys.exceptions import ApiKeyNotFoundError


logger = get_logger(__name__)


def _row_to_api_key(row: ApiKeyRow) -> ApiKey:
    """Convert a stored row to public metadata, dropping the hash."""
    try:
        status = ApiKeyStatus(row.status)
    except ValueError:
        status = ApiKeyStatus.ACTIVE
    return ApiKey(
        id=row.id,
        name=row.name or "",
        prefix=row.prefix or "",
        status=status,
        created_at=ensure_utc(row.created_at) or datetime.now(UTC),
        created_by=row.created_by or "",
        last_used_at=ensure_utc(row.last_used_at),
        expires_at=ensure_utc(row.expires_at),
        revoked_at=ensure_utc(row.revoked_at),
        revoked_by=row.revoked_by,
    )


class DatabaseApiKeyStore:
    """Reference credential store on top of a managed database connection.

    Rows are partitioned by ``project_id``; every statement filters on it.
    """

    def __init__(self, database: Database) -> None:
        """Initialize the store.

        Args:
            database: Database whose tables already exist

        """
        self.database = database

    async def create_key(
        self, project_id: str, request: ApiKeyCreate
    ) -> CreatedApiKey:
        material = new_key_material(project_id)
        now = datetime.now(UTC)

        async with self.database.session() as session:
            session.add(
                ApiKeyRow(
                    id=material.key_id,
                    project_id=project_id,
                    name=request.name,
                    prefix=material.prefix,
                    hash=material.hash,
                    status=ApiKeyStatus.ACTIVE.value,
                    created_at=now,
                    created_by=request.created_by,
                    expires_at=request.expires_at,
                )
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

        async with self.database.session() as session:
            result = await session.execute(
                select(ApiKeyRow)
                .where(
                    ApiKeyRow.project_id == project_id,
                    ApiKeyRow.hash == hash_api_key(raw_key),
                    ApiKeyRow.status == ApiKeyStatus.ACTIVE.value,
                )
                .limit(1)
            )
            row = result.scalars().first()

        if row is None:
            return ApiKeyValidation.failure(ValidationFailure.INVALID_OR_REVOKED)
        return check_expiry(_row_to_api_key(row))

    async def list_keys(self, project_id: str) -> list[ApiKey]:
        async with self.database.session() as session:
            result = await session.execute(
                select(ApiKeyRow)
                .where(ApiKeyRow.project_id == project_id)
                .order_by(col(ApiKeyRow.created_at).desc())
            )
            rows = list(result.scalars().all())
        return [_row_to_api_key(row) for row in rows]

    async def get_key(self, project_id: str, key_id: str) -> ApiKey | None:
        async with self.database.session() as session:
            row = await session.get(ApiKeyRow, (key_id, project_id))
        return _row_to_api_key(row) if row else None

    async def revoke_key(self, project_id: str, key_id: str, revoked_by: str) -> None:
        async with self.database.session() as session:
            row = await session.get(ApiKeyRow, (key_id, project_id))
            if row is None:
                raise ApiKeyNotFoundError(project_id, key_id)
            row.status = ApiKeyStatus.REVOKED.value
            row.revoked_at = datetime.now(UTC)
            row.revoked_by = revoked_by
            session.add(row)

        logger.info(
            "api_key_revoked",
            project_id=project_id,
            key_id=key_id,
            revoked_by=revoked_by,
        )

    async def delete_key(self, project_id: str, key_id: str) -> None:
        async with self.database.session() as session:
            await session.execute(
                delete(ApiKeyRow).where(
                    ApiKeyRow.project_id == project_id,
                    ApiKeyRow.id == key_id,
                )
            )
        logger.info("api_key_deleted", project_id=project_id, key_id=key_id)

    async def touch_last_used(self, project_id: str, key_id: str) -> None:
        async with self.database.session() as session:
            row = await session.get(ApiKeyRow, (key_id, project_id))
            if row is None:
                raise ApiKeyNotFoundError(project_id, key_id)
            row.last_used_at = datetime.now(UTC)
            session.add(row)

    async def aclose(self) -> None:
        await self.database.dispose()
