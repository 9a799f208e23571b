"""Database engine and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel
from structlog import get_logger


logger = get_logger(__name__)

# Default database path (using ~/.scry as the data directory)
DEFAULT_DB_PATH = Path("~/.scry").expanduser() / "api_keys.db"


def get_db_url(path: Path | None = None) -> str:
    """Get SQLite database URL."""
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{db_path}"


class Database:
    """Owns one async engine and hands out sessions bound to it."""

    def __init__(self, url: str | None = None, *, echo: bool = False) -> None:
        self.url = url or get_db_url()
        self.engine: AsyncEngine = create_async_engine(self.url, echo=echo)
        self._session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def create_all(self) -> None:
        """Create all tables registered on the SQLModel metadata."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.debug("database_tables_created", url=self.engine.url.render_as_string())

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get an async database session, committed on success."""
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()


async def init_db(url: str | None = None) -> Database:
    """Create a database for the given URL and make sure its tables exist."""
    database = Database(url)
    await database.create_all()
    return database
