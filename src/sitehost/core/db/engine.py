"""Database engine and session factory for the SQL storage backend."""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from src.sitehost.core.config import Settings
from src.sitehost.core.logging import get_logger

logger = get_logger(__name__)


def _is_sqlite(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "sqlite"


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Build the async engine. SQLite gets its own pool, so pool sizing is skipped."""
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if not _is_sqlite(settings.database_url):
        kwargs["pool_size"] = settings.database_pool_size
        kwargs["max_overflow"] = settings.database_max_overflow
    return create_async_engine(settings.database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Records are handed back to callers after the session closes
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet (dev/tests; Postgres uses Alembic)."""
    import src.sitehost.models  # noqa: F401  registers tables on the metadata

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables ensured", backend=engine.url.get_backend_name())
