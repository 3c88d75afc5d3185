"""Storage backends and the handle the rest of the service consumes.

Usage:
    storage = await open_storage(settings)
    site = await storage.sites.get_latest_by_name("blog")
    await storage.aclose()
"""

from dataclasses import dataclass

from redis.asyncio import ConnectionPool, Redis

from src.sitehost.core.config import Settings
from src.sitehost.core.db import (
    create_engine_from_settings,
    create_session_factory,
    create_tables,
    run_migrations_async,
)
from src.sitehost.core.logging import get_logger
from src.sitehost.storage.base import SiteStore, UserStore
from src.sitehost.storage.redis import RedisSiteStore, RedisUserStore
from src.sitehost.storage.sql import SqlSiteStore, SqlUserStore

logger = get_logger(__name__)


@dataclass
class Storage:
    sites: SiteStore
    users: UserStore

    async def aclose(self) -> None:
        # Both stores share one engine/client, owned by the site store
        await self.sites.aclose()


async def open_storage(settings: Settings) -> Storage:
    """Build the configured backend and make sure the files root exists."""
    files_root = settings.sites_dir
    files_root.mkdir(parents=True, exist_ok=True)

    if settings.storage_backend == "redis":
        pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            decode_responses=True,  # Stores expect str payloads
        )
        redis = Redis(connection_pool=pool)
        await redis.ping()  # type: ignore[misc]
        logger.info("Storage opened", backend="redis")
        return Storage(
            sites=RedisSiteStore(redis, files_root, owns_client=True),
            users=RedisUserStore(redis),
        )

    engine = create_engine_from_settings(settings)
    if settings.database_run_migrations:
        await run_migrations_async(settings.alembic_config)
    elif settings.database_auto_create:
        await create_tables(engine)
    session_factory = create_session_factory(engine)
    logger.info("Storage opened", backend="sql")
    return Storage(
        sites=SqlSiteStore(session_factory, files_root, engine=engine),
        users=SqlUserStore(session_factory),
    )


__all__ = [
    "RedisSiteStore",
    "RedisUserStore",
    "SiteStore",
    "SqlSiteStore",
    "SqlUserStore",
    "Storage",
    "UserStore",
    "open_storage",
]
