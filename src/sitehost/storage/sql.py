"""Relational storage backend (SQLModel over async SQLAlchemy).

Each public operation opens its own session and commits once, so a record
and its index rows always change together.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.sitehost.core.exceptions import (
    SiteExistsError,
    SiteNotFoundError,
    StorageFailureError,
    UsernameTakenError,
    UserNotFoundError,
)
from src.sitehost.core.logging import get_logger
from src.sitehost.models import Site, User
from src.sitehost.repositories import SiteRepository, UserRepository
from src.sitehost.storage.base import SiteStore, UserStore

logger = get_logger(__name__)

SITE_FIELDS = ("owner_id", "name", "description", "domain", "created_at")
USER_FIELDS = ("username", "hashed_password", "created_at", "updated_at")


@asynccontextmanager
async def _session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session whose driver errors surface as StorageFailureError."""
    async with session_factory() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Database operation failed", error=str(e))
            raise StorageFailureError(f"Database error: {e}") from e


class SqlSiteStore(SiteStore):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        files_root: Path,
        engine: AsyncEngine | None = None,
    ):
        super().__init__(files_root)
        self._session_factory = session_factory
        self._engine = engine

    async def create(self, site: Site) -> None:
        async with _session_scope(self._session_factory) as session:
            repo = SiteRepository(session)
            if await repo.get_by_id(site.id) is not None:
                raise SiteExistsError(site.id)
            # Insert a copy so the caller's instance never becomes session-bound
            repo.add(Site(id=site.id, **{f: getattr(site, f) for f in SITE_FIELDS}))
            try:
                await session.commit()
            except IntegrityError as e:
                raise SiteExistsError(site.id) from e

    async def get(self, site_id: UUID) -> Site | None:
        async with _session_scope(self._session_factory) as session:
            return await SiteRepository(session).get_by_id(site_id)

    async def get_latest_by_name(self, name: str) -> Site | None:
        async with _session_scope(self._session_factory) as session:
            return await SiteRepository(session).get_latest_by_name(name)

    async def get_all_by_name(self, name: str) -> list[Site]:
        async with _session_scope(self._session_factory) as session:
            return await SiteRepository(session).list_by_name(name)

    async def update(self, site: Site) -> None:
        async with _session_scope(self._session_factory) as session:
            stored = await SiteRepository(session).get_by_id(site.id)
            if stored is None:
                raise SiteNotFoundError(site.id)
            # Index rows follow the column values automatically
            for field in SITE_FIELDS:
                setattr(stored, field, getattr(site, field))
            await session.commit()

    async def list_by_owner(self, owner_id: UUID) -> list[Site]:
        async with _session_scope(self._session_factory) as session:
            return await SiteRepository(session).list_by_owner(owner_id)

    async def list_all(self) -> list[Site]:
        async with _session_scope(self._session_factory) as session:
            return await SiteRepository(session).list_all()

    async def _delete_record(self, site_id: UUID) -> Site | None:
        async with _session_scope(self._session_factory) as session:
            repo = SiteRepository(session)
            stored = await repo.get_by_id(site_id)
            if stored is None:
                return None
            await repo.delete_by_id(site_id)
            await session.commit()
            return stored

    async def aclose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")


class SqlUserStore(UserStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(self, user: User) -> None:
        async with _session_scope(self._session_factory) as session:
            repo = UserRepository(session)
            if await repo.get_by_username(user.username) is not None:
                raise UsernameTakenError(user.username)
            repo.add(User(id=user.id, **{f: getattr(user, f) for f in USER_FIELDS}))
            try:
                await session.commit()
            except IntegrityError as e:
                raise UsernameTakenError(user.username) from e

    async def get(self, user_id: UUID) -> User | None:
        async with _session_scope(self._session_factory) as session:
            return await UserRepository(session).get_by_id(user_id)

    async def get_by_username(self, username: str) -> User | None:
        async with _session_scope(self._session_factory) as session:
            return await UserRepository(session).get_by_username(username)

    async def update(self, user: User) -> None:
        async with _session_scope(self._session_factory) as session:
            repo = UserRepository(session)
            stored = await repo.get_by_id(user.id)
            if stored is None:
                raise UserNotFoundError()
            if stored.username != user.username:
                holder = await repo.get_by_username(user.username)
                if holder is not None and holder.id != user.id:
                    raise UsernameTakenError(user.username)
            for field in USER_FIELDS:
                setattr(stored, field, getattr(user, field))
            try:
                await session.commit()
            except IntegrityError as e:
                raise UsernameTakenError(user.username) from e

    async def delete(self, user_id: UUID) -> None:
        async with _session_scope(self._session_factory) as session:
            await UserRepository(session).delete_by_id(user_id)
            await session.commit()

    async def list_all(self) -> list[User]:
        async with _session_scope(self._session_factory) as session:
            return await UserRepository(session).list_all()

    async def count(self) -> int:
        async with _session_scope(self._session_factory) as session:
            return await UserRepository(session).count()
