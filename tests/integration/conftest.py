"""Integration test fixtures for storage backends and HTTP client operations.

Every store fixture is parametrized over both backends: SQLite through
aiosqlite for the relational store and fakeredis for the key-value store.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from src.sitehost.core.config import Settings
from src.sitehost.core.db import create_session_factory, create_tables
from src.sitehost.main import create_app
from src.sitehost.storage import (
    RedisSiteStore,
    RedisUserStore,
    SiteStore,
    SqlSiteStore,
    SqlUserStore,
    Storage,
    UserStore,
)
from tests.utils import ADMIN_KEY, BASE_URL, register_and_login


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def files_root(data_dir: Path) -> Path:
    root = data_dir / "sites"
    root.mkdir(parents=True)
    return root


@pytest.fixture(params=["sql", "redis"])
async def storage(
    request: pytest.FixtureRequest, files_root: Path, data_dir: Path, fake_redis: Redis
) -> AsyncGenerator[Storage]:
    """A fresh Storage handle on each backend."""
    if request.param == "redis":
        handle = Storage(
            sites=RedisSiteStore(fake_redis, files_root),
            users=RedisUserStore(fake_redis),
        )
    else:
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{data_dir / 'sitehost.db'}", poolclass=NullPool
        )
        await create_tables(engine)
        session_factory = create_session_factory(engine)
        handle = Storage(
            sites=SqlSiteStore(session_factory, files_root, engine=engine),
            users=SqlUserStore(session_factory),
        )
    yield handle
    await handle.aclose()


@pytest.fixture
def site_store(storage: Storage) -> SiteStore:
    return storage.sites


@pytest.fixture
def user_store(storage: Storage) -> UserStore:
    return storage.users


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    return Settings(data_path=data_dir, admin_api_key=ADMIN_KEY, base_url=BASE_URL)  # type: ignore[call-arg]


@pytest.fixture
def app(settings: Settings, storage: Storage) -> FastAPI:
    """App wired to the test storage.

    ASGITransport does not run the lifespan, so the handle is attached here.
    """
    application = create_app(settings)
    application.state.storage = storage
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        yield client


@pytest.fixture
async def alice(client: AsyncClient) -> dict[str, str]:
    return await register_and_login(client, "alice")


@pytest.fixture
async def bob(client: AsyncClient) -> dict[str, str]:
    return await register_and_login(client, "bob")
