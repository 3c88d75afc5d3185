"""Tests for building the configured storage backend."""

from pathlib import Path

import pytest

from src.sitehost.core.config import Settings
from src.sitehost.storage import SqlSiteStore, open_storage
from tests.factories import UserFactory

pytestmark = pytest.mark.integration


async def test_sql_backend_creates_schema_and_files_root(tmp_path: Path) -> None:
    settings = Settings(  # type: ignore[call-arg]
        data_path=tmp_path,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'sitehost.db'}",
    )

    storage = await open_storage(settings)
    try:
        assert isinstance(storage.sites, SqlSiteStore)
        assert settings.sites_dir.is_dir()
        assert await storage.users.count() == 0
        await storage.users.create(UserFactory.build())
        assert await storage.users.count() == 1
    finally:
        await storage.aclose()


def test_redis_backend_requires_url(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="REDIS_URL"):
        Settings(data_path=tmp_path, storage_backend="redis", redis_url=None)  # type: ignore[call-arg]
