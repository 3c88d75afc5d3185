"""Deployment orchestration: trees, records, conflicts and rollback."""

import asyncio
import time
from pathlib import Path
from uuid import UUID, uuid4

import pytest

from src.sitehost.core.exceptions import (
    CorruptArchiveError,
    InvalidNameError,
    NameConflictError,
    SiteExistsError,
    StorageFailureError,
    UnsafePathError,
)
from src.sitehost.core.shutdown import DeploymentTracker, ShuttingDownError
from src.sitehost.models import DEFAULT_SITE_DESCRIPTION
from src.sitehost.pipeline import rewrite as rewrite_module
from src.sitehost.services import DeployService
from src.sitehost.storage import SiteStore
from tests.utils.archives import site_files, tree_files, write_tar_gz, write_zip

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

U1 = UUID("11111111-1111-4111-8111-111111111111")
U2 = UUID("22222222-2222-4222-8222-222222222222")


@pytest.fixture
def tmp_dir(data_dir: Path) -> Path:
    path = data_dir / "tmp"
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def tracker() -> DeploymentTracker:
    return DeploymentTracker()


@pytest.fixture
def deployer(site_store: SiteStore, tmp_dir: Path, tracker: DeploymentTracker) -> DeployService:
    return DeployService(site_store, tmp_dir, tracker=tracker)


def upload(
    tmp_dir: Path,
    site_id: UUID,
    files: dict[str, bytes] | None = None,
    *,
    zip_format: bool = False,
) -> Path:
    """Spool an archive the way the upload receiver would."""
    contents = files or site_files(site_id)
    if zip_format:
        return write_zip(tmp_dir / f"upload-{uuid4().hex[:8]}-site.zip", contents)
    return write_tar_gz(tmp_dir / f"upload-{uuid4().hex[:8]}-site.tar.gz", contents)


def leftovers(tmp_dir: Path) -> list[str]:
    return sorted(p.name for p in tmp_dir.iterdir())


class TestDeploy:
    async def test_publishes_both_trees(
        self, deployer: DeployService, site_store: SiteStore, tmp_dir: Path
    ):
        s1 = uuid4()
        archive = upload(tmp_dir, s1)

        site = await deployer.deploy(s1, "blog", U1, archive)

        root = site_store.files_root
        assert f"/sites/{s1}/page.html" in (root / str(s1) / "index.html").read_text()
        assert "/sites/blog/page.html" in (root / "blog" / "index.html").read_text()
        assert str(s1) not in (root / "blog" / "index.html").read_text()
        # Binary entries are copied untouched to both trees
        logo = site_files(s1)["assets/logo.png"]
        assert (root / str(s1) / "assets" / "logo.png").read_bytes() == logo
        assert (root / "blog" / "assets" / "logo.png").read_bytes() == logo

        assert site.id == s1
        assert site.owner_id == U1
        assert site.description == DEFAULT_SITE_DESCRIPTION
        latest = await site_store.get_latest_by_name("blog")
        assert latest is not None
        assert latest.id == s1

        # Archive and work directory are gone
        assert leftovers(tmp_dir) == []

    async def test_zip_archive(self, deployer: DeployService, site_store: SiteStore, tmp_dir: Path):
        s1 = uuid4()
        await deployer.deploy(s1, "docs", U1, upload(tmp_dir, s1, zip_format=True), "Docs")

        stored = await site_store.get(s1)
        assert stored is not None
        assert stored.description == "Docs"
        assert (site_store.files_root / "docs" / "index.html").exists()

    async def test_same_owner_reupload(
        self, deployer: DeployService, site_store: SiteStore, tmp_dir: Path
    ):
        s1, s2 = uuid4(), uuid4()
        await deployer.deploy(s1, "blog", U1, upload(tmp_dir, s1))
        await deployer.deploy(s2, "blog", U1, upload(tmp_dir, s2))

        root = site_store.files_root
        latest = await site_store.get_latest_by_name("blog")
        assert latest is not None
        assert latest.id == s2
        assert [s.id for s in await site_store.get_all_by_name("blog")] == [s2, s1]
        # Old identifier tree stays; the name tree now serves the new version
        assert (root / str(s1) / "index.html").exists()
        assert tree_files(root / "blog")["page.html"] == b"<h1>page</h1>"
        assert "/sites/blog/page.html" in (root / "blog" / "index.html").read_text()
        assert leftovers(tmp_dir) == []

    async def test_name_owned_by_someone_else(
        self, deployer: DeployService, site_store: SiteStore, tmp_dir: Path
    ):
        s1, s2 = uuid4(), uuid4()
        await deployer.deploy(s1, "blog", U1, upload(tmp_dir, s1))
        before = tree_files(site_store.files_root / "blog")

        with pytest.raises(NameConflictError):
            await deployer.deploy(s2, "blog", U2, upload(tmp_dir, s2))

        assert await site_store.get(s2) is None
        assert not site_store.site_files_path(s2).exists()
        assert tree_files(site_store.files_root / "blog") == before
        assert leftovers(tmp_dir) == []

    async def test_id_is_never_overwritten(
        self, deployer: DeployService, site_store: SiteStore, tmp_dir: Path
    ):
        s1 = uuid4()
        await deployer.deploy(s1, "blog", U1, upload(tmp_dir, s1))
        before = tree_files(site_store.site_files_path(s1))

        with pytest.raises(SiteExistsError):
            await deployer.deploy(s1, "other", U1, upload(tmp_dir, s1, {"index.html": b"new"}))

        assert tree_files(site_store.site_files_path(s1)) == before
        assert not site_store.site_files_path("other").exists()
        assert leftovers(tmp_dir) == []

    async def test_invalid_name(self, deployer: DeployService, tmp_dir: Path):
        s1 = uuid4()
        with pytest.raises(InvalidNameError):
            await deployer.deploy(s1, "../escape", U1, upload(tmp_dir, s1))
        assert leftovers(tmp_dir) == []


class TestRollback:
    async def _publish_first_version(
        self, deployer: DeployService, site_store: SiteStore, tmp_dir: Path
    ) -> tuple[UUID, dict[str, bytes]]:
        s1 = uuid4()
        await deployer.deploy(s1, "blog", U1, upload(tmp_dir, s1))
        return s1, tree_files(site_store.files_root / "blog")

    async def test_unsafe_archive_restores_previous_version(
        self, deployer: DeployService, site_store: SiteStore, tmp_dir: Path
    ):
        s1, before = await self._publish_first_version(deployer, site_store, tmp_dir)
        s2 = uuid4()
        archive = upload(tmp_dir, s2, {"index.html": b"ok", "../../../evil.html": b"x"})

        with pytest.raises(UnsafePathError):
            await deployer.deploy(s2, "blog", U1, archive)

        assert not site_store.site_files_path(s2).exists()
        assert tree_files(site_store.files_root / "blog") == before
        latest = await site_store.get_latest_by_name("blog")
        assert latest is not None
        assert latest.id == s1
        assert leftovers(tmp_dir) == []

    async def test_corrupt_archive(
        self, deployer: DeployService, site_store: SiteStore, tmp_dir: Path
    ):
        s1 = uuid4()
        archive = tmp_dir / "upload-broken-site.tar.gz"
        archive.write_bytes(b"definitely not gzip")

        with pytest.raises(CorruptArchiveError):
            await deployer.deploy(s1, "blog", U1, archive)

        assert not site_store.site_files_path(s1).exists()
        assert not site_store.site_files_path("blog").exists()
        assert await site_store.get(s1) is None
        assert leftovers(tmp_dir) == []

    async def test_record_write_failure_rolls_back_trees(
        self,
        deployer: DeployService,
        site_store: SiteStore,
        tmp_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ):
        s1, before = await self._publish_first_version(deployer, site_store, tmp_dir)
        s2 = uuid4()

        async def failing_create(site):
            raise StorageFailureError("database went away")

        monkeypatch.setattr(site_store, "create", failing_create)

        with pytest.raises(StorageFailureError):
            await deployer.deploy(s2, "blog", U1, upload(tmp_dir, s2))

        assert not site_store.site_files_path(s2).exists()
        assert tree_files(site_store.files_root / "blog") == before
        assert (site_store.files_root / str(s1) / "index.html").exists()
        assert leftovers(tmp_dir) == []

    async def test_cancellation_waits_then_rolls_back(
        self,
        deployer: DeployService,
        site_store: SiteStore,
        tmp_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ):
        s1, before = await self._publish_first_version(deployer, site_store, tmp_dir)
        s2 = uuid4()
        real_extract = rewrite_module.extract_with_rewrite
        started = asyncio.Event()
        loop = asyncio.get_running_loop()

        def slow_extract(*args, **kwargs):
            loop.call_soon_threadsafe(started.set)
            time.sleep(0.3)
            return real_extract(*args, **kwargs)

        monkeypatch.setattr(
            "src.sitehost.services.deploy_service.extract_with_rewrite", slow_extract
        )

        task = asyncio.create_task(deployer.deploy(s2, "blog", U1, upload(tmp_dir, s2)))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not site_store.site_files_path(s2).exists()
        assert tree_files(site_store.files_root / "blog") == before
        assert await site_store.get(s2) is None
        assert leftovers(tmp_dir) == []

    async def test_refused_while_shutting_down(
        self, deployer: DeployService, tracker: DeploymentTracker, tmp_dir: Path
    ):
        await tracker.start_shutdown()
        s1 = uuid4()

        with pytest.raises(ShuttingDownError):
            await deployer.deploy(s1, "blog", U1, upload(tmp_dir, s1))

        assert leftovers(tmp_dir) == []

