"""Deployment orchestrator - turns a spooled archive into two published trees.

For an upload ``(id, name)`` the service produces:

- ``sites/{id}/``   the archive exactly as uploaded
- ``sites/{name}/`` the same files with ``/sites/{id}/`` rewritten to
  ``/sites/{name}/`` in every UTF-8 entry

and only then writes the Site record. Filesystem work runs in a worker
thread; a failure (or cancellation) at any step restores the previous name
tree and removes the identifier tree created by this call.
"""

import asyncio
import shutil
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import UUID

from src.sitehost.core.exceptions import (
    FilesystemFailureError,
    InvalidNameError,
    NameConflictError,
    SiteExistsError,
    SiteHostError,
)
from src.sitehost.core.logging import get_logger
from src.sitehost.core.security import validate_site_name
from src.sitehost.core.shutdown import DeploymentTracker, deployment_tracker
from src.sitehost.models import DEFAULT_SITE_DESCRIPTION, Site, utc_now
from src.sitehost.pipeline.archive import detect_format, extract_archive
from src.sitehost.pipeline.rewrite import REPLACED_DIR, Rewrite, extract_with_rewrite
from src.sitehost.storage.base import SiteStore

logger = get_logger(__name__)

PREVIOUS_NAME_TREE = "previous-name-tree"


@dataclass
class _DeployPlan:
    site_id: UUID
    site_name: str
    archive_path: Path
    id_dir: Path
    name_dir: Path
    work_dir: Path
    id_tree_created: bool = False
    previous_moved: bool = False
    name_tree_published: bool = False
    record_created: bool = False

    @property
    def backup_dir(self) -> Path:
        return self.work_dir / PREVIOUS_NAME_TREE


def _build_trees(plan: _DeployPlan) -> tuple[int, int]:
    """Materialise both trees. Returns (files, rewritten)."""
    if plan.id_dir.exists():
        shutil.rmtree(plan.id_dir)
    plan.id_dir.mkdir(parents=True)
    plan.id_tree_created = True
    stats = extract_archive(plan.archive_path, plan.id_dir)

    if plan.work_dir.exists():
        shutil.rmtree(plan.work_dir)
    plan.work_dir.mkdir(parents=True)
    rewrite_stats = extract_with_rewrite(
        plan.archive_path, plan.work_dir, Rewrite.for_site(plan.site_id, plan.site_name)
    )

    # Swap is two renames inside the same filesystem
    if plan.name_dir.exists():
        plan.name_dir.rename(plan.backup_dir)
        plan.previous_moved = True
    (plan.work_dir / REPLACED_DIR).rename(plan.name_dir)
    plan.name_tree_published = True
    return stats.files, rewrite_stats.rewritten


def _rollback_trees(plan: _DeployPlan) -> None:
    if plan.name_tree_published and plan.name_dir.exists():
        shutil.rmtree(plan.name_dir)
    if plan.previous_moved and plan.backup_dir.exists():
        plan.backup_dir.rename(plan.name_dir)
    if plan.id_tree_created and plan.id_dir.exists():
        shutil.rmtree(plan.id_dir)


def _remove_temporaries(plan: _DeployPlan) -> list[str]:
    """Best-effort cleanup; returns error descriptions instead of raising."""
    errors = []
    try:
        if plan.work_dir.exists():
            shutil.rmtree(plan.work_dir)
    except OSError as e:
        errors.append(f"{plan.work_dir}: {e}")
    try:
        plan.archive_path.unlink(missing_ok=True)
    except OSError as e:
        errors.append(f"{plan.archive_path}: {e}")
    return errors


class DeployService:
    """Publishes uploaded archives and records them in the site store."""

    def __init__(
        self,
        sites: SiteStore,
        tmp_dir: Path,
        tracker: DeploymentTracker = deployment_tracker,
    ):
        self.sites = sites
        self.tmp_dir = tmp_dir
        self.tracker = tracker

    async def deploy(
        self,
        site_id: UUID,
        site_name: str,
        owner_id: UUID,
        archive_path: Path,
        description: str | None = None,
    ) -> Site:
        """Publish ``archive_path`` as ``site_id`` under ``site_name``.

        The archive is consumed: it is deleted on every exit path.

        Raises:
            InvalidNameError: ``site_name`` is not a valid slug.
            NameConflictError: the latest site with this name belongs to someone else.
            SiteExistsError: ``site_id`` is already recorded.
            UnsupportedFormatError, UnsafePathError, CorruptArchiveError: bad archive.
            FilesystemFailureError: the trees could not be written.
            ShuttingDownError: the server stopped accepting deployments.
        """
        plan = _DeployPlan(
            site_id=site_id,
            site_name=site_name,
            archive_path=archive_path,
            id_dir=self.sites.site_files_path(site_id),
            name_dir=self.sites.site_files_path(site_name),
            work_dir=self.tmp_dir / f"deploy-{site_id}",
        )
        log = logger.bind(site_id=str(site_id), site_name=site_name, owner_id=str(owner_id))
        try:
            async with self.tracker.track(str(site_id)):
                await self._check_preconditions(plan, owner_id)
                site = await self._publish(plan, owner_id, description, log)
        finally:
            errors = await asyncio.to_thread(_remove_temporaries, plan)
            for error in errors:
                log.warning("Deployment cleanup failed", error=error)
        return site

    async def _check_preconditions(self, plan: _DeployPlan, owner_id: UUID) -> None:
        try:
            validate_site_name(plan.site_name)
        except ValueError as e:
            raise InvalidNameError(plan.site_name, str(e)) from e
        detect_format(plan.archive_path.name)

        latest = await self.sites.get_latest_by_name(plan.site_name)
        if latest is not None and latest.owner_id != owner_id:
            raise NameConflictError(plan.site_name)
        if await self.sites.get(plan.site_id) is not None:
            raise SiteExistsError(plan.site_id)

    async def _publish(
        self,
        plan: _DeployPlan,
        owner_id: UUID,
        description: str | None,
        log: Any,
    ) -> Site:
        site = Site(
            id=plan.site_id,
            owner_id=owner_id,
            name=plan.site_name,
            description=description or DEFAULT_SITE_DESCRIPTION,
            created_at=utc_now(),
        )

        async def create_record() -> None:
            await self.sites.create(site)
            plan.record_created = True

        try:
            files, rewritten = await self._run_to_completion(asyncio.to_thread, _build_trees, plan)
            log.info("Site trees published", files=files, rewritten=rewritten)
            await self._run_to_completion(create_record)
        except BaseException as e:
            if not plan.record_created:
                await self._rollback(plan, e, log)
            if isinstance(e, OSError):
                raise FilesystemFailureError(f"Could not publish site {plan.site_id}: {e}") from e
            raise

        log.info("Site deployed", created_at=site.created_at.isoformat())
        return site

    async def _run_to_completion(
        self, func: Callable[..., Awaitable[Any]], *args: Any
    ) -> Any:
        """Await ``func(*args)``; if cancelled, let it finish before re-raising.

        A worker thread cannot be interrupted, and rolling back while it is
        still writing would race with it.
        """
        task = asyncio.ensure_future(func(*args))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            await asyncio.wait([task])
            if not task.cancelled() and task.exception() is not None:
                logger.debug("Step failed after cancellation", error=str(task.exception()))
            raise

    async def _rollback(self, plan: _DeployPlan, cause: BaseException, log: Any) -> None:
        level = "info" if isinstance(cause, SiteHostError) else "warning"
        getattr(log, level)("Rolling back deployment", error=type(cause).__name__)
        try:
            await self._run_to_completion(asyncio.to_thread, _rollback_trees, plan)
        except Exception:
            # Never mask the original failure
            log.exception("Deployment rollback failed")
