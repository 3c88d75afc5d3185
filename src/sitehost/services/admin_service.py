"""Admin reports - consistency between records and the sites directory."""

import asyncio
import os
from pathlib import Path
from uuid import UUID

from src.sitehost.schemas.admin import DirectoryUsage, SiteMismatchReport, StorageUsage
from src.sitehost.storage import Storage


def _is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except ValueError:
        return False
    return True


def _list_tree_dirs(root: Path) -> list[str]:
    if not root.exists():
        return []
    return sorted(entry.name for entry in root.iterdir() if entry.is_dir())


def _directory_usage(root: Path, name: str) -> DirectoryUsage:
    files = 0
    size = 0
    for dirpath, _, filenames in os.walk(root / name):
        for filename in filenames:
            path = Path(dirpath) / filename
            try:
                size += path.lstat().st_size
            except OSError:
                continue
            files += 1
    return DirectoryUsage(name=name, kind="id" if _is_uuid(name) else "name", files=files, bytes=size)


def _storage_usage(root: Path) -> StorageUsage:
    directories = [_directory_usage(root, name) for name in _list_tree_dirs(root)]
    return StorageUsage(
        total_files=sum(d.files for d in directories),
        total_bytes=sum(d.bytes for d in directories),
        directories=directories,
    )


class AdminService:
    """Read-only reports for operators."""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def site_mismatches(self) -> SiteMismatchReport:
        sites = await self.storage.sites.list_all()
        root = self.storage.sites.files_root
        dirs = await asyncio.to_thread(_list_tree_dirs, root)

        id_dirs = {d for d in dirs if _is_uuid(d)}
        name_dirs = sorted(d for d in dirs if not _is_uuid(d))
        record_ids = {str(site.id) for site in sites}
        record_names = {site.name for site in sites}

        return SiteMismatchReport(
            total_records=len(sites),
            records_without_tree=sorted(site.id for site in sites if str(site.id) not in id_dirs),
            trees_without_record=sorted(id_dirs - record_ids),
            name_trees=name_dirs,
            name_trees_without_record=[d for d in name_dirs if d not in record_names],
        )

    async def storage_usage(self) -> StorageUsage:
        return await asyncio.to_thread(_storage_usage, self.storage.sites.files_root)
