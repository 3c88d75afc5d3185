"""Content rewriting for dual-path serving.

An uploaded site is built to live under ``/sites/{id}/``. The copy published
under ``/sites/{name}/`` gets every literal occurrence of the identifier
prefix swapped for the name prefix, so absolute links keep working from both
URLs. Only entries that decode as UTF-8 are rewritten; everything else is
copied byte for byte.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from src.sitehost.core.logging import get_logger
from src.sitehost.pipeline.archive import (
    ExtractionStats,
    archive_read_errors,
    detect_format,
    iter_entries,
    write_entry,
)

logger = get_logger(__name__)

ORIGINAL_DIR = "original"
REPLACED_DIR = "replaced"


@dataclass(frozen=True)
class Rewrite:
    source: str
    target: str

    @classmethod
    def for_site(cls, site_id: UUID, site_name: str) -> "Rewrite":
        return cls(source=f"/sites/{site_id}/", target=f"/sites/{site_name}/")

    def apply(self, data: bytes) -> bytes:
        """Rewrite UTF-8 text; return binary (or prefix-free) data untouched."""
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            return data
        if self.source not in text:
            return data
        return text.replace(self.source, self.target).encode("utf-8")


@dataclass
class RewriteStats(ExtractionStats):
    rewritten: int = 0


def extract_with_rewrite(archive_path: Path, dest_dir: Path, rewrite: Rewrite | None) -> RewriteStats:
    """Extract into ``dest_dir/original`` and ``dest_dir/replaced``.

    Path safety is enforced exactly as in :func:`extract_archive`. Each file is
    held in memory once while both copies are written.
    """
    detect_format(archive_path.name)
    original_root = dest_dir / ORIGINAL_DIR
    replaced_root = dest_dir / REPLACED_DIR
    original_root.mkdir(parents=True, exist_ok=True)
    replaced_root.mkdir(parents=True, exist_ok=True)

    stats = RewriteStats()
    skipped: list[str] = []
    with archive_read_errors(archive_path):
        for entry in iter_entries(archive_path, skipped):
            if entry.is_dir:
                write_entry(entry, original_root)
                write_entry(entry, replaced_root)
                stats.directories += 1
                continue

            with entry.open() as fh:
                data = fh.read()
            original_path = entry.target(original_root)
            original_path.parent.mkdir(parents=True, exist_ok=True)
            original_path.write_bytes(data)

            replaced = rewrite.apply(data) if rewrite is not None else data
            if replaced is not data:
                stats.rewritten += 1
            replaced_path = entry.target(replaced_root)
            replaced_path.parent.mkdir(parents=True, exist_ok=True)
            replaced_path.write_bytes(replaced)

            stats.files += 1
            stats.bytes_written += len(data)
    stats.skipped = len(skipped)
    logger.debug(
        "Archive extracted with rewrite",
        archive=archive_path.name,
        dest=str(dest_dir),
        files=stats.files,
        rewritten=stats.rewritten,
        skipped=stats.skipped,
    )
    return stats


async def extract_with_rewrite_async(
    archive_path: Path, dest_dir: Path, rewrite: Rewrite | None
) -> RewriteStats:
    return await asyncio.to_thread(extract_with_rewrite, archive_path, dest_dir, rewrite)
