"""Archive codec: format detection and path-safe, entry-by-entry extraction.

Nothing here calls ``extractall``; every entry name is checked and mapped to
a relative path before a byte is written, and only regular files and
directories are ever materialised.
"""

import asyncio
import gzip
import re
import shutil
import stat
import tarfile
import zipfile
import zlib
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import IO

from src.sitehost.core.exceptions import CorruptArchiveError, UnsafePathError, UnsupportedFormatError
from src.sitehost.core.logging import get_logger

logger = get_logger(__name__)

COPY_CHUNK_SIZE = 64 * 1024

# "C:", "c:foo" - drive-relative or drive-absolute Windows names
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")
_SEPARATORS = re.compile(r"[\\/]")


class ArchiveFormat(StrEnum):
    TAR_GZ = "tar.gz"
    ZIP = "zip"


def detect_format(filename: str) -> ArchiveFormat:
    """Pick the format from the filename suffix alone (case-insensitive)."""
    lowered = filename.lower()
    if lowered.endswith((".tar.gz", ".tgz")):
        return ArchiveFormat.TAR_GZ
    if lowered.endswith(".zip"):
        return ArchiveFormat.ZIP
    raise UnsupportedFormatError(filename)


def safe_entry_path(name: str) -> PurePosixPath | None:
    """Map an archive entry name to a relative path inside the destination.

    Returns None for entries that name the root itself (``""``, ``.``, ``./``).

    Raises:
        UnsafePathError: absolute name, drive/UNC prefix or a ``..`` component.
    """
    if name.startswith(("/", "\\")) or _DRIVE_PREFIX.match(name):
        raise UnsafePathError(name)
    parts = [part for part in _SEPARATORS.split(name) if part not in ("", ".")]
    if ".." in parts:
        raise UnsafePathError(name)
    if not parts:
        return None
    return PurePosixPath(*parts)


@dataclass(frozen=True)
class ArchiveEntry:
    """One regular file or directory, already checked for path safety."""

    name: str
    path: PurePosixPath
    is_dir: bool
    _opener: Callable[[], IO[bytes] | None]

    def open(self) -> IO[bytes]:
        fh = self._opener()
        if fh is None:
            raise CorruptArchiveError(self.name, "entry has no data")
        return fh

    def target(self, root: Path) -> Path:
        return root.joinpath(*self.path.parts)


@dataclass
class ExtractionStats:
    files: int = 0
    directories: int = 0
    skipped: int = 0
    bytes_written: int = 0


@contextmanager
def archive_read_errors(archive_path: Path) -> Iterator[None]:
    """Turn decoder failures into CorruptArchiveError; disk errors pass through."""
    try:
        yield
    except (tarfile.TarError, zipfile.BadZipFile, gzip.BadGzipFile, zlib.error, EOFError) as e:
        raise CorruptArchiveError(archive_path.name, str(e) or type(e).__name__) from e


def _iter_tar(archive_path: Path, skipped: list[str]) -> Iterator[ArchiveEntry]:
    with tarfile.open(archive_path, "r:gz") as tar:
        for member in tar:
            path = safe_entry_path(member.name)
            if path is None:
                continue
            if member.isdir():
                yield ArchiveEntry(member.name, path, True, lambda: None)
            elif member.isfile():
                yield ArchiveEntry(
                    member.name, path, False, lambda m=member: tar.extractfile(m)
                )
            else:
                logger.warning(
                    "Skipping non-regular archive entry",
                    entry=member.name,
                    entry_type=member.type.decode(errors="replace"),
                )
                skipped.append(member.name)


def _iter_zip(archive_path: Path, skipped: list[str]) -> Iterator[ArchiveEntry]:
    with zipfile.ZipFile(archive_path) as zf:
        for info in zf.infolist():
            path = safe_entry_path(info.filename)
            if path is None:
                continue
            if info.is_dir():
                yield ArchiveEntry(info.filename, path, True, lambda: None)
            elif stat.S_ISLNK(info.external_attr >> 16):
                logger.warning("Skipping symlink archive entry", entry=info.filename)
                skipped.append(info.filename)
            else:
                yield ArchiveEntry(info.filename, path, False, lambda i=info: zf.open(i))


def iter_entries(archive_path: Path, skipped: list[str] | None = None) -> Iterator[ArchiveEntry]:
    """Yield safe entries in archive order.

    Must be consumed while the archive is open, i.e. inside the ``for`` loop.
    Names of skipped (non-regular) entries are appended to ``skipped``.
    """
    skipped = skipped if skipped is not None else []
    if detect_format(archive_path.name) is ArchiveFormat.TAR_GZ:
        yield from _iter_tar(archive_path, skipped)
    else:
        yield from _iter_zip(archive_path, skipped)


def write_entry(entry: ArchiveEntry, root: Path) -> int:
    """Materialise one entry under ``root``; returns bytes written."""
    target = entry.target(root)
    if entry.is_dir:
        target.mkdir(parents=True, exist_ok=True)
        return 0
    target.parent.mkdir(parents=True, exist_ok=True)
    with entry.open() as src, target.open("wb") as dst:
        shutil.copyfileobj(src, dst, COPY_CHUNK_SIZE)
        return dst.tell()


def extract_archive(archive_path: Path, dest_dir: Path) -> ExtractionStats:
    """Extract ``archive_path`` into ``dest_dir``.

    Raises:
        UnsupportedFormatError: unknown suffix.
        UnsafePathError: an entry would land outside ``dest_dir``.
        CorruptArchiveError: the archive cannot be decoded.
    """
    detect_format(archive_path.name)
    dest_dir.mkdir(parents=True, exist_ok=True)
    stats = ExtractionStats()
    skipped: list[str] = []
    with archive_read_errors(archive_path):
        for entry in iter_entries(archive_path, skipped):
            stats.bytes_written += write_entry(entry, dest_dir)
            if entry.is_dir:
                stats.directories += 1
            else:
                stats.files += 1
    stats.skipped = len(skipped)
    logger.debug(
        "Archive extracted",
        archive=archive_path.name,
        dest=str(dest_dir),
        files=stats.files,
        directories=stats.directories,
        skipped=stats.skipped,
    )
    return stats


async def extract_archive_async(archive_path: Path, dest_dir: Path) -> ExtractionStats:
    return await asyncio.to_thread(extract_archive, archive_path, dest_dir)
