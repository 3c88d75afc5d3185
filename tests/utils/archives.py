"""Archive builders and site fixtures for pipeline and deployment tests."""

import io
import stat
import tarfile
import zipfile
from pathlib import Path


def tar_gz_bytes(
    files: dict[str, bytes],
    *,
    dirs: tuple[str, ...] = (),
    symlinks: dict[str, str] | None = None,
) -> bytes:
    """Build a .tar.gz in memory. Entry names are used verbatim (no normalisation)."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name in dirs:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tar.addfile(info)
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
        for name, target in (symlinks or {}).items():
            info = tarfile.TarInfo(name)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return buffer.getvalue()


def zip_bytes(
    files: dict[str, bytes],
    *,
    dirs: tuple[str, ...] = (),
    symlinks: dict[str, str] | None = None,
) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name in dirs:
            zf.writestr(zipfile.ZipInfo(name.rstrip("/") + "/"), b"")
        for name, data in files.items():
            zf.writestr(zipfile.ZipInfo(name), data)
        for name, target in (symlinks or {}).items():
            info = zipfile.ZipInfo(name)
            info.external_attr = (stat.S_IFLNK | 0o777) << 16
            zf.writestr(info, target)
    return buffer.getvalue()


def write_tar_gz(path: Path, files: dict[str, bytes], **kwargs) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(tar_gz_bytes(files, **kwargs))
    return path


def write_zip(path: Path, files: dict[str, bytes], **kwargs) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(zip_bytes(files, **kwargs))
    return path


def site_files(site_id: object, *, extra: dict[str, bytes] | None = None) -> dict[str, bytes]:
    """A small site whose index links to its own identifier path."""
    files = {
        "index.html": f'<a href="/sites/{site_id}/page.html">page</a>'.encode(),
        "page.html": b"<h1>page</h1>",
        "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\xff\xfe" + f"/sites/{site_id}/".encode(),
    }
    files.update(extra or {})
    return files


def tree_files(root: Path) -> dict[str, bytes]:
    """Relative path -> content for every file under ``root``."""
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }
