"""Upload receiver: turns a stream of named form fields into a spooled archive.

Fields may arrive in any order. ``siteName`` is validated as soon as it is
read, the archive is streamed to disk chunk by chunk, and whatever was
spooled is deleted again if the upload turns out to be unusable.
"""

import asyncio
import re
import secrets
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO
from uuid import UUID

from src.sitehost.core.exceptions import (
    InvalidFieldError,
    InvalidNameError,
    MissingFieldError,
    PayloadTooLargeError,
)
from src.sitehost.core.logging import get_logger
from src.sitehost.core.security import validate_site_name
from src.sitehost.pipeline.archive import detect_format

logger = get_logger(__name__)

FIELD_UUID = "uuid"
FIELD_SITE_NAME = "siteName"
FIELD_SITE = "site"
FIELD_DESCRIPTION = "description"

MAX_TEXT_FIELD_SIZE = 64 * 1024
MAX_DESCRIPTION_LENGTH = 1000
MAX_BASENAME_LENGTH = 100

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class UploadField:
    """One named part of an upload; ``filename`` is set for file parts."""

    def __init__(self, name: str, chunks: AsyncIterator[bytes], filename: str | None = None):
        self.name = name
        self.filename = filename
        self._chunks = chunks

    def chunks(self) -> AsyncIterator[bytes]:
        return self._chunks

    async def read_text(self, limit: int = MAX_TEXT_FIELD_SIZE) -> str:
        buffer = bytearray()
        async for chunk in self._chunks:
            buffer.extend(chunk)
            if len(buffer) > limit:
                raise InvalidFieldError(self.name, f"longer than {limit} bytes")
        try:
            return buffer.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidFieldError(self.name, "not valid UTF-8") from e

    async def drain(self) -> None:
        async for _ in self._chunks:
            pass


@dataclass
class ReceivedUpload:
    site_id: UUID
    site_name: str
    archive_path: Path
    filename: str
    size: int
    description: str | None = None

    def discard(self) -> None:
        self.archive_path.unlink(missing_ok=True)


def spool_filename(filename: str) -> str:
    """``upload-<random>-<basename>``; the basename keeps the archive suffix."""
    basename = re.split(r"[\\/]", filename)[-1]
    basename = _UNSAFE_FILENAME_CHARS.sub("_", basename)[-MAX_BASENAME_LENGTH:]
    return f"upload-{secrets.token_hex(8)}-{basename}"


class UploadReceiver:
    def __init__(self, tmp_dir: Path, max_size: int | None = None):
        self.tmp_dir = tmp_dir
        self.max_size = max_size

    async def receive(self, fields: AsyncIterator[UploadField]) -> ReceivedUpload:
        """Consume every field and return the validated upload.

        Raises:
            InvalidNameError: ``siteName`` is not a valid slug.
            InvalidFieldError: ``uuid`` does not parse, or the file has no name.
            MissingFieldError: a required field never arrived.
            UnsupportedFormatError: the file name has no known archive suffix.
            PayloadTooLargeError: the file exceeds ``max_size``.
        """
        site_id: UUID | None = None
        site_name: str | None = None
        description: str | None = None
        archive_path: Path | None = None
        filename: str | None = None
        size = 0

        try:
            async for field in fields:
                if field.name == FIELD_UUID:
                    site_id = _parse_uuid(await field.read_text())
                elif field.name == FIELD_SITE_NAME:
                    site_name = _parse_site_name(await field.read_text())
                elif field.name == FIELD_DESCRIPTION:
                    description = (await field.read_text()).strip()[:MAX_DESCRIPTION_LENGTH] or None
                elif field.name == FIELD_SITE:
                    if archive_path is not None:
                        raise InvalidFieldError(FIELD_SITE, "sent more than once")
                    if not field.filename:
                        raise InvalidFieldError(FIELD_SITE, "file part has no filename")
                    detect_format(field.filename)
                    filename = field.filename
                    archive_path = self.tmp_dir / spool_filename(filename)
                    size = await self._spool(field, archive_path)
                else:
                    logger.debug("Ignoring unknown upload field", field=field.name)
                    await field.drain()

            if site_id is None:
                raise MissingFieldError(FIELD_UUID)
            if site_name is None:
                raise MissingFieldError(FIELD_SITE_NAME)
            if archive_path is None or filename is None:
                raise MissingFieldError(FIELD_SITE)
        except BaseException:
            if archive_path is not None:
                archive_path.unlink(missing_ok=True)
            raise

        logger.info(
            "Upload received",
            site_id=str(site_id),
            site_name=site_name,
            filename=filename,
            size=size,
        )
        return ReceivedUpload(
            site_id=site_id,
            site_name=site_name,
            archive_path=archive_path,
            filename=filename,
            size=size,
            description=description,
        )

    async def _spool(self, field: UploadField, path: Path) -> int:
        """Stream the file part to ``path``; disk writes run in a worker thread."""
        await asyncio.to_thread(self.tmp_dir.mkdir, parents=True, exist_ok=True)
        fh: BinaryIO = await asyncio.to_thread(path.open, "wb")
        written = 0
        try:
            async for chunk in field.chunks():
                written += len(chunk)
                if self.max_size is not None and written > self.max_size:
                    raise PayloadTooLargeError(self.max_size)
                await asyncio.to_thread(fh.write, chunk)
        finally:
            await asyncio.to_thread(fh.close)
        return written


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value.strip())
    except ValueError as e:
        raise InvalidFieldError(FIELD_UUID, f"not a UUID: {value!r}") from e


def _parse_site_name(value: str) -> str:
    name = value.strip()
    try:
        return validate_site_name(name)
    except ValueError as e:
        raise InvalidNameError(name, str(e)) from e
