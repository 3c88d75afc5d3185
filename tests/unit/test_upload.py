"""Tests for the upload receiver."""

from collections.abc import AsyncIterator
from pathlib import Path
from uuid import uuid4

import pytest

from src.sitehost.core.exceptions import (
    InvalidFieldError,
    InvalidNameError,
    MissingFieldError,
    PayloadTooLargeError,
    UnsupportedFormatError,
)
from src.sitehost.pipeline.upload import (
    UploadField,
    UploadReceiver,
    spool_filename,
)
from tests.utils.archives import tar_gz_bytes

pytestmark = pytest.mark.unit

ARCHIVE = tar_gz_bytes({"index.html": b"<h1>hi</h1>"})


class ChunkSource:
    """Chunk iterator that records how much of it was consumed."""

    def __init__(self, data: bytes, chunk_size: int = 7):
        self.data = data
        self.chunk_size = chunk_size
        self.consumed = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for start in range(0, len(self.data), self.chunk_size):
            chunk = self.data[start : start + self.chunk_size]
            self.consumed += len(chunk)
            yield chunk


def text_field(name: str, value: str) -> UploadField:
    return UploadField(name, aiter(ChunkSource(value.encode())))


def file_field(data: bytes = ARCHIVE, filename: str | None = "site.tar.gz") -> UploadField:
    return UploadField("site", aiter(ChunkSource(data)), filename=filename)


async def stream(*fields: UploadField) -> AsyncIterator[UploadField]:
    for field in fields:
        yield field


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    return tmp_path / "tmp"


@pytest.fixture
def receiver(tmp_dir: Path) -> UploadReceiver:
    return UploadReceiver(tmp_dir, max_size=1024 * 1024)


def spooled(tmp_dir: Path) -> list[Path]:
    return list(tmp_dir.glob("upload-*")) if tmp_dir.exists() else []


async def test_receives_all_fields(receiver: UploadReceiver, tmp_dir: Path):
    site_id = uuid4()
    upload = await receiver.receive(
        stream(
            text_field("uuid", str(site_id)),
            text_field("siteName", "blog"),
            text_field("description", "  My blog  "),
            file_field(),
        )
    )

    assert upload.site_id == site_id
    assert upload.site_name == "blog"
    assert upload.description == "My blog"
    assert upload.filename == "site.tar.gz"
    assert upload.size == len(ARCHIVE)
    assert upload.archive_path.parent == tmp_dir
    assert upload.archive_path.name.endswith("-site.tar.gz")
    assert upload.archive_path.read_bytes() == ARCHIVE


async def test_field_order_is_free(receiver: UploadReceiver):
    site_id = uuid4()
    upload = await receiver.receive(
        stream(file_field(), text_field("siteName", "blog"), text_field("uuid", str(site_id)))
    )
    assert upload.site_id == site_id
    assert upload.description is None


async def test_invalid_name_fails_before_file_is_read(receiver: UploadReceiver, tmp_dir: Path):
    source = ChunkSource(ARCHIVE)
    fields = stream(
        text_field("siteName", "../etc"),
        UploadField("site", aiter(source), filename="site.tar.gz"),
        text_field("uuid", str(uuid4())),
    )

    with pytest.raises(InvalidNameError):
        await receiver.receive(fields)

    assert source.consumed == 0
    assert spooled(tmp_dir) == []


async def test_invalid_name_after_file_removes_spool(receiver: UploadReceiver, tmp_dir: Path):
    with pytest.raises(InvalidNameError):
        await receiver.receive(
            stream(file_field(), text_field("siteName", "no spaces"), text_field("uuid", str(uuid4())))
        )
    assert spooled(tmp_dir) == []


async def test_uuid_shaped_name_rejected(receiver: UploadReceiver):
    with pytest.raises(InvalidNameError):
        await receiver.receive(stream(text_field("siteName", str(uuid4()))))


async def test_bad_uuid(receiver: UploadReceiver):
    with pytest.raises(InvalidFieldError) as exc_info:
        await receiver.receive(stream(text_field("uuid", "not-a-uuid")))
    assert exc_info.value.field == "uuid"


@pytest.mark.parametrize("missing", ["uuid", "siteName", "site"])
async def test_missing_field(receiver: UploadReceiver, tmp_dir: Path, missing: str):
    fields = {
        "uuid": text_field("uuid", str(uuid4())),
        "siteName": text_field("siteName", "blog"),
        "site": file_field(),
    }
    del fields[missing]

    with pytest.raises(MissingFieldError) as exc_info:
        await receiver.receive(stream(*fields.values()))

    assert exc_info.value.field == missing
    assert spooled(tmp_dir) == []


async def test_file_without_filename(receiver: UploadReceiver):
    with pytest.raises(InvalidFieldError) as exc_info:
        await receiver.receive(stream(file_field(filename=None)))
    assert exc_info.value.field == "site"


async def test_unsupported_suffix(receiver: UploadReceiver, tmp_dir: Path):
    with pytest.raises(UnsupportedFormatError):
        await receiver.receive(stream(file_field(filename="site.rar")))
    assert spooled(tmp_dir) == []


async def test_duplicate_file_field(receiver: UploadReceiver, tmp_dir: Path):
    with pytest.raises(InvalidFieldError):
        await receiver.receive(stream(file_field(), file_field()))
    assert spooled(tmp_dir) == []


async def test_oversized_file_removed(tmp_dir: Path):
    receiver = UploadReceiver(tmp_dir, max_size=10)
    with pytest.raises(PayloadTooLargeError):
        await receiver.receive(
            stream(text_field("uuid", str(uuid4())), text_field("siteName", "blog"), file_field())
        )
    assert spooled(tmp_dir) == []


async def test_unknown_fields_ignored(receiver: UploadReceiver):
    upload = await receiver.receive(
        stream(
            text_field("extra", "whatever"),
            text_field("uuid", str(uuid4())),
            text_field("siteName", "blog"),
            file_field(),
        )
    )
    assert upload.site_name == "blog"


async def test_text_field_must_be_utf8(receiver: UploadReceiver):
    field = UploadField("siteName", aiter(ChunkSource(b"\xff\xfe")))
    with pytest.raises(InvalidFieldError):
        await receiver.receive(stream(field))


async def test_discard(receiver: UploadReceiver):
    upload = await receiver.receive(
        stream(text_field("uuid", str(uuid4())), text_field("siteName", "blog"), file_field())
    )
    upload.discard()
    assert not upload.archive_path.exists()


class TestSpoolFilename:
    def test_keeps_suffix(self):
        name = spool_filename("my site.tar.gz")
        assert name.startswith("upload-")
        assert name.endswith("-my_site.tar.gz")

    def test_strips_directories(self):
        assert spool_filename("../../etc/site.zip").endswith("-site.zip")
        assert spool_filename("C:\\Users\\me\\site.zip").endswith("-site.zip")

    def test_unique(self):
        assert spool_filename("site.zip") != spool_filename("site.zip")

    def test_long_names_truncated_from_the_left(self):
        name = spool_filename("a" * 500 + ".tar.gz")
        assert name.endswith(".tar.gz")
        assert len(name) < 200
