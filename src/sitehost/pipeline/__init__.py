"""Ingestion pipeline - multipart reading, upload spooling, archive extraction."""

from src.sitehost.pipeline.archive import (
    ArchiveFormat,
    detect_format,
    extract_archive,
    extract_archive_async,
    safe_entry_path,
)
from src.sitehost.pipeline.multipart import iter_multipart_fields
from src.sitehost.pipeline.rewrite import (
    ORIGINAL_DIR,
    REPLACED_DIR,
    Rewrite,
    extract_with_rewrite,
    extract_with_rewrite_async,
)
from src.sitehost.pipeline.upload import ReceivedUpload, UploadField, UploadReceiver

__all__ = [
    "ORIGINAL_DIR",
    "REPLACED_DIR",
    "ArchiveFormat",
    "ReceivedUpload",
    "Rewrite",
    "UploadField",
    "UploadReceiver",
    "detect_format",
    "extract_archive",
    "extract_archive_async",
    "extract_with_rewrite",
    "extract_with_rewrite_async",
    "iter_multipart_fields",
    "safe_entry_path",
]
