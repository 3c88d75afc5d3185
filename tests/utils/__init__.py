"""Test utilities package."""

from tests.utils.api import ADMIN_KEY, BASE_URL, register_and_login, upload_site
from tests.utils.archives import (
    site_files,
    tar_gz_bytes,
    tree_files,
    write_tar_gz,
    write_zip,
    zip_bytes,
)

__all__ = [
    "ADMIN_KEY",
    "BASE_URL",
    "register_and_login",
    "site_files",
    "tar_gz_bytes",
    "tree_files",
    "upload_site",
    "write_tar_gz",
    "write_zip",
    "zip_bytes",
]
