"""Storage interfaces shared by the SQL and Redis backends.

Both backends keep three views of the site records consistent inside one
transaction per write:

- primary: id -> record
- owner index: (owner_id, created_at, id), scanned newest-first per owner
- name index: (name, created_at, id), whose top entry is the latest version

Identifier-tree directories are owned by the store: deleting a record removes
``<files_root>/<id>/``. Name trees are published by the deploy pipeline and
are never touched here.
"""

import asyncio
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import UUID

from src.sitehost.core.exceptions import FilesystemFailureError
from src.sitehost.core.logging import get_logger
from src.sitehost.models import Site, User

logger = get_logger(__name__)


class SiteStore(ABC):
    """Durable storage for Site records plus their identifier trees."""

    def __init__(self, files_root: Path):
        self.files_root = files_root

    def site_files_path(self, ref: UUID | str) -> Path:
        """Directory for an identifier tree (UUID) or a name tree (str)."""
        return self.files_root / str(ref)

    @abstractmethod
    async def create(self, site: Site) -> None:
        """Insert the record and its index entries.

        Raises:
            SiteExistsError: A record with this id already exists.
        """

    @abstractmethod
    async def get(self, site_id: UUID) -> Site | None: ...

    @abstractmethod
    async def get_latest_by_name(self, name: str) -> Site | None:
        """Newest record with this name (ties broken by the larger id)."""

    @abstractmethod
    async def get_all_by_name(self, name: str) -> list[Site]:
        """All versions with this name, newest first."""

    @abstractmethod
    async def update(self, site: Site) -> None:
        """Replace the stored record, re-keying any index entry whose key moved.

        Raises:
            SiteNotFoundError: No record with this id.
        """

    @abstractmethod
    async def list_by_owner(self, owner_id: UUID) -> list[Site]:
        """Sites owned by ``owner_id``, newest first, via the owner index."""

    @abstractmethod
    async def list_all(self) -> list[Site]:
        """Every site, newest first."""

    @abstractmethod
    async def _delete_record(self, site_id: UUID) -> Site | None:
        """Remove the record and its index entries; return what was removed."""

    async def delete(self, site_id: UUID) -> Site | None:
        """Delete the record, its index entries and its identifier tree."""
        removed = await self._delete_record(site_id)
        await self.remove_identifier_tree(site_id)
        logger.info("Site deleted", site_id=str(site_id), had_record=removed is not None)
        return removed

    async def remove_identifier_tree(self, site_id: UUID) -> None:
        site_dir = self.site_files_path(site_id)
        try:
            await asyncio.to_thread(_rmtree_if_exists, site_dir)
        except OSError as e:
            raise FilesystemFailureError(f"Could not remove {site_dir}: {e}") from e

    async def aclose(self) -> None:
        """Release backend resources. Backends sharing a client override nothing."""


class UserStore(ABC):
    """Durable storage for user accounts."""

    @abstractmethod
    async def create(self, user: User) -> None:
        """Insert a user.

        Raises:
            UsernameTakenError: The username is already registered.
        """

    @abstractmethod
    async def get(self, user_id: UUID) -> User | None: ...

    @abstractmethod
    async def get_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    async def update(self, user: User) -> None:
        """Replace the stored user.

        Raises:
            UserNotFoundError: No user with this id.
            UsernameTakenError: The new username belongs to someone else.
        """

    @abstractmethod
    async def delete(self, user_id: UUID) -> None: ...

    @abstractmethod
    async def list_all(self) -> list[User]: ...

    @abstractmethod
    async def count(self) -> int: ...


def _rmtree_if_exists(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
