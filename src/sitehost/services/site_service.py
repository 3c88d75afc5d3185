"""Site lookups and owner-only mutations (rename, describe, delete)."""

from uuid import UUID

from src.sitehost.core.exceptions import NameConflictError, PermissionDeniedError, SiteNotFoundError
from src.sitehost.core.logging import get_logger
from src.sitehost.models import Site, User
from src.sitehost.schemas.site import SiteUpdate
from src.sitehost.storage.base import SiteStore

logger = get_logger(__name__)


class SiteService:
    def __init__(self, sites: SiteStore):
        self.sites = sites

    async def get(self, site_id: UUID) -> Site:
        site = await self.sites.get(site_id)
        if site is None:
            raise SiteNotFoundError(site_id)
        return site

    async def get_latest_by_name(self, name: str) -> Site:
        site = await self.sites.get_latest_by_name(name)
        if site is None:
            raise SiteNotFoundError(name)
        return site

    async def versions(self, name: str) -> list[Site]:
        versions = await self.sites.get_all_by_name(name)
        if not versions:
            raise SiteNotFoundError(name)
        return versions

    async def list_all(self) -> list[Site]:
        return await self.sites.list_all()

    async def list_by_owner(self, owner_id: UUID) -> list[Site]:
        return await self.sites.list_by_owner(owner_id)

    async def _get_owned(self, user: User, site_id: UUID) -> Site:
        site = await self.get(site_id)
        if site.owner_id != user.id:
            raise PermissionDeniedError()
        return site

    async def update(self, user: User, site_id: UUID, data: SiteUpdate) -> Site:
        """Update description, domain and/or name.

        Renaming only changes the record; the name tree on disk is republished
        by the next upload under the new name.

        Raises:
            SiteNotFoundError, PermissionDeniedError, NameConflictError
        """
        site = await self._get_owned(user, site_id)
        update_data = data.model_dump(exclude_unset=True)

        new_name = update_data.get("name")
        if new_name is not None and new_name != site.name:
            latest = await self.sites.get_latest_by_name(new_name)
            if latest is not None and latest.owner_id != user.id:
                raise NameConflictError(new_name)
        elif "name" in update_data:
            del update_data["name"]

        for field, value in update_data.items():
            setattr(site, field, value)
        await self.sites.update(site)
        logger.info("Site updated", site_id=str(site_id), fields=sorted(update_data))
        return site

    async def delete(self, user: User, site_id: UUID) -> Site:
        """Delete the record and identifier tree; name trees stay."""
        site = await self._get_owned(user, site_id)
        await self.sites.delete(site_id)
        return site
