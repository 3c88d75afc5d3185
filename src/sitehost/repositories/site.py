"""Site repository - queries served by the composite indexes."""

from uuid import UUID

from sqlmodel import col

from src.sitehost.models import Site
from src.sitehost.repositories.base import BaseRepository

# Newest first; equal timestamps resolved by the larger id
NEWEST_FIRST = (col(Site.created_at).desc(), col(Site.id).desc())


class SiteRepository(BaseRepository[Site]):
    model = Site

    async def get_latest_by_name(self, name: str) -> Site | None:
        query = self._select().where(Site.name == name).order_by(*NEWEST_FIRST).limit(1)
        result = await self.session.execute(query)
        return result.scalars().first()

    async def list_by_name(self, name: str) -> list[Site]:
        query = self._select().where(Site.name == name).order_by(*NEWEST_FIRST)
        return list(await self._all(query))

    async def list_by_owner(self, owner_id: UUID) -> list[Site]:
        """Range scan on ix_sites_owner_created."""
        query = self._select().where(Site.owner_id == owner_id).order_by(*NEWEST_FIRST)
        return list(await self._all(query))

    async def list_all(self) -> list[Site]:
        return list(await self._all(self._select().order_by(*NEWEST_FIRST)))
