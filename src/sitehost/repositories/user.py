"""User repository."""

from sqlalchemy import func
from sqlmodel import col, select

from src.sitehost.models import User
from src.sitehost.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_username(self, username: str) -> User | None:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def list_all(self) -> list[User]:
        return list(await self._all(self._select().order_by(col(User.created_at))))

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(User))
        return result.scalar_one()
