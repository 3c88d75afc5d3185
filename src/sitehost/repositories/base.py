"""Base repository with common CRUD operations."""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    is done by the store that owns the session.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        """Get a record by its primary key."""
        return await self.session.get(self.model, id)

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def delete_by_id(self, id: UUID) -> None:
        await self.session.execute(
            delete(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )

    def _select(self) -> Any:  # SelectOfScalar[ModelType]
        return select(self.model)

    async def _all(self, query: Any) -> Sequence[ModelType]:
        result = await self.session.execute(query)
        return result.scalars().all()
