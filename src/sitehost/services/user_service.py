from src.sitehost.core.exceptions import UserDeletionBlockedError, UserNotFoundError
from src.sitehost.core.logging import get_logger
from src.sitehost.models import Site, User, utc_now
from src.sitehost.schemas.user import UserUpdate
from src.sitehost.storage import Storage

logger = get_logger(__name__)


class UserService:
    """Account management for the authenticated user."""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def sites_of(self, user: User) -> list[Site]:
        return await self.storage.sites.list_by_owner(user.id)

    async def update(self, user: User, data: UserUpdate) -> User:
        """Apply a partial update. A username change must stay unique."""
        current = await self.storage.users.get(user.id)
        if current is None:
            raise UserNotFoundError()

        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return current
        for field, value in update_data.items():
            setattr(current, field, value)
        current.updated_at = utc_now()

        # Raises UsernameTakenError when the new name belongs to someone else
        await self.storage.users.update(current)
        logger.info("User updated", user_id=str(user.id), fields=sorted(update_data))
        return current

    async def delete_account(self, user: User) -> None:
        """Delete the account. Refused while the user still owns sites."""
        if await self.storage.sites.list_by_owner(user.id):
            raise UserDeletionBlockedError()
        await self.storage.users.delete(user.id)
        logger.info("User account deleted", user_id=str(user.id))
