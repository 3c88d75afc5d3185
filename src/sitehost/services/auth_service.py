"""Authentication service - registration, login and bearer-token resolution."""

import asyncio
from uuid import UUID

from src.sitehost.core.config import get_settings
from src.sitehost.core.exceptions import AuthenticationError, UsernameTakenError
from src.sitehost.core.logging import get_logger
from src.sitehost.core.security import (
    DUMMY_PASSWORD_HASH,
    TOKEN_TYPE_ACCESS,
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from src.sitehost.models import User
from src.sitehost.schemas.auth import LoginResponse
from src.sitehost.storage.base import UserStore

logger = get_logger(__name__)


class AuthService:
    def __init__(self, users: UserStore):
        self.users = users

    async def register(self, username: str, password: str) -> User:
        """Create an account.

        Raises:
            UsernameTakenError: The username is already registered.
        """
        if await self.users.get_by_username(username) is not None:
            raise UsernameTakenError(username)

        user = User(username=username, hashed_password=await asyncio.to_thread(hash_password, password))
        await self.users.create(user)
        logger.info("User registered", user_id=str(user.id), username=username)
        return user

    async def authenticate(self, username: str, password: str) -> LoginResponse:
        """Check credentials and issue an access token.

        Raises:
            AuthenticationError: Unknown username or wrong password.
        """
        user = await self.users.get_by_username(username)

        # Always verify so timing does not reveal whether the username exists
        password_hash = user.hashed_password if user else DUMMY_PASSWORD_HASH
        password_valid = await asyncio.to_thread(verify_password, password, password_hash)

        if user is None or not password_valid:
            logger.info("Login failed", username=username)
            raise AuthenticationError("Invalid username or password")

        settings = get_settings()
        logger.info("User logged in", user_id=str(user.id))
        return LoginResponse(
            access_token=create_access_token(user.id, user.username),
            expires_in=settings.access_token_expire_minutes * 60,
        )

    async def resolve_token(self, token: str) -> User:
        """Return the user an access token was issued to.

        Raises:
            AuthenticationError: Invalid, expired or orphaned token.
        """
        payload = decode_token(token)
        if payload is None or payload.get("type") != TOKEN_TYPE_ACCESS:
            raise AuthenticationError("Invalid or expired token")
        try:
            user_id = UUID(payload["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise AuthenticationError("Invalid token subject") from e

        user = await self.users.get(user_id)
        if user is None:
            raise AuthenticationError("User no longer exists")
        return user
