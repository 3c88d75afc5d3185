"""Authentication and authorization dependencies."""

import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from src.sitehost.api.dependencies.services import AuthServiceDep
from src.sitehost.api.dependencies.storage import SettingsDep
from src.sitehost.core.exceptions import AuthenticationError
from src.sitehost.core.logging import bind_user_context
from src.sitehost.models import User

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


async def get_current_user(
    auth_service: AuthServiceDep,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Resolve the bearer token to a user and bind it to the log context."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers=_UNAUTHORIZED_HEADERS,
        )

    try:
        user = await auth_service.resolve_token(authorization[7:])
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.detail,
            headers=_UNAUTHORIZED_HEADERS,
        ) from e

    bind_user_context(user.id, user.username)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def require_admin_key(
    settings: SettingsDep,
    x_admin_key: Annotated[str | None, Header()] = None,
) -> None:
    """Guard for operator reports.

    Reports do not exist (404) unless ADMIN_API_KEY is configured; the key is
    compared in constant time.
    """
    if not settings.admin_api_key:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    if x_admin_key is None or not secrets.compare_digest(
        x_admin_key.encode(), settings.admin_api_key.encode()
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key")


AdminKey = Depends(require_admin_key)
