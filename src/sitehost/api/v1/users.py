"""Endpoints for the authenticated user's own account."""

from fastapi import APIRouter

from src.sitehost.api.dependencies import CurrentUser, SettingsDep, UserServiceDep
from src.sitehost.schemas.site import SiteRead
from src.sitehost.schemas.user import AccountDeleted, UserProfile, UserRead, UserStats, UserUpdate

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/profile", response_model=UserProfile)
async def get_profile(
    current_user: CurrentUser, service: UserServiceDep, settings: SettingsDep
) -> UserProfile:
    sites = [SiteRead.from_site(s, settings.base_url) for s in await service.sites_of(current_user)]
    return UserProfile(
        user=UserRead.model_validate(current_user),
        sites=sites,
        total_sites=len(sites),
    )


@router.patch("/profile", response_model=UserRead)
async def update_profile(
    data: UserUpdate, current_user: CurrentUser, service: UserServiceDep
) -> UserRead:
    """Change the username; it must not belong to another account."""
    return UserRead.model_validate(await service.update(current_user, data))


@router.get("/stats", response_model=UserStats)
async def get_stats(
    current_user: CurrentUser, service: UserServiceDep, settings: SettingsDep
) -> UserStats:
    sites = await service.sites_of(current_user)
    return UserStats(
        user_id=current_user.id,
        username=current_user.username,
        total_sites=len(sites),
        distinct_names=len({s.name for s in sites}),
        account_created=current_user.created_at,
        latest_upload=sites[0].created_at if sites else None,
        sites=[SiteRead.from_site(s, settings.base_url) for s in sites],
    )


@router.delete("/account", response_model=AccountDeleted)
async def delete_account(current_user: CurrentUser, service: UserServiceDep) -> AccountDeleted:
    """Delete the account. Returns 409 while the user still owns sites."""
    await service.delete_account(current_user)
    return AccountDeleted()
