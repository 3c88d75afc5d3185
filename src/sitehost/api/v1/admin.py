"""Operator reports, guarded by the X-Admin-Key header."""

from fastapi import APIRouter

from src.sitehost.api.dependencies import AdminKey, AdminServiceDep, SettingsDep, StorageDep
from src.sitehost.schemas.admin import AdminOverview, SiteMismatchReport, StorageUsage
from src.sitehost.schemas.site import SiteRead
from src.sitehost.schemas.user import UserRead

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[AdminKey])


@router.get("/all", response_model=AdminOverview)
async def overview(storage: StorageDep, settings: SettingsDep) -> AdminOverview:
    sites = await storage.sites.list_all()
    users = await storage.users.list_all()
    return AdminOverview(
        sites=[SiteRead.from_site(s, settings.base_url) for s in sites],
        users=[UserRead.model_validate(u) for u in users],
    )


@router.get("/sites", response_model=SiteMismatchReport)
async def site_mismatches(service: AdminServiceDep) -> SiteMismatchReport:
    """Records without an identifier tree and trees without a record."""
    return await service.site_mismatches()


@router.get("/storage", response_model=StorageUsage)
async def storage_usage(service: AdminServiceDep) -> StorageUsage:
    return await service.storage_usage()
