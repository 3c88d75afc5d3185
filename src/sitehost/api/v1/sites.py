"""Site endpoints - upload, lookup, update and delete."""

from uuid import UUID

from fastapi import APIRouter, Request, status

from src.sitehost.api.dependencies import (
    CurrentUser,
    DeployServiceDep,
    SettingsDep,
    SiteServiceDep,
    UploadReceiverDep,
)
from src.sitehost.core.logging import get_logger
from src.sitehost.pipeline.multipart import iter_multipart_fields
from src.sitehost.schemas.site import SiteDeleted, SiteRead, SiteUpdate

logger = get_logger(__name__)

router = APIRouter(prefix="/sites", tags=["sites"])


@router.get("", response_model=list[SiteRead])
async def list_sites(service: SiteServiceDep, settings: SettingsDep) -> list[SiteRead]:
    """All sites, newest first."""
    return [SiteRead.from_site(site, settings.base_url) for site in await service.list_all()]


@router.post(
    "",
    response_model=SiteRead,
    status_code=status.HTTP_201_CREATED,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "multipart/form-data": {
                    "schema": {
                        "type": "object",
                        "required": ["uuid", "siteName", "site"],
                        "properties": {
                            "uuid": {"type": "string", "format": "uuid"},
                            "siteName": {"type": "string"},
                            "description": {"type": "string"},
                            "site": {"type": "string", "format": "binary"},
                        },
                    }
                }
            },
        }
    },
    responses={
        400: {"description": "Invalid field, name or archive"},
        409: {"description": "Name owned by another user, or id already used"},
        413: {"description": "Upload too large"},
    },
)
async def upload_site(
    request: Request,
    current_user: CurrentUser,
    receiver: UploadReceiverDep,
    deployer: DeployServiceDep,
    settings: SettingsDep,
) -> SiteRead:
    """Upload a .tar.gz/.tgz/.zip archive and publish it.

    The body is read as a stream: fields are validated as they arrive and the
    archive is spooled to disk without being held in memory.
    """
    fields = iter_multipart_fields(request, max_size=settings.max_upload_size)
    upload = await receiver.receive(fields)
    site = await deployer.deploy(
        site_id=upload.site_id,
        site_name=upload.site_name,
        owner_id=current_user.id,
        archive_path=upload.archive_path,
        description=upload.description,
    )
    return SiteRead.from_site(site, settings.base_url)


@router.get("/by-name/{name}", response_model=SiteRead)
async def get_site_by_name(name: str, service: SiteServiceDep, settings: SettingsDep) -> SiteRead:
    """The version currently served under /sites/{name}/."""
    return SiteRead.from_site(await service.get_latest_by_name(name), settings.base_url)


@router.get("/by-name/{name}/versions", response_model=list[SiteRead])
async def list_site_versions(
    name: str, service: SiteServiceDep, settings: SettingsDep
) -> list[SiteRead]:
    return [SiteRead.from_site(site, settings.base_url) for site in await service.versions(name)]


@router.get("/{site_id}", response_model=SiteRead)
async def get_site(site_id: UUID, service: SiteServiceDep, settings: SettingsDep) -> SiteRead:
    return SiteRead.from_site(await service.get(site_id), settings.base_url)


@router.patch("/{site_id}", response_model=SiteRead)
async def update_site(
    site_id: UUID,
    data: SiteUpdate,
    current_user: CurrentUser,
    service: SiteServiceDep,
    settings: SettingsDep,
) -> SiteRead:
    """Change description, domain or name (owner only)."""
    site = await service.update(current_user, site_id, data)
    return SiteRead.from_site(site, settings.base_url)


@router.delete("/{site_id}", response_model=SiteDeleted)
async def delete_site(
    site_id: UUID, current_user: CurrentUser, service: SiteServiceDep
) -> SiteDeleted:
    """Delete the record and its /sites/{id}/ tree (owner only)."""
    site = await service.delete(current_user, site_id)
    return SiteDeleted(id=site.id)
