"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.sitehost.api.dependencies.storage import SettingsDep, StorageDep
from src.sitehost.core.shutdown import deployment_tracker
from src.sitehost.pipeline.upload import UploadReceiver
from src.sitehost.services import AdminService, AuthService, DeployService, SiteService, UserService


def get_auth_service(storage: StorageDep) -> AuthService:
    return AuthService(storage.users)


def get_site_service(storage: StorageDep) -> SiteService:
    return SiteService(storage.sites)


def get_user_service(storage: StorageDep) -> UserService:
    return UserService(storage)


def get_admin_service(storage: StorageDep) -> AdminService:
    return AdminService(storage)


def get_deploy_service(storage: StorageDep, settings: SettingsDep) -> DeployService:
    return DeployService(storage.sites, settings.tmp_dir, tracker=deployment_tracker)


def get_upload_receiver(settings: SettingsDep) -> UploadReceiver:
    return UploadReceiver(settings.tmp_dir, max_size=settings.max_upload_size)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
SiteServiceDep = Annotated[SiteService, Depends(get_site_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]
DeployServiceDep = Annotated[DeployService, Depends(get_deploy_service)]
UploadReceiverDep = Annotated[UploadReceiver, Depends(get_upload_receiver)]
