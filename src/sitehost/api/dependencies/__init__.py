"""FastAPI dependency injection definitions.

Re-exports all dependencies for convenience.
"""

from src.sitehost.api.dependencies.auth import (
    AdminKey,
    CurrentUser,
    get_current_user,
    require_admin_key,
)
from src.sitehost.api.dependencies.services import (
    AdminServiceDep,
    AuthServiceDep,
    DeployServiceDep,
    SiteServiceDep,
    UploadReceiverDep,
    UserServiceDep,
    get_admin_service,
    get_auth_service,
    get_deploy_service,
    get_site_service,
    get_upload_receiver,
    get_user_service,
)
from src.sitehost.api.dependencies.storage import SettingsDep, StorageDep, get_storage

__all__ = [
    # Storage
    "SettingsDep",
    "StorageDep",
    "get_storage",
    # Auth
    "AdminKey",
    "CurrentUser",
    "get_current_user",
    "require_admin_key",
    # Services
    "AdminServiceDep",
    "AuthServiceDep",
    "DeployServiceDep",
    "SiteServiceDep",
    "UploadReceiverDep",
    "UserServiceDep",
    "get_admin_service",
    "get_auth_service",
    "get_deploy_service",
    "get_site_service",
    "get_upload_receiver",
    "get_user_service",
]
