"""Request/response schemas."""

from src.sitehost.schemas.admin import AdminOverview, DirectoryUsage, SiteMismatchReport, StorageUsage
from src.sitehost.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from src.sitehost.schemas.site import SiteDeleted, SiteRead, SiteUpdate
from src.sitehost.schemas.user import AccountDeleted, UserProfile, UserRead, UserStats, UserUpdate

__all__ = [
    "AccountDeleted",
    "AdminOverview",
    "DirectoryUsage",
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "SiteDeleted",
    "SiteMismatchReport",
    "SiteRead",
    "SiteUpdate",
    "StorageUsage",
    "UserProfile",
    "UserRead",
    "UserStats",
    "UserUpdate",
]
