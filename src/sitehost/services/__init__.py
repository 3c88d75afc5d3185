from src.sitehost.services.admin_service import AdminService
from src.sitehost.services.auth_service import AuthService
from src.sitehost.services.deploy_service import DeployService
from src.sitehost.services.site_service import SiteService
from src.sitehost.services.user_service import UserService

__all__ = ["AdminService", "AuthService", "DeployService", "SiteService", "UserService"]
