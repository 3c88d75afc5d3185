"""Repository exports."""

from src.sitehost.repositories.base import BaseRepository
from src.sitehost.repositories.site import SiteRepository
from src.sitehost.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "SiteRepository",
    "UserRepository",
]
