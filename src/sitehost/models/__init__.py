"""Model exports.

Import from here: `from src.sitehost.models import Site, User`
"""

from src.sitehost.models.base import utc_now
from src.sitehost.models.site import DEFAULT_SITE_DESCRIPTION, Site
from src.sitehost.models.user import User

__all__ = [
    "DEFAULT_SITE_DESCRIPTION",
    "Site",
    "User",
    "utc_now",
]
