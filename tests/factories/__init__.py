"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import SiteFactory, UserFactory
"""

from tests.factories.base import BaseFactory, utc_now
from tests.factories.site import SiteFactory
from tests.factories.user import DEFAULT_TEST_PASSWORD, UserFactory

__all__ = [
    # Base
    "BaseFactory",
    "utc_now",
    # Models
    "SiteFactory",
    "UserFactory",
    "DEFAULT_TEST_PASSWORD",
]
