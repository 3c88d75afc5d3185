"""Name validators shared by the upload pipeline, schemas and services."""

import re
from typing import Final
from uuid import UUID

MAX_SITE_NAME_LENGTH: Final[int] = 64
SITE_NAME_REGEX: Final[str] = rf"^[A-Za-z0-9_-]{{1,{MAX_SITE_NAME_LENGTH}}}$"
USERNAME_REGEX: Final[str] = r"^[A-Za-z0-9_.-]{3,64}$"

_SITE_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(SITE_NAME_REGEX)
_USERNAME_PATTERN: Final[re.Pattern[str]] = re.compile(USERNAME_REGEX)


def _looks_like_uuid(value: str) -> bool:
    try:
        UUID(value)
    except ValueError:
        return False
    return True


def validate_site_name(name: str) -> str:
    """Validate a site name (the slug a name tree is published under).

    Names share the ``sites/`` directory with identifier trees, so a name that
    parses as a UUID is refused as well.

    Raises:
        ValueError: If the name is not a valid slug.

    Examples:
        >>> validate_site_name("blog")  # Valid
        >>> validate_site_name("My_Site-2")  # Valid
        >>> validate_site_name("../etc")  # Invalid - path characters
        >>> validate_site_name("")  # Invalid - empty
    """
    if not _SITE_NAME_PATTERN.fullmatch(name):
        raise ValueError(
            "Site name must be 1-64 characters of letters, digits, underscores or hyphens"
        )
    if _looks_like_uuid(name):
        raise ValueError("Site name must not be a UUID")
    return name


def is_valid_site_name(name: str) -> bool:
    try:
        validate_site_name(name)
    except ValueError:
        return False
    return True


def validate_username(username: str) -> str:
    """Validate username format. Length is part of the pattern (3-64)."""
    if not _USERNAME_PATTERN.fullmatch(username):
        raise ValueError(
            "Username must be 3-64 characters of letters, digits, dots, underscores or hyphens"
        )
    return username
