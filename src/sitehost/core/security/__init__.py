"""Security utilities - crypto, validators and headers.

Re-exports all security-related functions for convenience.
"""

from src.sitehost.core.security.crypto import (
    DUMMY_PASSWORD_HASH,
    TOKEN_TYPE_ACCESS,
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from src.sitehost.core.security.headers import SecurityHeadersMiddleware
from src.sitehost.core.security.validators import (
    MAX_SITE_NAME_LENGTH,
    is_valid_site_name,
    validate_site_name,
    validate_username,
)

__all__ = [
    # Crypto
    "DUMMY_PASSWORD_HASH",
    "TOKEN_TYPE_ACCESS",
    "create_access_token",
    "decode_token",
    "hash_password",
    "verify_password",
    # Headers
    "SecurityHeadersMiddleware",
    # Validators
    "MAX_SITE_NAME_LENGTH",
    "is_valid_site_name",
    "validate_site_name",
    "validate_username",
]
