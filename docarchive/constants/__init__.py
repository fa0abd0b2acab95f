"""Constants package for DocArchive."""

from .auth import (
    ACCESS_TOKEN_EXPIRE,
    ALGORITHM,
    LOCK_DURATION,
    MAX_LOGIN_ATTEMPTS,
    REFRESH_TOKEN_EXPIRE,
)
from .roles import DEFAULT_ROLE, SELF_ASSIGNABLE_ROLES, RoleName, get_default_role_name, is_admin_role

__all__ = [
    # Role constants
    "RoleName",
    "DEFAULT_ROLE",
    "SELF_ASSIGNABLE_ROLES",
    "get_default_role_name",
    "is_admin_role",
    # Auth constants
    "ALGORITHM",
    "ACCESS_TOKEN_EXPIRE",
    "REFRESH_TOKEN_EXPIRE",
    "MAX_LOGIN_ATTEMPTS",
    "LOCK_DURATION",
]
