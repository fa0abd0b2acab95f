"""
Role constants.

Every user carries exactly one role. Roles are flat labels; only ``Admin``
grants extra capabilities.
"""

from enum import Enum


class RoleName(str, Enum):
    """Enumeration of role names in the system."""

    STUDENT = "Student"
    NOTARY = "Notary"
    TEACHER = "Teacher"
    LAWYER = "Lawyer"
    PROFESSIONAL = "Professional"
    ADMIN = "Admin"


# Default role for new user registrations
DEFAULT_ROLE = RoleName.PROFESSIONAL

# Roles a user may pick for themselves at registration
SELF_ASSIGNABLE_ROLES = [role for role in RoleName if role is not RoleName.ADMIN]


def get_default_role_name() -> str:
    """Get the default role name for new users."""
    return DEFAULT_ROLE.value


def is_admin_role(role: str | None) -> bool:
    return role == RoleName.ADMIN.value
