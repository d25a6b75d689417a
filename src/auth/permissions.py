"""Role-based access control for the forum.

Hierarchical roles:
- ADMIN (level 2): Full forum administration
- MODERATOR (level 1): May remove other users' replies
- USER (level 0): Registered reader
"""

from enum import Enum
from typing import Any


class UserRole(str, Enum):
    """User roles with hierarchical levels."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


# Role hierarchy mapping (role -> permission level)
ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.MODERATOR: 1,
    UserRole.ADMIN: 2,
}


def get_role_level(role: UserRole | str | None) -> int:
    """Get the permission level for a role.

    Args:
        role: UserRole enum or string representation

    Returns:
        Permission level (0-2), defaults to 0 for unknown roles
    """
    if role is None:
        return 0
    if isinstance(role, str):
        try:
            role = UserRole(role.lower())
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str | None, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.MODERATOR)
        True
        >>> has_permission("user", "moderator")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_moderator(user: Any) -> bool:
    """Check if user may moderate forum content (MODERATOR or ADMIN)."""
    return has_permission(getattr(user, "role", None), UserRole.MODERATOR)
