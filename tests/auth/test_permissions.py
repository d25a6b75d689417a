"""Tests for auth permissions."""

from types import SimpleNamespace

import pytest

from src.auth.permissions import (
    ROLE_HIERARCHY,
    UserRole,
    get_role_level,
    has_permission,
    is_moderator,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Roles should have correct string values."""
        assert UserRole.USER.value == "user"
        assert UserRole.MODERATOR.value == "moderator"
        assert UserRole.ADMIN.value == "admin"

    def test_all_roles_have_levels(self) -> None:
        """All UserRole members should have defined levels."""
        for role in UserRole:
            assert role in ROLE_HIERARCHY


class TestGetRoleLevel:
    """Tests for get_role_level function."""

    @pytest.mark.parametrize(
        "role,expected_level",
        [
            (UserRole.USER, 0),
            (UserRole.MODERATOR, 1),
            (UserRole.ADMIN, 2),
            ("user", 0),
            ("Moderator", 1),
            ("ADMIN", 2),
        ],
    )
    def test_known_roles(self, role: UserRole | str, expected_level: int) -> None:
        assert get_role_level(role) == expected_level

    @pytest.mark.parametrize("role", ["invalid", "superadmin", None])
    def test_unknown_role_returns_zero(self, role) -> None:
        assert get_role_level(role) == 0


class TestHasPermission:
    def test_admin_has_all_permissions(self) -> None:
        for role in UserRole:
            assert has_permission(UserRole.ADMIN, role) is True

    def test_moderator_permissions(self) -> None:
        assert has_permission(UserRole.MODERATOR, UserRole.USER) is True
        assert has_permission(UserRole.MODERATOR, UserRole.MODERATOR) is True
        assert has_permission(UserRole.MODERATOR, UserRole.ADMIN) is False

    def test_user_permissions(self) -> None:
        assert has_permission("user", "user") is True
        assert has_permission("user", "moderator") is False


class TestIsModerator:
    @pytest.mark.parametrize(
        "role,expected",
        [("user", False), ("moderator", True), ("admin", True), ("unknown", False)],
    )
    def test_roles(self, role: str, expected: bool) -> None:
        assert is_moderator(SimpleNamespace(role=role)) is expected

    def test_missing_role(self) -> None:
        assert is_moderator(SimpleNamespace()) is False
