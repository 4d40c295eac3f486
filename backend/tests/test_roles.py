"""
Tests for the role hierarchy and role normalization.
"""

import pytest

from shared.config.constants import Roles
from entity_access.services.permissions import ALL_ROLES, Role, is_missing_role


class TestRoleParse:
    """Tests for Role.parse()"""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("dispatcher", Roles.DISPATCHER),
            ("  ADMIN ", Roles.ADMIN),
            (1, Roles.CUSTOMER),
            (3, Roles.DISPATCHER),
            (5, Roles.ADMIN),
        ],
    )
    def test_names_and_priorities(self, value, expected):
        assert Role.parse(value).name == expected

    @pytest.mark.parametrize("value", [None, "", "superuser", 0, 6, -1, True, 3.0, {"role": "admin"}])
    def test_unrecognized_resolves_to_lowest(self, value):
        assert Role.parse(value) == Role.lowest()
        assert Role.lowest().name == Roles.CUSTOMER

    def test_role_instance_passes_through(self):
        role = Role.parse("manager")
        assert Role.parse(role) is role

    def test_name_and_priority_agree(self):
        for priority, name in enumerate(Roles.ALL, start=1):
            assert Role.parse(priority) == Role.parse(name)


class TestHierarchy:
    """Ordering of the role hierarchy."""

    def test_positions_follow_declaration_order(self):
        assert [role.name for role in ALL_ROLES] == list(Roles.ALL)
        assert [role.position for role in ALL_ROLES] == list(range(len(Roles.ALL)))

    def test_at_least(self):
        manager = Role.parse("manager")

        assert manager.at_least(Role.parse("technician"))
        assert manager.at_least(manager)
        assert not manager.at_least(Role.parse("admin"))

    def test_from_name_is_exact(self):
        assert Role.from_name("admin") == Role.parse("admin")
        assert Role.from_name("Admin") is None
        assert Role.from_name("none") is None

    def test_str_is_name(self):
        assert str(Role.parse(4)) == "manager"


class TestMissingRole:
    """Tests for is_missing_role()"""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        assert is_missing_role(value)

    @pytest.mark.parametrize("value", ["customer", "unknown", 2, Role.lowest()])
    def test_present(self, value):
        assert not is_missing_role(value)
