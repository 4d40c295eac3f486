"""
Role hierarchy.

Callers may still hand in a role name ("dispatcher") or a legacy numeric
priority (3). Both are normalized once into a ``Role`` value; everything
past the boundary compares positions only.
"""

from dataclasses import dataclass
from typing import Any

from shared.config.constants import ROLE_HIERARCHY, ROLE_PRIORITIES, Roles
from shared.config.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Role:
    """A role name and its position in the hierarchy (0 = lowest)."""

    name: str
    position: int

    def __str__(self) -> str:
        return self.name

    def at_least(self, other: "Role") -> bool:
        return self.position >= other.position

    @classmethod
    def lowest(cls) -> "Role":
        return _ROLES[Roles.DEFAULT]

    @classmethod
    def from_name(cls, name: str) -> "Role | None":
        """Exact lookup by canonical name; None when unknown."""
        return _ROLES.get(name)

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """
        Normalize any role representation.

        Accepts a Role, a name (case-insensitive) or a numeric priority
        (1 = lowest). Anything unrecognized resolves to the lowest role.
        """
        if isinstance(value, Role):
            return value

        if isinstance(value, str):
            role = _ROLES.get(value.strip().lower())
            if role is not None:
                return role
        elif isinstance(value, int) and not isinstance(value, bool):
            role = _BY_PRIORITY.get(value)
            if role is not None:
                return role

        if value is not None:
            logger.debug("Unrecognized role, using lowest privilege", role=value)
        return cls.lowest()


_ROLES: dict[str, Role] = {name: Role(name, position) for position, name in enumerate(ROLE_HIERARCHY)}
_BY_PRIORITY: dict[int, Role] = {priority: _ROLES[name] for name, priority in ROLE_PRIORITIES.items()}

ALL_ROLES: tuple[Role, ...] = tuple(_ROLES[name] for name in ROLE_HIERARCHY)


def is_missing_role(value: Any) -> bool:
    """True for absent or blank roles, which must be rejected rather than defaulted."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False
