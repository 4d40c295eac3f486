"""
Configuration module: Settings, logging, constants.
"""

from shared.config.settings import settings, DATABASE_URL
from shared.config.logging import get_logger, setup_logging
from shared.config.constants import (
    Roles,
    Operations,
    FieldAccessLevels,
    RLSPolicies,
    SortOrder,
    AuditActions,
    Limits,
    ROLE_HIERARCHY,
    ROLE_PRIORITIES,
    UNIVERSAL_FIELD_ACCESS,
)

__all__ = [
    # settings
    "settings",
    "DATABASE_URL",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "Roles",
    "Operations",
    "FieldAccessLevels",
    "RLSPolicies",
    "SortOrder",
    "AuditActions",
    "Limits",
    "ROLE_HIERARCHY",
    "ROLE_PRIORITIES",
    "UNIVERSAL_FIELD_ACCESS",
]
