"""
Utilities module: Exceptions, validators.
"""

from shared.utils.exceptions import (
    AppException,
    ConfigurationError,
    NotFoundError,
    ForbiddenError,
    RLSViolationError,
    ValidationError,
    FieldAccessError,
    InvalidReferenceError,
    ConflictError,
    DependentRecordError,
    InternalError,
    DatabaseError,
)
from shared.utils.validators import (
    is_safe_identifier,
    sanitize_search_term,
    is_numeric,
)

__all__ = [
    # exceptions
    "AppException",
    "ConfigurationError",
    "NotFoundError",
    "ForbiddenError",
    "RLSViolationError",
    "ValidationError",
    "FieldAccessError",
    "InvalidReferenceError",
    "ConflictError",
    "DependentRecordError",
    "InternalError",
    "DatabaseError",
    # validators
    "is_safe_identifier",
    "sanitize_search_term",
    "is_numeric",
]
