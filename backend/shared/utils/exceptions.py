"""
Centralized exceptions for the entity access layer.
Every error carries a stable HTTP classification for the boundary layer.

Usage:
    from shared.utils.exceptions import NotFoundError, ForbiddenError, ValidationError

    raise NotFoundError("customer", customer_id)
    raise ForbiddenError("read work_orders")
    raise ValidationError("Missing required fields: email")
"""

from fastapi import HTTPException, status
from typing import Any

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        log_message: str | None = None,
        **log_context: Any,
    ):
        # Log the error with context
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(log_message or detail, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 500 Configuration Errors
# =============================================================================


class ConfigurationError(AppException):
    """
    Malformed or missing entity metadata (500).

    The internal reason is logged with full context; callers only ever see
    a generic message so schema details never leak.

    Usage:
        raise ConfigurationError("Unknown RLS resource", resource="widgets")
    """

    GENERIC_DETAIL = "Internal server error"

    def __init__(self, reason: str, **log_context: Any):
        self.reason = reason
        self.context = dict(log_context)
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=self.GENERIC_DETAIL,
            log_level="error",
            log_message=f"Configuration error: {reason}",
            **log_context,
        )


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("work_order", 123)
        raise NotFoundError("Entity type 'widget'")
    """

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} with ID {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


# =============================================================================
# 403 Forbidden Errors
# =============================================================================


class ForbiddenError(AppException):
    """
    Authorization/permission error (403).

    Usage:
        raise ForbiddenError("read invoices")
        raise ForbiddenError("access this resource", user_id=user_id)
    """

    def __init__(self, action: str | None = None, log_level: str = "warning", **log_context: Any):
        if action:
            detail = f"Not authorized to {action}"
        else:
            detail = "Access denied"

        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            log_level=log_level,
            action=action,
            **log_context,
        )


class RLSViolationError(ForbiddenError):
    """
    A declared row-level security policy was not applied to the executed query.

    Always logged at critical level: it means a code path skipped the
    row filter and the unfiltered rows were withheld.
    """

    def __init__(self, resource: str, policy: str, **log_context: Any):
        super().__init__(
            f"access {resource}",
            log_level="critical",
            resource=resource,
            policy=policy,
            **log_context,
        )


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("Missing required fields: email")
        raise ValidationError("Invalid value", field="status", value="x")
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class FieldAccessError(ValidationError):
    """Caller supplied fields it is not allowed to act on."""

    def __init__(self, fields: list[str], operation: str, role: str, **log_context: Any):
        self.fields = list(fields)
        detail = f"Cannot {operation} fields: {', '.join(self.fields)}"
        super().__init__(detail, fields=self.fields, operation=operation, role=role, **log_context)


class InvalidReferenceError(ValidationError):
    """A foreign key points to a record that does not exist."""

    def __init__(self, field: str | None = None, **log_context: Any):
        self.field = field
        if field:
            detail = f"Referenced record for '{field}' does not exist"
        else:
            detail = "Referenced record does not exist"
        super().__init__(detail, field=field, **log_context)


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource conflict error (409).

    Usage:
        raise ConflictError("customer with this email already exists")
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class DependentRecordError(ConflictError):
    """Delete blocked because other rows still reference the target."""

    def __init__(
        self,
        entity: str,
        entity_id: int | str,
        dependent: str,
        count: int | None = None,
        **log_context: Any,
    ):
        self.dependent = dependent
        self.count = count
        if count:
            detail = f"Cannot delete {entity} {entity_id}: referenced by {count} {dependent} record(s)"
        else:
            detail = f"Cannot delete {entity} {entity_id}: still referenced by {dependent}"

        super().__init__(
            detail,
            entity=entity,
            entity_id=entity_id,
            dependent=dependent,
            dependent_count=count,
            **log_context,
        )


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class InternalError(AppException):
    """
    Internal server error (500).

    Usage:
        raise InternalError("Failed to build statement", entity="invoice")
    """

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )


class DatabaseError(InternalError):
    """Database operation failed."""

    def __init__(self, operation: str, **log_context: Any):
        detail = f"Database error during {operation}. Please try again."
        super().__init__(detail, operation=operation, **log_context)
