"""
Backend error normalization and translation.

Driver exceptions are reduced to a ``BackendError`` carrying the SQLSTATE
code, then mapped per entity into the domain taxonomy:

    23505 unique violation      -> ConflictError
    23503 foreign key violation -> InvalidReferenceError, or DependentRecordError on delete
    23502 / 23514 / 22xxx       -> ValidationError
    anything else               -> DatabaseError

Entities override the default mapping through ``error_map``.
"""

import re
from typing import Any, Mapping

from sqlalchemy.exc import DBAPIError

from shared.config.logging import get_logger
from shared.utils.exceptions import (
    AppException,
    ConflictError,
    DatabaseError,
    DependentRecordError,
    InvalidReferenceError,
    ValidationError,
)

from entity_access.models.base import EntityMetadata, ErrorKinds

logger = get_logger(__name__)


class SQLState:
    UNIQUE_VIOLATION = "23505"
    FOREIGN_KEY_VIOLATION = "23503"
    NOT_NULL_VIOLATION = "23502"
    CHECK_VIOLATION = "23514"
    STRING_TOO_LONG = "22001"
    NUMERIC_OUT_OF_RANGE = "22003"
    INVALID_DATETIME_FORMAT = "22007"
    DATETIME_OUT_OF_RANGE = "22008"
    INVALID_TEXT_REPRESENTATION = "22P02"


DEFAULT_ERROR_MAP: Mapping[str, str] = {
    SQLState.UNIQUE_VIOLATION: ErrorKinds.CONFLICT,
    SQLState.FOREIGN_KEY_VIOLATION: ErrorKinds.INVALID_REFERENCE,
    SQLState.NOT_NULL_VIOLATION: ErrorKinds.BAD_REQUEST,
    SQLState.CHECK_VIOLATION: ErrorKinds.BAD_REQUEST,
    SQLState.STRING_TOO_LONG: ErrorKinds.BAD_REQUEST,
    SQLState.NUMERIC_OUT_OF_RANGE: ErrorKinds.BAD_REQUEST,
    SQLState.INVALID_DATETIME_FORMAT: ErrorKinds.BAD_REQUEST,
    SQLState.DATETIME_OUT_OF_RANGE: ErrorKinds.BAD_REQUEST,
    SQLState.INVALID_TEXT_REPRESENTATION: ErrorKinds.BAD_REQUEST,
}

# SQLite extended result names -> SQLSTATE
_SQLITE_CODES = {
    "SQLITE_CONSTRAINT_UNIQUE": SQLState.UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_PRIMARYKEY": SQLState.UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_FOREIGNKEY": SQLState.FOREIGN_KEY_VIOLATION,
    "SQLITE_CONSTRAINT_NOTNULL": SQLState.NOT_NULL_VIOLATION,
    "SQLITE_CONSTRAINT_CHECK": SQLState.CHECK_VIOLATION,
}

# SQLite messages, for builds that do not expose sqlite_errorname
_SQLITE_MESSAGES = (
    ("UNIQUE constraint failed", SQLState.UNIQUE_VIOLATION),
    ("FOREIGN KEY constraint failed", SQLState.FOREIGN_KEY_VIOLATION),
    ("NOT NULL constraint failed", SQLState.NOT_NULL_VIOLATION),
    ("CHECK constraint failed", SQLState.CHECK_VIOLATION),
)

_KEY_DETAIL = re.compile(r"Key \((?P<field>[a-z_][a-z0-9_]*)(?:,[^)]*)?\)=")
_COLUMN_MESSAGE = re.compile(r'column "(?P<field>[a-z_][a-z0-9_]*)"')
_SQLITE_COLUMN = re.compile(r"constraint failed: [a-z_][a-z0-9_]*\.(?P<field>[a-z_][a-z0-9_]*)")
_REFERENCED_FROM = re.compile(r'referenced from table "(?P<table>[a-z_][a-z0-9_]*)"')
_CONSTRAINT_SUFFIXES = ("_key", "_fkey", "_check", "_not_null", "_unique")


class BackendError(Exception):
    """
    Normalized persistence failure.

    Attributes:
        code: SQLSTATE (five characters) or None when unknown
        message: Driver message
        detail: Driver detail line, when provided
        field: Column involved, when it could be determined
        constraint: Constraint name, when provided
    """

    def __init__(
        self,
        code: str | None,
        message: str,
        detail: str | None = None,
        field: str | None = None,
        constraint: str | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail
        self.field = field
        self.constraint = constraint

    @classmethod
    def from_dbapi_error(cls, exc: DBAPIError, table_name: str | None = None) -> "BackendError":
        orig = exc.orig
        message = str(orig) if orig is not None else str(exc)
        diag = getattr(orig, "diag", None)
        detail = getattr(diag, "message_detail", None)
        constraint = getattr(diag, "constraint_name", None)
        column = getattr(diag, "column_name", None)

        code = _extract_code(orig, message)
        field = column or extract_field(detail, message, constraint, table_name)
        return cls(code, message, detail=detail, field=field, constraint=constraint)


def _extract_code(orig: Any, message: str) -> str | None:
    # psycopg 3, then psycopg2
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code

    errorname = getattr(orig, "sqlite_errorname", None)
    if errorname in _SQLITE_CODES:
        return _SQLITE_CODES[errorname]

    for prefix, sqlstate in _SQLITE_MESSAGES:
        if prefix in message:
            return sqlstate
    return None


def extract_field(
    detail: str | None,
    message: str | None,
    constraint: str | None = None,
    table_name: str | None = None,
) -> str | None:
    """Best-effort column name from driver text or constraint name."""
    for text, pattern in ((detail, _KEY_DETAIL), (message, _COLUMN_MESSAGE), (message, _SQLITE_COLUMN)):
        if text:
            match = pattern.search(text)
            if match:
                return match.group("field")

    if constraint:
        name = constraint
        if table_name and name.startswith(f"{table_name}_"):
            name = name[len(table_name) + 1:]
        for suffix in _CONSTRAINT_SUFFIXES:
            if name.endswith(suffix):
                return name[: -len(suffix)] or None
    return None


def resolve_error_kind(error: BackendError, metadata: EntityMetadata, operation: str) -> str | None:
    kind = metadata.error_map.get(error.code) if error.code else None
    if kind is None:
        kind = DEFAULT_ERROR_MAP.get(error.code) if error.code else None

    if kind == ErrorKinds.INVALID_REFERENCE:
        text = f"{error.detail or ''} {error.message}"
        if operation == "delete" or "still referenced" in text:
            kind = ErrorKinds.DEPENDENT
    return kind


def translate_backend_error(
    error: BackendError,
    metadata: EntityMetadata,
    operation: str,
    record_id: Any = None,
) -> AppException:
    """
    Map a backend failure to the domain exception the caller should raise.

    Messages never include driver text; the raw message is only logged.
    """
    kind = resolve_error_kind(error, metadata, operation)
    context = {"entity": metadata.name, "code": error.code, "operation": operation}

    if kind == ErrorKinds.CONFLICT:
        if error.field:
            detail = f"{metadata.label} with this {error.field} already exists"
        else:
            detail = f"{metadata.label} already exists"
        return ConflictError(detail, field=error.field, **context)

    if kind == ErrorKinds.INVALID_REFERENCE:
        return InvalidReferenceError(error.field, **context)

    if kind == ErrorKinds.DEPENDENT:
        match = _REFERENCED_FROM.search(error.detail or "")
        dependent = match.group("table") if match else "related records"
        return DependentRecordError(
            metadata.label, record_id, dependent=dependent, code=error.code, operation=operation
        )

    if kind == ErrorKinds.BAD_REQUEST:
        if error.code == SQLState.NOT_NULL_VIOLATION and error.field:
            detail = f"Missing required value for '{error.field}'"
        elif error.field:
            detail = f"Invalid value for '{error.field}'"
        else:
            detail = "Invalid value"
        return ValidationError(detail, field=error.field, **context)

    logger.error("Unmapped backend error", backend_message=error.message, **context)
    return DatabaseError(operation, entity=metadata.name, code=error.code)
