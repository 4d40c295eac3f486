"""
Persistence adapter: statement execution, RLS predicates, backend errors.
"""

from .errors import (
    BackendError,
    DEFAULT_ERROR_MAP,
    SQLState,
    extract_field,
    resolve_error_kind,
    translate_backend_error,
)
from .executor import StatementExecutor, StatementResult, SessionExecutor
from .rls_filter import DENY_ALL_CLAUSE, RLSFilter, ScopedResult, build_rls_filter

__all__ = [
    "BackendError",
    "DEFAULT_ERROR_MAP",
    "SQLState",
    "extract_field",
    "resolve_error_kind",
    "translate_backend_error",
    "StatementExecutor",
    "StatementResult",
    "SessionExecutor",
    "DENY_ALL_CLAUSE",
    "RLSFilter",
    "ScopedResult",
    "build_rls_filter",
]
