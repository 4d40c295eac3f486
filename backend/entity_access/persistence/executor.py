"""
Statement execution.

The engine talks to persistence through ``StatementExecutor``: a statement
string with ``$1..$n`` placeholders plus a positional parameter list in,
rows and a row count out. ``SessionExecutor`` is the SQLAlchemy adapter.

Usage:
    with get_db_context() as db:
        executor = SessionExecutor(db)
        result = executor.execute("SELECT * FROM customers WHERE id = $1", [5])
"""

import re
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, ContextManager, Protocol, Sequence

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit

from .errors import BackendError

logger = get_logger(__name__)

_PLACEHOLDER = re.compile(r"\$(\d+)")


@dataclass(frozen=True)
class StatementResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


class StatementExecutor(Protocol):
    """What the entity service needs from a persistence backend."""

    def execute(self, statement: str, params: Sequence[Any] = ()) -> StatementResult:
        """Run one statement. Raises BackendError on failure."""
        ...

    def transaction(self) -> ContextManager[None]:
        """
        Group statements: commit on success, roll back on any failure.
        Nested calls join the outer transaction.
        """
        ...


class SessionExecutor:
    """
    StatementExecutor over a SQLAlchemy session.

    Outside ``transaction()`` every statement commits on its own.
    """

    def __init__(self, session: Session):
        self.session = session
        self._depth = 0
        self._dialect = session.get_bind().dialect.name

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def _compile(self, statement: str, params: Sequence[Any]):
        sql = _PLACEHOLDER.sub(lambda match: f":p{match.group(1)}", statement)
        if self._dialect == "sqlite":
            # SQLite LIKE is already case-insensitive for ASCII
            sql = sql.replace(" ILIKE ", " LIKE ")
        bind = {f"p{index}": value for index, value in enumerate(params, start=1)}
        return text(sql), bind

    def execute(self, statement: str, params: Sequence[Any] = ()) -> StatementResult:
        clause, bind = self._compile(statement, params)
        try:
            result = self.session.execute(clause, bind)
            if result.returns_rows:
                rows = [dict(row) for row in result.mappings().all()]
                outcome = StatementResult(rows=rows, row_count=len(rows))
            else:
                outcome = StatementResult(row_count=result.rowcount)
            if not self.in_transaction:
                safe_commit(self.session)
        except DBAPIError as exc:
            if not self.in_transaction:
                self.session.rollback()
            logger.debug("Statement failed", statement=statement, error=str(exc.orig))
            raise BackendError.from_dbapi_error(exc) from exc
        return outcome

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        if self.in_transaction:
            yield
            return

        self._depth += 1
        try:
            yield
        except Exception:
            self.session.rollback()
            raise
        else:
            try:
                safe_commit(self.session)
            except DBAPIError as exc:
                raise BackendError.from_dbapi_error(exc) from exc
        finally:
            self._depth -= 1
