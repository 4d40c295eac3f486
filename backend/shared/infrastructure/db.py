"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import DATABASE_URL, settings

import os


def _calculate_pool_size() -> int:
    """
    Calculate pool size based on CPU cores.
    Formula: (2 * CPU cores) + 1, capped at 20.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


def _connect_args() -> dict:
    args: dict = {"connect_timeout": 10}
    if settings.database_statement_timeout_ms:
        # Long-running queries are cut off by the backend, not by this layer
        args["options"] = f"-c statement_timeout={settings.database_statement_timeout_ms}"
    return args


# Engine creation is lazy on the driver side: no connection is opened
# until the first session executes a statement.
engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,  # Verify connections before using
    pool_size=_calculate_pool_size(),
    max_overflow=15,
    pool_timeout=30,  # Wait max 30s for connection from pool
    pool_recycle=1800,  # Recycle connections after 30 minutes
    connect_args=_connect_args(),
    echo=False,  # Set to True for SQL logging in development
)

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @app.get("/customers")
        def list_customers(db: Session = Depends(get_db)):
            service = GenericEntityService(REGISTRY, SessionExecutor(db))
            ...

    The session is automatically closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            executor = SessionExecutor(db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Safe commit with automatic rollback on failure.

    Usage:
        from shared.infrastructure.db import safe_commit
        safe_commit(db)

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
