"""
Database engine, session factory and store error translation.

SQLite (default for local development and tests) and PostgreSQL are
supported. Every connection is created with a bounded timeout so no store
call can block a request indefinitely; expiry surfaces as StorageTimeout.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from dabus.config import settings
from dabus.exceptions import DaBusError, StorageError, StorageTimeout

logger = logging.getLogger(__name__)

Base = declarative_base()

_TIMEOUT_MARKERS = (
    "database is locked",
    "statement timeout",
    "canceling statement",
    "timeout expired",
    "timed out",
    "lock timeout",
)


def build_engine(database_url: str, timeout: Optional[int] = None, echo: bool = False) -> Engine:
    """
    Create an engine with bounded timeouts for the given URL.

    SQLite connections open their transactions with BEGIN IMMEDIATE so that
    concurrent writers queue on the busy timeout instead of failing with a
    lock-upgrade deadlock.
    """
    timeout = timeout if timeout is not None else settings.DB_TIMEOUT_SECONDS

    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    connect_args = {}
    if database_url.startswith("postgresql"):
        connect_args = {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args=connect_args,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a request-scoped session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet"""
    # Import models so they register on Base.metadata
    from dabus import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def classify_storage_error(exc: SQLAlchemyError) -> StorageError:
    if isinstance(exc, PoolTimeoutError):
        return StorageTimeout()
    if isinstance(exc, OperationalError):
        text = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
        if any(marker in text for marker in _TIMEOUT_MARKERS):
            return StorageTimeout()
    return StorageError()


@contextmanager
def storage_guard(db: Session, commit: bool = True) -> Iterator[Session]:
    """
    Run a unit of work against the store.

    Commits on success. On any failure the transaction is rolled back so no
    partial state is left visible; store errors are re-raised as
    StorageTimeout/StorageError without driver detail.
    """
    try:
        yield db
        if commit:
            db.commit()
    except DaBusError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        error = classify_storage_error(exc)
        logger.exception("Store operation failed (%s)", type(error).__name__)
        raise error from exc
