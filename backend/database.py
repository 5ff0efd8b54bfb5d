"""Database setup and session management."""

import logging
import threading
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import settings

logger = logging.getLogger(__name__)

# Serializes compound ledger mutations (record + allocate, edit, remove).
_write_lock = threading.RLock()


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def configure_sqlite(engine) -> None:
    """Enable foreign keys and SAVEPOINT-safe transactions on a SQLite engine.

    The pysqlite driver issues its own BEGIN lazily and breaks
    ``Session.begin_nested()``. Disabling that and emitting BEGIN from
    SQLAlchemy instead lets savepoints roll back cleanly.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


@lru_cache
def get_engine():
    """Get or create the database engine (cached)."""
    connect_args = {}
    database_url = settings.DATABASE_URL

    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
    )

    if database_url.startswith("sqlite"):
        configure_sqlite(engine)

    return engine


def get_session_local():
    """Get a sessionmaker bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db() -> None:
    """Create all tables that do not exist yet."""
    import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database schema ready")


@contextmanager
def atomic(db: Session):
    """Run a compound ledger mutation as one all-or-nothing unit.

    Holds the process-wide write lock and wraps the block in a SAVEPOINT.
    Any exception rolls the savepoint back, leaving lots, allocations and
    ledger rows exactly as they were, and is then re-raised. Nested calls
    are allowed.
    """
    with _write_lock, db.begin_nested():
        yield db


def get_db():
    """Dependency that provides a database session.

    Transaction conventions:
    - Services ``flush()``, the API layer ``commit()``
    - Compound ledger mutations run inside ``atomic()`` so a failure
      part-way through leaves no partial lot changes behind
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
