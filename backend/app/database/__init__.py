"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}

# Seconds a SQLite writer waits for the database lock before giving up.
SQLITE_BUSY_TIMEOUT = 30


def is_sqlite_url(db_url: str) -> bool:
    return db_url.startswith("sqlite")


def configure_sqlite_engine(engine: Engine) -> None:
    """
    Make SQLite transactions behave like a server database.

    pysqlite defers BEGIN until the first DML statement and mishandles
    SAVEPOINT, so the driver's transaction handling is disabled and every
    transaction is opened with BEGIN IMMEDIATE. Writers then queue on the
    database lock (bounded by the busy timeout) instead of failing on a
    read-to-write upgrade.
    """

    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(db_url: str) -> Engine:
    """Create an engine for ``db_url`` with dialect-appropriate settings."""
    if is_sqlite_url(db_url):
        new_engine = create_engine(
            db_url,
            echo=settings.database_echo,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        )
        configure_sqlite_engine(new_engine)
        return new_engine
    return create_engine(db_url, echo=settings.database_echo, **_DEFAULT_POOL_KWARGS)


engine: Engine = build_engine(settings.database_url)


# Log pool events for monitoring
@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
    connection_record.info["connect_time"] = datetime.now()
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


__all__ = [
    "Base",
    "SQLITE_BUSY_TIMEOUT",
    "SessionLocal",
    "build_engine",
    "configure_sqlite_engine",
    "engine",
    "get_db",
    "is_sqlite_url",
]
