"""Database engine ownership and session dependency."""

from __future__ import annotations

import logging
from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def _connect_args(url: str, timeout_seconds: float) -> dict[str, object]:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout_seconds}
    if url.startswith("postgresql"):
        return {"connect_timeout": max(1, int(timeout_seconds))}
    return {}


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works with pysqlite."""

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


class Database:
    """Engine plus session factory, created once per application.

    The FastAPI lifespan builds one instance, stores it on ``app.state`` and
    disposes it at shutdown; request handlers obtain sessions via ``get_db``.
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        connect_timeout_seconds: float = 10.0,
        pool_timeout_seconds: float = 10.0,
    ) -> None:
        self.url = url
        engine_kwargs: dict[str, object] = {
            "pool_pre_ping": True,
            "echo": echo,
            "connect_args": _connect_args(url, connect_timeout_seconds),
        }
        if url in ("sqlite://", "sqlite:///:memory:"):
            # An in-memory database lives only as long as its single connection.
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_timeout"] = pool_timeout_seconds
        self.engine: Engine = create_engine(url, **engine_kwargs)
        if url.startswith("sqlite"):
            _enable_sqlite_savepoints(self.engine)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        """Open a new ORM session."""
        return self.session_factory()

    def create_tables(self) -> None:
        """Create all database tables."""
        # Ensure model modules are imported so that metadata is populated.
        import chirp.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self) -> None:
        """Drop all database tables."""
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        """Release every pooled connection."""
        self.engine.dispose()
        logger.info("Database engine disposed")


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
