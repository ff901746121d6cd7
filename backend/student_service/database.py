"""
Database connection and session management module.

Uses SQLAlchemy for ORM operations. Supports PostgreSQL (deployment) and
SQLite (local development and tests).

The store handle (engine + session factory) is created explicitly by
``connect_store`` at startup and attached to the application as
``app.state.store``. Request handlers get a session from it through the
``get_db`` dependency; there is no module-level engine.
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool
from fastapi import Request

from student_service.errors import StartupError
from student_service.logging_config import get_logger, log_with_context

logger = get_logger("db")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


class Store:
    """Handle on the record store: one engine and its session factory."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def session(self):
        return self.session_factory()

    def create_tables(self):
        """Create tables and indexes (including the unique email index)."""
        Base.metadata.create_all(bind=self.engine)

    def close(self):
        self.engine.dispose()


def _engine_kwargs(database_url: str) -> dict:
    # SQLite does not support pool_size, max_overflow, or pool_pre_ping
    engine_kwargs = {"echo": False}

    if database_url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
        })
    elif database_url.startswith("sqlite"):
        # Handlers run on FastAPI's thread pool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # An in-memory database only lives as long as its connection
            engine_kwargs["poolclass"] = StaticPool

    return engine_kwargs


def connect_store(database_url: str) -> Store:
    """
    Create the store handle and verify the store is reachable.

    Raises:
        StartupError: if the engine cannot be created or the probe query fails
    """
    try:
        engine = create_engine(database_url, **_engine_kwargs(database_url))
        if engine.dialect.name == "sqlite":
            @event.listens_for(engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except (SQLAlchemyError, ValueError) as e:
        log_with_context(logger, "ERROR", "Database connection error: {}".format(e))
        raise StartupError(str(e)) from e

    log_with_context(logger, "INFO", "Database connected successfully",
                     extra_data={"dialect": engine.dialect.name})
    return Store(engine)


def get_db(request: Request):
    """
    FastAPI dependency that provides a database session.

    The session comes from the store handle attached to the application,
    and is closed after the request completes even if an exception occurs.
    """
    db = request.app.state.store.session()
    try:
        yield db
    finally:
        db.close()
