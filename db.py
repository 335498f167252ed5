# db.py
# Role: Database bootstrap for the Stash API.
#       Defines the declarative Base and an explicit Database handle that owns
#       the SQLAlchemy engine and session factory. The app opens it at startup
#       and closes it at shutdown (see main.py lifespan).

"""
Database setup.

Usage:

    database = Database("sqlite:///database/stash.db")
    database.open()
    with database.session_scope() as session:
        session.add(...)
    database.close()
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.logging_setup import get_logger

logger = get_logger("stash.db")

# Declarative base class for ORM models
Base = declarative_base()


def _engine_kwargs(url: str) -> dict:
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        return {"pool_pre_ping": True}

    # For SQLite, we need check_same_thread=False for FastAPI (threaded request handling)
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if parsed.database in (None, "", ":memory:"):
        # One shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    else:
        # Ensure the on-disk database directory exists
        folder = os.path.dirname(os.path.abspath(parsed.database))
        os.makedirs(folder, exist_ok=True)
    return kwargs


class Database:
    """Explicitly constructed database handle (one engine per instance)."""

    def __init__(self, url: str):
        self.url = url
        self._engine: Engine | None = None
        self._session_maker: sessionmaker[Session] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open; call open() first")
        return self._engine

    def open(self) -> "Database":
        if self._engine is not None:
            return self

        # Import models so their tables are registered on Base.metadata
        import models  # noqa: F401

        engine = create_engine(self.url, **_engine_kwargs(self.url))
        # Create database tables (only if they don't exist yet)
        Base.metadata.create_all(bind=engine)

        self._engine = engine
        self._session_maker = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("database opened: %s", make_url(self.url).render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_maker = None
        logger.info("database closed")

    def session(self) -> Session:
        if self._session_maker is None:
            raise RuntimeError("Database is not open; call open() first")
        return self._session_maker()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        if self._engine is None:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.warning("database ping failed", exc_info=True)
            return False
        return True
