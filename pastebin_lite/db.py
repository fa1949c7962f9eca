from __future__ import annotations

from typing import Any

from flask import Flask, current_app
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker


Base = declarative_base()

EXTENSION_KEY = "pastebin_lite.db"


class Database:
    """
    Handle owning the SQLAlchemy engine and its session factory.

    Opened once at startup by ``init_db`` and closed at shutdown with
    ``close()``, which disposes the connection pool.
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs: Any) -> None:
        if url.startswith("sqlite"):
            # Pooled SQLite connections are handed between request threads.
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        self.engine: Engine = create_engine(url, echo=echo, future=True, **engine_kwargs)
        self.session_factory: sessionmaker[Session] = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            future=True,
        )

    def create_all(self) -> None:
        """Create missing tables for all mapped models."""
        # Import models so that Base.metadata is populated.
        from pastebin_lite.domain import models as _models  # noqa: F401

        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()


def init_db(app: Flask) -> Database:
    """
    Initialize the database handle for the Flask app.

    Reads the database URL from ``app.config['SQLALCHEMY_DATABASE_URI']``.
    """
    database_uri = app.config.get("SQLALCHEMY_DATABASE_URI")
    if not database_uri:
        raise RuntimeError(
            "SQLALCHEMY_DATABASE_URI is not configured on the Flask app."
        )

    database = Database(database_uri, echo=app.config.get("SQLALCHEMY_ECHO", False))
    if app.config.get("DB_AUTO_CREATE", False):
        database.create_all()

    app.extensions[EXTENSION_KEY] = database
    return database


def get_database(app: Flask | None = None) -> Database:
    """Return the database handle registered on ``app`` (or the current app)."""
    target = app if app is not None else current_app
    try:
        return target.extensions[EXTENSION_KEY]
    except KeyError:
        raise RuntimeError("Database is not initialized. Call init_db(app) first.") from None
