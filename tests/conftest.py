from __future__ import annotations

from datetime import datetime, timezone
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from pastebin_lite.db import Base
from pastebin_lite.domain import models as _models  # noqa: F401
from pastebin_lite.services.paste_store import PasteStore


T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """
    Create a fresh in-memory SQLite engine for each test function.

    In-memory SQLite keeps one connection per thread, so this is only
    suitable for single-threaded tests.
    """

    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def store(session_factory: sessionmaker[Session]) -> PasteStore:
    """Store whose fallback clock is pinned to ``T0``."""
    return PasteStore(session_factory=session_factory, clock=lambda: T0)
