from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker

from pastebin_lite.db import Base
from pastebin_lite.domain.errors import ExhaustedRetries, InvalidArgument, StoreUnavailable
from pastebin_lite.domain.expiry import MAX_COLUMN_INT
from pastebin_lite.domain.ids import PASTE_ID_ALPHABET
from pastebin_lite.domain.models import Paste
from pastebin_lite.services.paste_store import PasteStore

from .conftest import T0


def _ids(*values: str) -> Iterator[str]:
    yield from values


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def test_create_returns_record_and_first_read_counts_one_view(store: PasteStore) -> None:
    created = store.create("hello world", ttl_seconds=30, max_views=3, now=T0)

    assert len(created["id"]) == 10
    assert set(created["id"]) <= set(PASTE_ID_ALPHABET)
    assert created["views"] == 0
    assert created["created_at"] == T0
    assert created["expires_at"] == T0 + timedelta(seconds=30)

    read = store.read(created["id"], now=T0)
    assert read is not None
    assert read["content"] == "hello world"
    assert read["views"] == 1
    assert read["remaining_views"] == 2


def test_create_trims_surrounding_whitespace_only(store: PasteStore) -> None:
    created = store.create("  \n  line one\n\tline two  \n", now=T0)
    read = store.read(created["id"], now=T0)
    assert read is not None
    assert read["content"] == "line one\n\tline two"


def test_create_uses_clock_when_now_not_given(store: PasteStore) -> None:
    created = store.create("x", ttl_seconds=5)
    assert created["created_at"] == T0
    assert created["expires_at"] == T0 + timedelta(seconds=5)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"content": ""},
        {"content": "   \n\t "},
        {"content": None},
        {"content": "ok", "ttl_seconds": 0},
        {"content": "ok", "ttl_seconds": -1},
        {"content": "ok", "max_views": 0},
        {"content": "ok", "max_views": 2.0},
        {"content": "ok", "max_views": True},
        {"content": "ok", "ttl_seconds": 10**15},
        {"content": "ok", "ttl_seconds": 3_000_000_000},
        {"content": "ok", "max_views": 2**63},
    ],
)
def test_create_rejects_invalid_arguments(store: PasteStore, session_factory, kwargs) -> None:
    with pytest.raises(InvalidArgument):
        store.create(**kwargs)

    with session_factory() as session:
        assert session.execute(select(Paste)).first() is None


def test_create_retries_on_id_collision(session_factory) -> None:
    ids = _ids("AAAAAAAAAA", "AAAAAAAAAA", "BBBBBBBBBB")
    store = PasteStore(session_factory=session_factory, id_generator=lambda: next(ids))

    first = store.create("first", now=T0)
    second = store.create("second", now=T0)

    assert first["id"] == "AAAAAAAAAA"
    assert second["id"] == "BBBBBBBBBB"
    # The first record was not overwritten.
    assert store.read("AAAAAAAAAA", now=T0)["content"] == "first"


def test_create_raises_exhausted_retries(session_factory) -> None:
    store = PasteStore(
        session_factory=session_factory,
        id_generator=lambda: "AAAAAAAAAA",
        max_id_attempts=3,
    )
    store.create("taken", now=T0)

    with pytest.raises(ExhaustedRetries):
        store.create("never stored", now=T0)

    with session_factory() as session:
        contents = session.execute(select(Paste.content)).scalars().all()
    assert contents == ["taken"]


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def test_read_unknown_id_returns_none(store: PasteStore) -> None:
    assert store.read("0123456789", now=T0) is None


def test_view_limit_scenario(store: PasteStore) -> None:
    created = store.create("hello", max_views=2, now=T0)

    first = store.read(created["id"], now=T0)
    second = store.read(created["id"], now=T0)
    third = store.read(created["id"], now=T0)

    assert (first["content"], first["views"]) == ("hello", 1)
    assert (second["content"], second["views"]) == ("hello", 2)
    assert second["remaining_views"] == 0
    assert third is None


@pytest.mark.parametrize("max_views", [1, 3, 7])
def test_reads_succeed_exactly_max_views_times(store: PasteStore, session_factory, max_views: int) -> None:
    created = store.create("counted", max_views=max_views, now=T0)

    results = [store.read(created["id"], now=T0) for _ in range(max_views + 2)]

    assert [r["views"] for r in results[:max_views]] == list(range(1, max_views + 1))
    assert results[max_views:] == [None, None]
    # Failed reads do not touch the counter.
    with session_factory() as session:
        assert session.get(Paste, created["id"]).views == max_views


def test_ttl_scenario(store: PasteStore) -> None:
    created = store.create("x", ttl_seconds=60, now=T0)

    assert store.read(created["id"], now=T0 + timedelta(seconds=59)) is not None
    assert store.read(created["id"], now=T0 + timedelta(seconds=60)) is None


def test_ttl_boundary_is_inclusive(store: PasteStore) -> None:
    created = store.create("edge", ttl_seconds=10, now=T0)
    boundary = T0 + timedelta(seconds=10)

    assert store.read(created["id"], now=boundary - timedelta(milliseconds=1)) is not None
    assert store.read(created["id"], now=boundary) is None
    # A later read at an earlier instant still works: the row is not deleted.
    assert store.read(created["id"], now=boundary - timedelta(milliseconds=1)) is not None


def test_expired_read_does_not_increment(store: PasteStore, session_factory) -> None:
    created = store.create("gone", ttl_seconds=1, now=T0)

    assert store.read(created["id"], now=T0 + timedelta(seconds=5)) is None

    with session_factory() as session:
        paste = session.get(Paste, created["id"])
        assert paste is not None
        assert paste.views == 0


def test_content_round_trips_unchanged(store: PasteStore) -> None:
    content = "ünïcödé ✓\r\n<script>alert('x')</script>\n\ttabs & spaces"
    created = store.create(content, max_views=3, now=T0)

    for _ in range(3):
        assert store.read(created["id"], now=T0)["content"] == content


def test_concurrent_reads_never_exceed_max_views(tmp_path: Path) -> None:
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'race.db'}",
        future=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    store = PasteStore(session_factory=factory)

    try:
        for _ in range(5):
            paste_id = store.create("only once", max_views=1, now=T0)["id"]
            barrier = threading.Barrier(2)

            def reader():
                barrier.wait()
                return store.read(paste_id, now=T0)

            with ThreadPoolExecutor(max_workers=2) as pool:
                results = list(pool.map(lambda _: reader(), range(2)))

            hits = [r for r in results if r is not None]
            assert len(hits) == 1
            assert hits[0]["views"] == 1
            with factory() as session:
                assert session.get(Paste, paste_id).views == 1
    finally:
        engine.dispose()


# ---------------------------------------------------------------------------
# Cleanup and stats
# ---------------------------------------------------------------------------


def test_delete_expired_removes_only_dead_pastes(store: PasteStore, session_factory) -> None:
    timed_out = store.create("timed out", ttl_seconds=10, now=T0)
    used_up = store.create("used up", max_views=1, now=T0)
    store.read(used_up["id"], now=T0)
    fresh = store.create("fresh", ttl_seconds=3600, max_views=5, now=T0)
    forever = store.create("forever", now=T0)

    removed = store.delete_expired(now=T0 + timedelta(seconds=10))

    assert removed == 2
    with session_factory() as session:
        remaining = set(session.execute(select(Paste.id)).scalars().all())
    assert remaining == {fresh["id"], forever["id"]}
    assert timed_out["id"] not in remaining

    # Second run is a no-op.
    assert store.delete_expired(now=T0 + timedelta(seconds=10)) == 0


def test_stats_counts_total_and_live(store: PasteStore) -> None:
    store.create("live", now=T0)
    store.create("short", ttl_seconds=5, now=T0)
    used_up = store.create("used", max_views=1, now=T0)
    store.read(used_up["id"], now=T0)

    assert store.stats(now=T0) == {"total": 3, "active": 2}
    assert store.stats(now=T0 + timedelta(seconds=5)) == {"total": 3, "active": 1}


# ---------------------------------------------------------------------------
# Store failures
# ---------------------------------------------------------------------------


@pytest.fixture
def broken_store() -> PasteStore:
    """Store bound to a database without the pastes table."""
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return PasteStore(session_factory=factory, clock=lambda: T0)


def test_store_errors_surface_as_store_unavailable(broken_store: PasteStore) -> None:
    with pytest.raises(StoreUnavailable):
        broken_store.create("x")
    with pytest.raises(StoreUnavailable):
        broken_store.read("0123456789", now=T0)
    with pytest.raises(StoreUnavailable):
        broken_store.delete_expired()
    with pytest.raises(StoreUnavailable):
        broken_store.stats()


def test_ping(store: PasteStore) -> None:
    store.ping()


def test_paste_content_is_immutable(session_factory) -> None:
    with session_factory() as session:
        paste = Paste(id="ImmutableA", content="immutable content", views=0, created_at=T0)
        session.add(paste)
        session.flush()

        with pytest.raises(ValueError):
            paste.content = "new content"


def test_create_accepts_largest_storable_limits(store: PasteStore) -> None:
    created = store.create("big", ttl_seconds=MAX_COLUMN_INT, max_views=MAX_COLUMN_INT, now=T0)

    read = store.read(created["id"], now=T0)
    assert read is not None
    assert read["max_views"] == MAX_COLUMN_INT
    assert read["remaining_views"] == MAX_COLUMN_INT - 1
