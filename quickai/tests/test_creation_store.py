"""Tests for the SQL creation store and like toggling (SQLite)."""

import threading
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import delete as sa_delete, false
from sqlalchemy.orm import sessionmaker

from quickai.core.database import build_engine, create_all_tables, creations
from quickai.core.errors import NotFoundError, PersistenceError
from quickai.features.creations import store as store_module
from quickai.features.creations.likes import toggle_like
from quickai.features.creations.store import SqlCreationStore
from quickai.models.creation import Creation, CreationType, LikeAction

BASE = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_creation(user_id="user_a", minutes=0, publish=False, type=CreationType.ARTICLE, prompt="p"):
    return Creation(
        user_id=user_id,
        prompt=prompt,
        content=f"content {minutes}",
        type=type,
        publish=publish,
        created_at=BASE + timedelta(minutes=minutes),
    )


def test_insert_assigns_id_and_roundtrips(store):
    creation_id = store.insert(make_creation(type=CreationType.OBJECT_REMOVAL, prompt="Removed car from image"))

    loaded = store.get(creation_id)
    assert loaded.id == creation_id
    assert loaded.type is CreationType.OBJECT_REMOVAL
    assert loaded.prompt == "Removed car from image"
    assert loaded.likes == frozenset()
    assert loaded.created_at == BASE


def test_get_missing_returns_none(store):
    assert store.get(999) is None


def test_list_by_user_newest_first_and_scoped(store):
    first = store.insert(make_creation(minutes=0))
    second = store.insert(make_creation(minutes=5))
    store.insert(make_creation(user_id="user_b", minutes=10))

    items = store.list_by_user("user_a")
    assert [c.id for c in items] == [second, first]
    assert store.list_by_user("nobody") == []


def test_list_by_user_limit(store):
    for minute in range(3):
        store.insert(make_creation(minutes=minute))
    assert len(store.list_by_user("user_a", limit=2)) == 2


def test_list_published_only_published_newest_first(store):
    old = store.insert(make_creation(minutes=1, publish=True))
    store.insert(make_creation(minutes=2, publish=False))
    new = store.insert(make_creation(user_id="user_b", minutes=3, publish=True))

    items = store.list_published()
    assert [c.id for c in items] == [new, old]
    assert all(c.publish for c in items)


def test_toggle_like_twice_restores_like_set(store):
    creation_id = store.insert(make_creation(publish=True))
    before = store.get(creation_id).likes

    assert toggle_like(store, creation_id, "fan") is LikeAction.LIKED
    assert store.get(creation_id).likes == frozenset({"fan"})

    assert toggle_like(store, creation_id, "fan") is LikeAction.UNLIKED
    assert store.get(creation_id).likes == before


def test_likes_are_a_set_per_user(store):
    creation_id = store.insert(make_creation())
    toggle_like(store, creation_id, "u1")
    toggle_like(store, creation_id, "u2")

    assert store.get(creation_id).likes == frozenset({"u1", "u2"})
    assert store.list_by_user("user_a")[0].to_public_dict()["likes"] == ["u1", "u2"]


def test_toggle_like_unknown_creation(store):
    with pytest.raises(NotFoundError) as exc:
        toggle_like(store, 12345, "fan")
    assert exc.value.status_code == 404


def test_insert_failure_is_persistence_error(store, engine):
    with engine.begin() as conn:
        creations.drop(conn)

    with pytest.raises(PersistenceError):
        store.insert(make_creation())


@pytest.fixture
def file_store(tmp_path):
    """Store on a SQLite file: one connection per thread, real file locking."""
    eng = build_engine(f"sqlite:///{tmp_path / 'likes.db'}", statement_timeout=30)
    create_all_tables(eng)
    yield SqlCreationStore(sessionmaker(autocommit=False, autoflush=False, bind=eng))
    eng.dispose()


def test_concurrent_likes_by_distinct_users_are_all_kept(file_store):
    creation_id = file_store.insert(make_creation(publish=True))
    users = [f"fan{i}" for i in range(8)]
    barrier = threading.Barrier(len(users))
    results = {}

    def like(user_id):
        barrier.wait()
        results[user_id] = toggle_like(file_store, creation_id, user_id)

    threads = [threading.Thread(target=like, args=(user_id,)) for user_id in users]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == {user_id: LikeAction.LIKED for user_id in users}
    assert file_store.get(creation_id).likes == frozenset(users)


def test_same_user_insert_race_resolves_to_liked(store, monkeypatch):
    creation_id = store.insert(make_creation())
    toggle_like(store, creation_id, "fan")
    # The DELETE misses, as if it ran just before the other toggle's INSERT committed
    monkeypatch.setattr(store_module, "delete", lambda table: sa_delete(table).where(false()))

    assert toggle_like(store, creation_id, "fan") is LikeAction.LIKED
    assert store.get(creation_id).likes == frozenset({"fan"})
