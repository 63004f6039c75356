import sqlite3
import threading

import pytest

from release_catalog.domain.errors import Corrupt, Unavailable
from release_catalog.domain.models import ArtifactKind
from release_catalog.storage.pool import ConnectionPool
from release_catalog.storage.sqlite_store import SqliteEntityStore
from tests.conftest import insert_rows


def test_find_each_level(store):
    assert store.find_repository("mod").id == "mod"

    channel = store.find_channel("mod", "stable")
    assert channel.id == "stable"
    assert channel.repository_id == "mod"
    assert channel.name == "Stable"

    release = store.find_release("mod", "stable", 1)
    assert (release.repository_id, release.channel_id, release.id) == ("mod", "stable", 1)
    assert release.name == "7.1"
    assert release.created_at == 1712400000

    artifact = store.find_artifact("mod", "stable", 1, 1)
    assert artifact.kind is ArtifactKind.MANIFEST
    assert artifact.path == "/downloads/stable/7.1/manifest.json"
    assert (artifact.repository_id, artifact.channel_id, artifact.release_id) == ("mod", "stable", 1)


def test_missing_rows_return_none(store):
    assert store.find_repository("missing") is None
    assert store.find_channel("mod", "beta") is None
    assert store.find_release("mod", "stable", 42) is None
    assert store.find_artifact("mod", "stable", 1, 99) is None


def test_ids_from_another_parent_are_not_found(store):
    # "stable" exists, but only under "mod".
    assert store.find_channel("updater", "stable") is None
    # Release 0 exists, but only in "snapshot".
    assert store.find_release("mod", "stable", 0) is None
    # Artifact 0 exists under stable/1 and snapshot/0, not under stable/2.
    assert store.find_artifact("mod", "stable", 2, 0) is None
    assert store.find_artifact("updater", "stable", 1, 0) is None


def test_lookup_values_are_bound_not_interpolated(store):
    assert store.find_repository("mod' OR '1'='1") is None
    assert store.find_channel("mod", "\" OR 1=1 --") is None


def test_child_listings_are_ascending(store):
    assert store.list_channel_ids("mod") == ["nightly", "snapshot", "stable"]
    assert store.list_release_ids("mod", "stable") == [1, 2]
    assert store.list_artifact_ids("mod", "stable", 1) == [0, 1]
    assert store.list_release_ids("mod", "nightly") == []
    assert store.list_channel_ids("missing") == []


def test_unknown_artifact_kind_is_corrupt(store, db_path):
    insert_rows(db_path, "artifacts", [("mod", "stable", 2, 0, "Mystery", "/downloads/x", 9)])

    with pytest.raises(Corrupt, match="unknown artifact kind code 9"):
        store.find_artifact("mod", "stable", 2, 0)


def test_wrongly_typed_column_is_corrupt(store, db_path):
    insert_rows(db_path, "releases", [("mod", "nightly", 5, "broken", "yesterday")])

    with pytest.raises(Corrupt):
        store.find_release("mod", "nightly", 5)


def test_non_numeric_child_id_is_corrupt(store, db_path):
    insert_rows(db_path, "releases", [("mod", "nightly", "abc", "broken", 0)])

    with pytest.raises(Corrupt):
        store.list_release_ids("mod", "nightly")


def test_initialize_is_idempotent(store):
    store.initialize()

    assert store.find_release("mod", "stable", 1).name == "7.1"


def test_default_repositories_are_seeded(tmp_path):
    store = SqliteEntityStore(tmp_path / "seeded" / "releases.db3", seed_defaults=True)
    store.initialize()
    store.initialize()
    try:
        assert store.find_repository("mod") is not None
        assert store.find_repository("updater") is not None
        assert store.list_channel_ids("mod") == ["nightly", "snapshot", "stable"]
        assert store.list_channel_ids("updater") == ["release"]
    finally:
        store.close()


def test_unreadable_database_is_unavailable(tmp_path):
    path = tmp_path / "garbage.db3"
    path.write_bytes(b"this is not a sqlite database " * 20)
    store = SqliteEntityStore(path)

    with pytest.raises(Unavailable):
        store.find_repository("mod")
    store.close()


def test_uninitialized_database_is_unavailable(db_path):
    store = SqliteEntityStore(db_path)
    store.ping()

    with pytest.raises(Unavailable):
        store.find_repository("mod")
    store.close()


def test_closed_store_is_unavailable(empty_store):
    empty_store.close()

    with pytest.raises(Unavailable):
        empty_store.ping()


def test_pool_never_shares_a_connection(db_path):
    pool = ConnectionPool(db_path, size=1, timeout=0.05)
    try:
        with pool.connection():
            with pytest.raises(Unavailable):
                with pool.connection():
                    pass
        with pool.connection() as conn:
            assert conn.execute("SELECT 1").fetchone()[0] == 1
    finally:
        pool.close()


def test_pool_reuses_returned_connections(db_path):
    pool = ConnectionPool(db_path, size=2, timeout=1.0)
    try:
        with pool.connection() as first:
            pass
        with pool.connection() as second:
            assert second is first
    finally:
        pool.close()


def test_concurrent_lookups(store):
    results = []
    errors = []

    def lookup():
        try:
            for _ in range(20):
                results.append(store.find_artifact("mod", "stable", 1, 0).name)
        except Exception as e:  # surfaced by the assertion below
            errors.append(e)

    threads = [threading.Thread(target=lookup) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert results == ["Client JAR"] * 120


def test_in_memory_store_shares_one_database():
    store = SqliteEntityStore(":memory:", pool_size=2, pool_timeout=1.0, seed_defaults=True)
    store.initialize()
    try:
        found = []

        def lookup():
            found.append(store.find_repository("mod"))

        with store._pool.connection():
            worker = threading.Thread(target=lookup)
            worker.start()
        worker.join()

        assert [r.id for r in found] == ["mod"]
        assert store.list_channel_ids("mod") == ["nightly", "snapshot", "stable"]
    finally:
        store.close()


def test_in_memory_store_is_gone_after_close():
    store = SqliteEntityStore(":memory:")
    store.initialize()
    store.close()

    with pytest.raises(Unavailable):
        store.find_repository("mod")


def test_connection_is_closed_when_setup_fails(db_path, monkeypatch):
    opened = []

    class BrokenConnection:
        row_factory = None
        closed = False

        def execute(self, sql, *params):
            raise sqlite3.OperationalError("disk I/O error")

        def close(self):
            self.closed = True

    def connect(*args, **kwargs):
        conn = BrokenConnection()
        opened.append(conn)
        return conn

    monkeypatch.setattr(sqlite3, "connect", connect)
    pool = ConnectionPool(db_path, size=1, timeout=0.05)

    with pytest.raises(Unavailable, match="disk I/O error"):
        with pool.connection():
            pass

    assert len(opened) == 1
    assert opened[0].closed
