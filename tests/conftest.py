"""Shared test fixtures for the release catalog tests."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from release_catalog.core.config import Settings
from release_catalog.domain.models import (
    ArtifactKind,
    ArtifactRecord,
    ChannelRecord,
    ReleaseRecord,
    RepositoryRecord,
)
from release_catalog.storage.entity_store import EntityStore
from release_catalog.storage.sqlite_store import SqliteEntityStore

# --- Raw row helpers ---
# Plain sqlite3 connections leave foreign keys off, so tests can also write
# rows a well-behaved publisher never would.


def insert_rows(db_path: Path, table: str, rows: List[tuple]) -> None:
    placeholders = ", ".join("?" for _ in rows[0])
    with sqlite3.connect(str(db_path)) as conn:
        conn.executemany(f"INSERT INTO {table} VALUES ({placeholders})", rows)
    conn.close()


def seed_catalog(db_path: Path) -> None:
    """
    Two repositories:

    mod
      nightly   (no releases)
      snapshot  release 0 "7.1 Prerelease 2a" with 2 artifacts
      stable    release 1 "7.1" with 2 artifacts, release 2 "7.2" with none
    updater
      release   (no releases)

    Rows are inserted out of id order on purpose.
    """
    insert_rows(db_path, "repositories", [("updater",), ("mod",)])
    insert_rows(
        db_path,
        "channels",
        [
            ("mod", "stable", "Stable"),
            ("mod", "snapshot", None),
            ("mod", "nightly", "Nightly"),
            ("updater", "release", None),
        ],
    )
    insert_rows(
        db_path,
        "releases",
        [
            ("mod", "stable", 2, "7.2", 1717200000),
            ("mod", "stable", 1, "7.1", 1712400000),
            ("mod", "snapshot", 0, "7.1 Prerelease 2a", 1711000000),
        ],
    )
    insert_rows(
        db_path,
        "artifacts",
        [
            ("mod", "stable", 1, 1, "Manifest", "/downloads/stable/7.1/manifest.json", 2),
            ("mod", "stable", 1, 0, "Client JAR", "/downloads/stable/7.1/client.jar", 0),
            ("mod", "snapshot", 0, 0, "Client JAR", "/downloads/snapshot/7.1pre2a/client.jar", 0),
            ("mod", "snapshot", 0, 1, "Server JAR", "/downloads/snapshot/7.1pre2a/server.jar", 1),
        ],
    )


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "releases.db3"


@pytest.fixture
def empty_store(db_path: Path):
    store = SqliteEntityStore(db_path, pool_size=2, pool_timeout=1.0)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def store(empty_store: SqliteEntityStore, db_path: Path) -> SqliteEntityStore:
    seed_catalog(db_path)
    return empty_store


@pytest.fixture
def settings(tmp_path: Path, db_path: Path) -> Settings:
    files_dir = tmp_path / "files"
    files_dir.mkdir()
    return Settings(db_path=db_path, files_dir=files_dir, log_level="DEBUG")


# --- In-memory store ---


class FakeStore(EntityStore):
    """
    Dictionary-backed store.

    Listings are derived from the stored keys unless a test overrides them,
    which is how inconsistent parent/child data is simulated.
    """

    def __init__(self) -> None:
        self.repositories: Dict[str, RepositoryRecord] = {}
        self.channels: Dict[Tuple[str, str], ChannelRecord] = {}
        self.releases: Dict[Tuple[str, str, int], ReleaseRecord] = {}
        self.artifacts: Dict[Tuple[str, str, int, int], ArtifactRecord] = {}
        self.listings: Dict[tuple, list] = {}
        self.calls: List[str] = []
        self.failure: Optional[Exception] = None

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if self.failure is not None:
            raise self.failure

    def initialize(self) -> None:
        self._call("initialize")

    def close(self) -> None:
        pass

    def ping(self) -> None:
        self._call("ping")

    def find_repository(self, repository_id):
        self._call("find_repository")
        return self.repositories.get(repository_id)

    def find_channel(self, repository_id, channel_id):
        self._call("find_channel")
        return self.channels.get((repository_id, channel_id))

    def find_release(self, repository_id, channel_id, release_id):
        self._call("find_release")
        return self.releases.get((repository_id, channel_id, release_id))

    def find_artifact(self, repository_id, channel_id, release_id, artifact_id):
        self._call("find_artifact")
        return self.artifacts.get((repository_id, channel_id, release_id, artifact_id))

    def _list(self, parent: tuple, table: dict) -> list:
        if parent in self.listings:
            return list(self.listings[parent])
        return sorted(key[-1] for key in table if key[:-1] == parent)

    def list_channel_ids(self, repository_id):
        self._call("list_channel_ids")
        return self._list((repository_id,), self.channels)

    def list_release_ids(self, repository_id, channel_id):
        self._call("list_release_ids")
        return self._list((repository_id, channel_id), self.releases)

    def list_artifact_ids(self, repository_id, channel_id, release_id):
        self._call("list_artifact_ids")
        return self._list((repository_id, channel_id, release_id), self.artifacts)

    # --- builders ---

    def add_repository(self, repository_id: str) -> None:
        self.repositories[repository_id] = RepositoryRecord(id=repository_id)

    def add_channel(self, repository_id: str, channel_id: str, name: Optional[str] = None) -> None:
        self.channels[(repository_id, channel_id)] = ChannelRecord(
            id=channel_id, repository_id=repository_id, name=name
        )

    def add_release(self, repository_id: str, channel_id: str, release_id: int, name: str) -> None:
        self.releases[(repository_id, channel_id, release_id)] = ReleaseRecord(
            id=release_id,
            repository_id=repository_id,
            channel_id=channel_id,
            name=name,
            created_at=0,
        )

    def add_artifact(
        self,
        repository_id: str,
        channel_id: str,
        release_id: int,
        artifact_id: int,
        kind: ArtifactKind = ArtifactKind.CLIENT_ARCHIVE,
    ) -> None:
        self.artifacts[(repository_id, channel_id, release_id, artifact_id)] = ArtifactRecord(
            id=artifact_id,
            repository_id=repository_id,
            channel_id=channel_id,
            release_id=release_id,
            name=f"artifact {artifact_id}",
            path=f"/downloads/{channel_id}/{release_id}/{artifact_id}.bin",
            kind=kind,
        )


@pytest.fixture
def fake_store() -> FakeStore:
    store = FakeStore()
    store.add_repository("mod")
    store.add_channel("mod", "stable", "Stable")
    store.add_release("mod", "stable", 1, "7.1")
    store.add_artifact("mod", "stable", 1, 0)
    store.add_artifact("mod", "stable", 1, 1, ArtifactKind.MANIFEST)
    return store
