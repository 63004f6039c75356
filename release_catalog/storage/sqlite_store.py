"""
SQLite implementation of the entity store.

Every key is scoped to its parent, so each table carries the full path of its
ancestors and lookups join the whole chain. All values are bound with ``?``
placeholders; nothing from a request is ever formatted into SQL text.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from release_catalog.domain.errors import Corrupt, Unavailable
from release_catalog.domain.models import (
    ArtifactKind,
    ArtifactRecord,
    ChannelRecord,
    ReleaseRecord,
    RepositoryRecord,
    UnknownArtifactKind,
)
from release_catalog.storage.entity_store import EntityStore
from release_catalog.storage.pool import ConnectionPool

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS repositories (
    id              TEXT NOT NULL PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS channels (
    repository_id   TEXT NOT NULL,
    id              TEXT NOT NULL,
    name            TEXT,
    PRIMARY KEY (repository_id, id),
    FOREIGN KEY (repository_id) REFERENCES repositories (id)
);

CREATE TABLE IF NOT EXISTS releases (
    repository_id   TEXT NOT NULL,
    channel_id      TEXT NOT NULL,
    id              INTEGER NOT NULL,
    name            TEXT NOT NULL,
    created_at      INTEGER NOT NULL,
    PRIMARY KEY (repository_id, channel_id, id),
    FOREIGN KEY (repository_id, channel_id) REFERENCES channels (repository_id, id)
);

CREATE TABLE IF NOT EXISTS artifacts (
    repository_id   TEXT NOT NULL,
    channel_id      TEXT NOT NULL,
    release_id      INTEGER NOT NULL,
    id              INTEGER NOT NULL,
    name            TEXT NOT NULL,
    path            TEXT NOT NULL,
    kind            INTEGER NOT NULL,
    PRIMARY KEY (repository_id, channel_id, release_id, id),
    FOREIGN KEY (repository_id, channel_id, release_id)
        REFERENCES releases (repository_id, channel_id, id)
);
"""

# Repositories and channels the publishing side expects to exist.
DEFAULT_REPOSITORIES: Tuple[str, ...] = ("mod", "updater")
DEFAULT_CHANNELS: Tuple[Tuple[str, str, Optional[str]], ...] = (
    ("mod", "stable", "Stable"),
    ("mod", "snapshot", "Snapshot"),
    ("mod", "nightly", "Nightly"),
    ("updater", "release", "Release"),
)

_FIND_REPOSITORY = """
    SELECT r.id
    FROM repositories AS r
    WHERE r.id = ?
"""

_FIND_CHANNEL = """
    SELECT c.id, c.repository_id, c.name
    FROM channels AS c
    INNER JOIN repositories AS r ON r.id = c.repository_id
    WHERE r.id = ? AND c.id = ?
"""

_FIND_RELEASE = """
    SELECT rel.id, rel.repository_id, rel.channel_id, rel.name, rel.created_at
    FROM releases AS rel
    INNER JOIN channels AS c
        ON c.repository_id = rel.repository_id AND c.id = rel.channel_id
    INNER JOIN repositories AS r ON r.id = c.repository_id
    WHERE r.id = ? AND c.id = ? AND rel.id = ?
"""

_FIND_ARTIFACT = """
    SELECT a.id, a.repository_id, a.channel_id, a.release_id, a.name, a.path, a.kind
    FROM artifacts AS a
    INNER JOIN releases AS rel
        ON rel.repository_id = a.repository_id
        AND rel.channel_id = a.channel_id
        AND rel.id = a.release_id
    INNER JOIN channels AS c
        ON c.repository_id = rel.repository_id AND c.id = rel.channel_id
    INNER JOIN repositories AS r ON r.id = c.repository_id
    WHERE r.id = ? AND c.id = ? AND rel.id = ? AND a.id = ?
"""

_LIST_CHANNEL_IDS = "SELECT id FROM channels WHERE repository_id = ? ORDER BY id ASC"

_LIST_RELEASE_IDS = """
    SELECT id FROM releases
    WHERE repository_id = ? AND channel_id = ?
    ORDER BY id ASC
"""

_LIST_ARTIFACT_IDS = """
    SELECT id FROM artifacts
    WHERE repository_id = ? AND channel_id = ? AND release_id = ?
    ORDER BY id ASC
"""


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class SqliteEntityStore(EntityStore):
    def __init__(
        self,
        db_path: Path,
        pool_size: int = 4,
        pool_timeout: float = 5.0,
        seed_defaults: bool = False,
    ):
        self.db_path = Path(db_path)
        self.seed_defaults = seed_defaults
        self._pool = ConnectionPool(self.db_path, size=pool_size, timeout=pool_timeout)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Create the schema if needed and, optionally, the default repositories."""
        if not self._pool.in_memory:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise Unavailable(f"could not create database directory: {e}") from e

        logger.info(f"Initializing catalog database at {self.db_path}")
        with self._pool.connection() as conn:
            try:
                conn.executescript(SCHEMA)
                if self.seed_defaults:
                    conn.executemany(
                        "INSERT OR IGNORE INTO repositories (id) VALUES (?)",
                        [(r,) for r in DEFAULT_REPOSITORIES],
                    )
                    conn.executemany(
                        "INSERT OR IGNORE INTO channels (repository_id, id, name) VALUES (?, ?, ?)",
                        DEFAULT_CHANNELS,
                    )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Failed to initialize database {self.db_path}: {e}", exc_info=True)
                raise Unavailable(f"could not initialize database: {e}") from e

    def close(self) -> None:
        self._pool.close()

    def ping(self) -> None:
        self._fetch_one("SELECT 1", ())

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    def _fetch_one(self, sql: str, params: Sequence[Any]) -> Optional[sqlite3.Row]:
        with self._pool.connection() as conn:
            try:
                return conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                logger.error(f"Database error running lookup with {tuple(params)}: {e}")
                raise Unavailable(f"database query failed: {e}") from e

    def _fetch_all(self, sql: str, params: Sequence[Any]) -> List[sqlite3.Row]:
        with self._pool.connection() as conn:
            try:
                return conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.error(f"Database error listing children of {tuple(params)}: {e}")
                raise Unavailable(f"database query failed: {e}") from e

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_repository(self, repository_id: str) -> Optional[RepositoryRecord]:
        logger.debug(f"Querying repository {repository_id!r}")
        row = self._fetch_one(_FIND_REPOSITORY, (repository_id,))
        if row is None:
            return None
        try:
            return RepositoryRecord(id=row["id"])
        except ValidationError as e:
            raise Corrupt(f"repository row {repository_id!r} is malformed: {e}") from e

    def find_channel(self, repository_id: str, channel_id: str) -> Optional[ChannelRecord]:
        logger.debug(f"Querying channel {repository_id}/{channel_id}")
        row = self._fetch_one(_FIND_CHANNEL, (repository_id, channel_id))
        if row is None:
            return None
        try:
            return ChannelRecord(
                id=row["id"],
                repository_id=row["repository_id"],
                name=row["name"],
            )
        except ValidationError as e:
            raise Corrupt(f"channel row {repository_id}/{channel_id} is malformed: {e}") from e

    def find_release(
        self, repository_id: str, channel_id: str, release_id: int
    ) -> Optional[ReleaseRecord]:
        logger.debug(f"Querying release {repository_id}/{channel_id}/{release_id}")
        row = self._fetch_one(_FIND_RELEASE, (repository_id, channel_id, release_id))
        if row is None:
            return None
        try:
            return ReleaseRecord(
                id=row["id"],
                repository_id=row["repository_id"],
                channel_id=row["channel_id"],
                name=row["name"],
                created_at=row["created_at"],
            )
        except ValidationError as e:
            raise Corrupt(
                f"release row {repository_id}/{channel_id}/{release_id} is malformed: {e}"
            ) from e

    def find_artifact(
        self, repository_id: str, channel_id: str, release_id: int, artifact_id: int
    ) -> Optional[ArtifactRecord]:
        path = f"{repository_id}/{channel_id}/{release_id}/{artifact_id}"
        logger.debug(f"Querying artifact {path}")
        row = self._fetch_one(
            _FIND_ARTIFACT, (repository_id, channel_id, release_id, artifact_id)
        )
        if row is None:
            return None
        try:
            kind = ArtifactKind.from_code(row["kind"])
            return ArtifactRecord(
                id=row["id"],
                repository_id=row["repository_id"],
                channel_id=row["channel_id"],
                release_id=row["release_id"],
                name=row["name"],
                path=row["path"],
                kind=kind,
            )
        except UnknownArtifactKind as e:
            raise Corrupt(f"artifact row {path} has {e}") from e
        except ValidationError as e:
            raise Corrupt(f"artifact row {path} is malformed: {e}") from e

    # ------------------------------------------------------------------
    # Child listings
    # ------------------------------------------------------------------

    def list_channel_ids(self, repository_id: str) -> List[str]:
        rows = self._fetch_all(_LIST_CHANNEL_IDS, (repository_id,))
        ids = [row["id"] for row in rows]
        for value in ids:
            if not isinstance(value, str) or value == "":
                raise Corrupt(f"repository {repository_id!r} has channel with invalid id {value!r}")
        return ids

    def list_release_ids(self, repository_id: str, channel_id: str) -> List[int]:
        rows = self._fetch_all(_LIST_RELEASE_IDS, (repository_id, channel_id))
        ids = [row["id"] for row in rows]
        for value in ids:
            if not _is_int(value):
                raise Corrupt(
                    f"channel {repository_id}/{channel_id} has release with invalid id {value!r}"
                )
        return ids

    def list_artifact_ids(
        self, repository_id: str, channel_id: str, release_id: int
    ) -> List[int]:
        rows = self._fetch_all(_LIST_ARTIFACT_IDS, (repository_id, channel_id, release_id))
        ids = [row["id"] for row in rows]
        for value in ids:
            if not _is_int(value):
                raise Corrupt(
                    f"release {repository_id}/{channel_id}/{release_id} has artifact "
                    f"with invalid id {value!r}"
                )
        return ids
