"""
SQLite connection pooling on top of SQLAlchemy's pool classes.

File databases use a ``QueuePool`` of at most ``size`` connections; a caller
that cannot get one within ``timeout`` seconds gets ``Unavailable``.

An in-memory database only exists inside the connection that created it, so
``:memory:`` paths share a single connection through ``StaticPool`` and callers
take turns on it.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

import sqlalchemy.exc
from sqlalchemy.pool import Pool, QueuePool, StaticPool

from release_catalog.domain.errors import Unavailable

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


def is_memory_path(db_path: Union[str, Path]) -> bool:
    return str(db_path) == MEMORY_PATH


class ConnectionPool:
    def __init__(self, db_path: Union[str, Path], size: int = 4, timeout: float = 5.0):
        if size < 1:
            raise ValueError("pool size must be at least 1")
        self.db_path = db_path
        self.size = size
        self.timeout = timeout
        self.in_memory = is_memory_path(db_path)
        self._closed = False

        if self.in_memory:
            self._pool: Pool = StaticPool(creator=self._open)
            self._turn = threading.Lock()
        else:
            self._pool = QueuePool(
                creator=self._open,
                pool_size=size,
                max_overflow=0,
                timeout=timeout,
            )

    def _open(self) -> sqlite3.Connection:
        logger.debug(f"Opening SQLite connection to {self.db_path}")
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout,
            check_same_thread=False,
        )
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _checkout(self):
        if self._closed:
            raise Unavailable("connection pool is closed")
        try:
            return self._pool.connect()
        except sqlalchemy.exc.TimeoutError as e:
            raise Unavailable(
                f"no database connection became free within {self.timeout} seconds"
            ) from e
        except sqlite3.Error as e:
            logger.error(f"Could not open database {self.db_path}: {e}")
            raise Unavailable(f"could not open database: {e}") from e

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        # The shared in-memory connection is handed to one caller at a time.
        if not self.in_memory:
            yield
            return
        if not self._turn.acquire(timeout=self.timeout):
            raise Unavailable(
                f"no database connection became free within {self.timeout} seconds"
            )
        try:
            yield
        finally:
            self._turn.release()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Borrow a connection for the duration of the ``with`` block."""
        with self._exclusive():
            proxy = self._checkout()
            try:
                yield proxy.driver_connection
            finally:
                proxy.close()

    def close(self) -> None:
        self._closed = True
        self._pool.dispose()
