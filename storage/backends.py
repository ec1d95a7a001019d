"""
Single-slot persistence backends for the secret cache.

Each backend stores exactly one binary blob (the encrypted bundle) and
supports get / replace / clear. Backends know nothing about encryption.
"""

import os
import sqlite3
import logging
from pathlib import Path
from typing import Optional

from exceptions import PersistenceError

logger = logging.getLogger(__name__)


class SqliteStore:
    """Stores the blob in a one-row SQLite table."""

    SLOT_ID = 1

    _CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS cache (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        data BLOB NOT NULL
    )
    """

    _SELECT = "SELECT data FROM cache WHERE id = ?"

    _UPSERT = """
    INSERT INTO cache (id, data) VALUES (?, ?)
    ON CONFLICT(id) DO UPDATE SET data = excluded.data
    """

    _DELETE_ALL = "DELETE FROM cache"

    def __init__(self, path: Path):
        """
        Initialize the store.

        Args:
            path: Path to the SQLite database file
        """
        self.path = Path(path)
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Open (or create) the database and the cache table."""
        if self._conn is not None:
            return
        try:
            # The owning cache serializes access, so the connection may
            # be used from whichever thread holds its write lock.
            self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
            with self._conn:
                self._conn.execute(self._CREATE_TABLE)
        except sqlite3.Error as e:
            self._conn = None
            raise PersistenceError(f"Could not open cache database {self.path}: {e}") from e
        logger.debug(f"Opened cache database {self.path}")

    def get(self) -> Optional[bytes]:
        """Return the stored blob, or None if the slot is empty."""
        conn = self._require_open()
        try:
            row = conn.execute(self._SELECT, (self.SLOT_ID,)).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read cache: {e}") from e
        return bytes(row[0]) if row else None

    def replace(self, blob: bytes) -> None:
        """Overwrite the slot with blob."""
        conn = self._require_open()
        try:
            with conn:
                conn.execute(self._UPSERT, (self.SLOT_ID, blob))
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not write cache: {e}") from e

    def clear(self) -> None:
        """Delete the stored blob. No-op when already empty."""
        conn = self._require_open()
        try:
            with conn:
                conn.execute(self._DELETE_ALL)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not clear cache: {e}") from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def remove(self) -> None:
        """Close and delete the database file."""
        self.close()
        self.path.unlink(missing_ok=True)

    def _require_open(self) -> sqlite3.Connection:
        if self._conn is None:
            raise PersistenceError("Cache database is not open")
        return self._conn


class FileStore:
    """Stores the blob as a single binary file."""

    def __init__(self, path: Path):
        """
        Initialize the store.

        Args:
            path: Path to the cache file
        """
        self.path = Path(path)
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not create cache directory: {e}") from e
        self._open = True

    def get(self) -> Optional[bytes]:
        self._require_open()
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Could not read cache file {self.path}: {e}") from e

    def replace(self, blob: bytes) -> None:
        """Write blob to a temp file, then atomically swap it in."""
        self._require_open()
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.write_bytes(blob)
            os.replace(tmp_path, self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Could not write cache file {self.path}: {e}") from e

    def clear(self) -> None:
        self._require_open()
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not delete cache file {self.path}: {e}") from e

    def close(self) -> None:
        self._open = False

    def remove(self) -> None:
        self.close()
        self.path.unlink(missing_ok=True)

    def _require_open(self) -> None:
        if not self._open:
            raise PersistenceError("Cache file store is not open")


def create_store(backend: str, path: Path):
    """Build the store for a backend name ("sqlite" or "file")."""
    if backend == "sqlite":
        return SqliteStore(path)
    if backend == "file":
        return FileStore(path)
    raise ValueError(f"Unsupported cache backend: {backend}")
