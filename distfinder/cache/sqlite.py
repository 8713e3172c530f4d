"""
SQLite-backed look-aside cache.

Persists index fragments between runs so that re-analyzing an unchanged
distribution skips its traversal entirely. Fragments are stored as JSON in
the same shape JsonFileSink writes.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from distfinder.cache.base import LookasideCache
from distfinder.checksum.models import ChecksumIndex, ChecksumType, index_from_dict, index_to_dict
from distfinder.core.exceptions import CacheError
from distfinder.core.logging import get_logger

logger = get_logger(__name__)


class SQLiteCache(LookasideCache):
    """
    Look-aside cache stored in a single SQLite file.

    A new connection is opened per operation, so one instance may be shared
    between runs on different threads.
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS fragments (
        algorithm TEXT NOT NULL,
        key TEXT NOT NULL,
        fragment TEXT NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (algorithm, key)
    );
    """

    def __init__(self, db_path: Path) -> None:
        """
        Initialize the cache, creating the database when needed.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._init_schema()

    def _init_schema(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connection() as conn:
                conn.executescript(self.SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise CacheError(f"Cannot open cache database {self.db_path}: {e}") from e

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def get(self, checksum_type: ChecksumType, key: str) -> Optional[ChecksumIndex]:
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT fragment FROM fragments WHERE algorithm = ? AND key = ?",
                    (checksum_type.value, key),
                ).fetchone()
        except sqlite3.Error as e:
            raise CacheError(f"Cache lookup failed for {checksum_type}:{key}: {e}") from e

        if row is None:
            return None
        try:
            return index_from_dict(json.loads(row["fragment"]))
        except (ValueError, KeyError, TypeError) as e:
            raise CacheError(f"Corrupt cache entry for {checksum_type}:{key}") from e

    def put(self, checksum_type: ChecksumType, key: str, fragment: ChecksumIndex) -> None:
        payload = json.dumps(index_to_dict(fragment))
        try:
            with self._connection() as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO fragments (algorithm, key, fragment, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        checksum_type.value,
                        key,
                        payload,
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            raise CacheError(f"Cache write failed for {checksum_type}:{key}: {e}") from e
        logger.debug("Cached fragment", algorithm=checksum_type.value, key=key, values=len(fragment))

    def count(self, checksum_type: Optional[ChecksumType] = None) -> int:
        """Number of stored fragments, optionally for one checksum type."""
        with self._connection() as conn:
            if checksum_type is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM fragments").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM fragments WHERE algorithm = ?",
                    (checksum_type.value,),
                ).fetchone()
        return int(row["n"])
