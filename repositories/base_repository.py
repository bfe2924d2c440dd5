"""
Shared sqlite plumbing for repositories.
"""

import sqlite3
from contextlib import contextmanager

from infrastructure.schema_manager import SchemaManager

# Seconds a write waits on a locked database before failing
BUSY_TIMEOUT = 5.0


class BaseRepository:
    """Opens one short-lived connection per operation on `db_path`."""

    # Paths migrated by this process
    _migrated_paths: set[str] = set()

    def __init__(self, db_path: str):
        self.db_path = db_path
        if db_path not in BaseRepository._migrated_paths:
            SchemaManager(db_path).initialize()
            BaseRepository._migrated_paths.add(db_path)

    @contextmanager
    def connection(self):
        """Commit on success, roll back on error, always close."""
        conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def fetch_one(self, query: str, params: tuple = ()) -> sqlite3.Row | None:
        with self.connection() as conn:
            return conn.execute(query, params).fetchone()

    def fetch_all(self, query: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self.connection() as conn:
            return conn.execute(query, params).fetchall()

    def execute(self, query: str, params: tuple = ()) -> None:
        with self.connection() as conn:
            conn.execute(query, params)
