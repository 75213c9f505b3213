"""Durable key-value store backed by SQLite.

Holds the assistant transcript and the last-active timestamp. Every call
catches and logs its own errors; callers never see an exception from here.
Keys are written independently, so a failure between two writes can leave
them out of step.
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from src.utils.logger_config import get_logger

logger = get_logger(__name__)


class LocalStore:
    """String key-value store persisted across process restarts."""

    def __init__(self, db_path: str = "./data/local_store.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self) -> None:
        try:
            with sqlite3.connect(str(self.db_path)) as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error initializing local store at {self.db_path}: {e}")

    def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Args:
            key: Storage key

        Returns:
            Stored string, or None if missing or unreadable
        """
        try:
            with sqlite3.connect(str(self.db_path)) as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
            return row[0] if row else None
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error reading key '{key}' from local store: {e}")
            return None

    def set(self, key: str, value: str) -> bool:
        """
        Write a value, replacing any previous one.

        Returns:
            True if the write was committed
        """
        try:
            with sqlite3.connect(str(self.db_path)) as conn:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, datetime.now().isoformat()),
                )
            return True
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error writing key '{key}' to local store: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Remove a key. Missing keys are not an error."""
        try:
            with sqlite3.connect(str(self.db_path)) as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            return True
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error deleting key '{key}' from local store: {e}")
            return False
