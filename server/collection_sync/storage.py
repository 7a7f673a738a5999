"""
Local persistent storage

A device-scoped key-value string store backed by SQLite. Guest collections and
the identity hint live here.
"""

import logging
import os
import sqlite3
import threading
from typing import Optional

import config
from error_handling import MarketplaceError

logger = logging.getLogger(__name__)


class LocalStorageError(MarketplaceError):
    """Raised when the SQLite file cannot be read or written"""

    def __init__(self, message: str, key: str = None):
        super().__init__(message, "LOCAL_STORAGE_ERROR", {"key": key} if key else {})


class LocalStorage:
    """Key-value string storage shared by the whole process"""

    def __init__(self, path: str = None):
        self.path = path or config.LOCAL_STORAGE_PATH
        if self.path != ":memory:":
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        # Storage calls run on worker threads; the lock serializes them on one connection
        self._con = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.Lock()
        self._ensure_table()

    def _ensure_table(self):
        with self._lock, self._con:
            self._con.execute(
                """
                CREATE TABLE IF NOT EXISTS local_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """
            )

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                row = self._con.execute(
                    "SELECT value FROM local_storage WHERE key=?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise LocalStorageError(f"Failed to read '{key}': {e}", key) from e
        return row[0] if row else None

    def set_item(self, key: str, value: str):
        try:
            with self._lock, self._con:
                self._con.execute(
                    """
                    INSERT INTO local_storage (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                    (key, value),
                )
        except sqlite3.Error as e:
            raise LocalStorageError(f"Failed to write '{key}': {e}", key) from e

    def remove_item(self, key: str):
        try:
            with self._lock, self._con:
                self._con.execute("DELETE FROM local_storage WHERE key=?", (key,))
        except sqlite3.Error as e:
            raise LocalStorageError(f"Failed to remove '{key}': {e}", key) from e

    def close(self):
        with self._lock:
            self._con.close()
        logger.debug(f"Closed local storage at {self.path}")
