"""Durable key-value persistence for the named collections.

Each collection (recipes, mealplan, water_intake) and the remote configuration
is stored as one JSON document under its own key.  Writes replace the whole
document.  When the database cannot be reached the store drops into ephemeral
mode: reads return None and writes are ignored for the rest of the session.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

from meal_sync.core.errors import StorageUnavailable
from meal_sync.db.database import get_connection, init_db

logger = logging.getLogger(__name__)

RECIPES_KEY = "recipes"
MEAL_PLAN_KEY = "mealplan"
WATER_KEY = "water_intake"
REMOTE_CONFIG_KEY = "remote_config"


class LocalStore:
    """get/put over the kv_store table, degrading to a no-op store on failure."""

    def __init__(self, db_path: Path = None):
        self._db_path = db_path
        self.available = True
        try:
            init_db(db_path)
        except StorageUnavailable as e:
            self._degrade(e)

    @classmethod
    def ephemeral(cls) -> "LocalStore":
        """A store that never persists anything."""
        store = cls.__new__(cls)
        store._db_path = None
        store.available = False
        return store

    def _degrade(self, error: Exception) -> None:
        if self.available:
            logger.warning("Local storage unavailable, continuing without persistence: %s", error)
        self.available = False

    def get(self, key: str) -> Optional[Any]:
        """Return the decoded value stored under key, or None if absent."""
        if not self.available:
            return None
        try:
            conn = get_connection(self._db_path)
            try:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except StorageUnavailable as e:
            self._degrade(e)
            return None
        except sqlite3.Error as e:  # vanished or locked file
            self._degrade(StorageUnavailable(str(e)))
            return None
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable value stored under %r", key)
            return None

    def put(self, key: str, value: Any) -> bool:
        """Replace the value under key. Returns False when the write was ignored."""
        return self.put_many({key: value})

    def put_many(self, items: dict) -> bool:
        """Replace every key in items inside one transaction: all are written or none.

        Returns False when the write was ignored.
        """
        if not self.available:
            return False
        rows = [(key, json.dumps(value, ensure_ascii=False, separators=(",", ":")))
                for key, value in items.items()]
        try:
            conn = get_connection(self._db_path)
            try:
                for row in rows:
                    conn.execute(
                        """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                           ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at""",
                        row,
                    )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
            finally:
                conn.close()
        except StorageUnavailable as e:
            self._degrade(e)
            return False
        except sqlite3.Error as e:
            self._degrade(StorageUnavailable(str(e)))
            return False
        return True
