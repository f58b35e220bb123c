"""SQLite file location, connection management and schema initialization.

All durable state lives in a single-file database at ~/.meal_sync/meal_sync.db.
The schema is one key-value table: every collection is stored as a single
JSON document under its own key and is always replaced whole.
"""

import os
import sqlite3
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path

from meal_sync.core.errors import StorageUnavailable

_db_path_override: ContextVar["Path | None"] = ContextVar("_db_path_override", default=None)


@contextmanager
def override_db_path(path: "Path"):
    """Context manager to override the DB path for the current async task/thread.

    Example:
        with override_db_path(tmp_path / "scratch.db"):
            store = LocalStore()
    """
    token = _db_path_override.set(path)
    try:
        yield
    finally:
        _db_path_override.reset(token)


def get_db_path() -> Path:
    """Return the active DB path.

    Priority order:
    1. ContextVar override
    2. DB_PATH environment variable (used by Docker / local dev / tests)
    3. Default ~/.meal_sync/meal_sync.db
    """
    override = _db_path_override.get()
    if override is not None:
        return override
    env_path = os.environ.get("DB_PATH")
    if env_path:
        p = Path(env_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    db_dir = Path.home() / ".meal_sync"
    db_dir.mkdir(exist_ok=True)
    return db_dir / "meal_sync.db"


def get_connection(db_path: Path = None) -> sqlite3.Connection:
    """Return a new SQLite connection with Row factory.

    Raises StorageUnavailable when the medium cannot be reached.
    Callers are responsible for closing the connection when done.
    """
    try:
        if db_path is None:
            db_path = get_db_path()
        conn = sqlite3.connect(str(db_path))
    except (sqlite3.Error, OSError) as e:
        raise StorageUnavailable(f"Cannot open local database {db_path}: {e}") from e
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Path = None) -> None:
    """Create the key-value table if it doesn't already exist."""
    conn = get_connection(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key        TEXT PRIMARY KEY,
                value      TEXT NOT NULL,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            );
        """)
        conn.commit()
    except sqlite3.Error as e:
        raise StorageUnavailable(f"Cannot initialize local database: {e}") from e
    finally:
        conn.close()
