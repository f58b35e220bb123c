"""Key-value settings storage backed by the local store.

Known keys:
    remote_config: {"endpoint": ..., "credential": ...} for the remote store.
                   Falls back to REMOTE_URL / REMOTE_KEY from the environment
                   when nothing has been stored.
"""

import os
from typing import Any, Optional

from meal_sync.core.remote import is_valid_config
from meal_sync.db.local_store import REMOTE_CONFIG_KEY, LocalStore


def get_setting(store: LocalStore, key: str, default: Any = None) -> Any:
    """Return the value for a settings key, or default if not found."""
    value = store.get(key)
    return default if value is None else value


def set_setting(store: LocalStore, key: str, value: Any) -> bool:
    """Insert or update a settings key-value pair (upsert)."""
    return store.put(key, value)


def get_remote_config(store: LocalStore) -> Optional[dict]:
    """Return the stored remote config, else one built from the environment, else None."""
    stored = get_setting(store, REMOTE_CONFIG_KEY)
    if isinstance(stored, dict) and stored.get("endpoint"):
        return stored
    endpoint = os.environ.get("REMOTE_URL")
    credential = os.environ.get("REMOTE_KEY")
    if endpoint and credential:
        return {"endpoint": endpoint, "credential": credential}
    return None


def set_remote_config(store: LocalStore, endpoint: str, credential: str) -> dict:
    """Validate and persist the remote config. Raises ValueError if it is unusable."""
    if not is_valid_config(endpoint, credential):
        raise ValueError("Remote endpoint must be an http(s) URL and the credential must not be blank")
    config = {"endpoint": endpoint.strip(), "credential": credential.strip()}
    set_setting(store, REMOTE_CONFIG_KEY, config)
    return config
