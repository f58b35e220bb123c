"""Sync status tracker: an observable finite-state indicator.

States and allowed transitions:

    locked      -> local-only, syncing, error
    local-only  -> syncing
    syncing     -> syncing, synced, error
    synced      -> syncing, error, local-only
    error       -> syncing, synced, error, local-only

'locked' is the state before the first authentication event.  'local-only'
means no remote store is configured.  Listeners are called with
(state, detail) after every transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

LOCKED = "locked"
LOCAL_ONLY = "local-only"
SYNCING = "syncing"
SYNCED = "synced"
ERROR = "error"

_TRANSITIONS = {
    LOCKED: {LOCAL_ONLY, SYNCING, ERROR},
    LOCAL_ONLY: {SYNCING},
    SYNCING: {SYNCING, SYNCED, ERROR},
    SYNCED: {SYNCING, ERROR, LOCAL_ONLY},
    ERROR: {SYNCING, SYNCED, ERROR, LOCAL_ONLY},
}

Listener = Callable[[str, Optional[str]], None]


@dataclass(frozen=True)
class StatusReport:
    state: str
    detail: Optional[str] = None


class SyncStatus:
    def __init__(self):
        self.state = LOCKED
        self.detail: Optional[str] = None
        self._listeners: List[Listener] = []

    def subscribe(self, callback: Listener) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: Listener) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    def can_transition(self, state: str) -> bool:
        return state in _TRANSITIONS.get(self.state, ())

    def transition(self, state: str, detail: Optional[str] = None) -> None:
        """Move to state, notifying listeners. Raises ValueError on an illegal move."""
        if state not in _TRANSITIONS:
            raise ValueError(f"Unknown sync state: {state!r}")
        if not self.can_transition(state):
            raise ValueError(f"Illegal sync transition {self.state} -> {state}")
        self.state = state
        self.detail = detail
        for cb in list(self._listeners):
            try:
                cb(state, detail)
            except Exception:
                logger.exception("Sync status listener %r failed", cb)

    def report(self) -> StatusReport:
        return StatusReport(state=self.state, detail=self.detail)
