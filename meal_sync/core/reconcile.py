"""Reconciliation: merge a remote snapshot into local state, last writer wins per record.

One merge rule serves all three collections.  Records are indexed by a
per-collection key (recipe id, (date, slot) for plan cells, (date, profile)
for water cells):

1. every current local record is stamped provenance 'local';
2. every remote record overwrites or inserts at its key, stamped 'cloud'.

Local records the remote has never seen survive untouched.  Applying the
same remote snapshot twice gives the same result as applying it once.

A pass fetches all three tables concurrently and either adopts all of them
or none.  Passes are numbered; a pass that finishes after a newer pass has
already committed is discarded instead of overwriting fresher state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, Hashable, Iterable

from meal_sync.core import meal_plan as mp_core, water as water_core
from meal_sync.core.errors import ConnectivityError
from meal_sync.core.remote import (
    MEAL_PLANS_TABLE, RECIPES_TABLE, WATER_TABLE,
    plan_row_from_remote, recipe_from_remote, water_row_from_remote,
)
from meal_sync.db.models import CLOUD, LOCAL, Snapshot

logger = logging.getLogger(__name__)


def recipe_key(recipe) -> str:
    return recipe.id


def plan_key(row) -> tuple:
    return (row.date, row.slot)


def water_key(row) -> tuple:
    return (row.date, row.profile)


def merge_records(local: Iterable, remote: Iterable, key: Callable[[object], Hashable]) -> list:
    """
    Deterministically merge remote records over local ones at record granularity.

    Output keeps local order; remote-only keys are appended in remote order.
    Records must be dataclasses with a provenance field.
    """
    merged: dict = {}
    for rec in local:
        merged[key(rec)] = replace(rec, provenance=LOCAL)
    for rec in remote:
        merged[key(rec)] = replace(rec, provenance=CLOUD)
    return list(merged.values())


@dataclass(frozen=True)
class RemoteRows:
    """One consistent set of translated remote records for all three collections."""
    recipes: tuple
    plan_rows: tuple
    water_rows: tuple


async def fetch_remote(remote, owner: str) -> RemoteRows:
    """Fetch all three tables concurrently and translate them.

    All three requests are allowed to settle; the first failure is then
    raised so that nothing is adopted from a partial fetch.
    """
    results = await asyncio.gather(
        remote.fetch_all(RECIPES_TABLE, owner),
        remote.fetch_all(MEAL_PLANS_TABLE, owner),
        remote.fetch_all(WATER_TABLE, owner),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    recipe_rows, plan_rows, water_rows = results
    try:
        return RemoteRows(
            recipes=tuple(recipe_from_remote(r) for r in recipe_rows),
            plan_rows=tuple(plan_row_from_remote(r) for r in plan_rows),
            water_rows=tuple(water_row_from_remote(r) for r in water_rows),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.debug("Untranslatable remote rows for owner %s", owner, exc_info=True)
        raise ConnectivityError(f"Remote returned rows in an unexpected shape: {e}") from e


def merge_snapshot(snapshot: Snapshot, remote: RemoteRows) -> Snapshot:
    """Return a new Snapshot with remote rows merged over snapshot."""
    recipes = merge_records(snapshot.recipes, remote.recipes, recipe_key)
    plan_rows = merge_records(
        mp_core.to_rows(snapshot.meal_plan, snapshot.plan_provenance), remote.plan_rows, plan_key,
    )
    water_rows = merge_records(
        water_core.to_rows(snapshot.water, snapshot.water_provenance), remote.water_rows, water_key,
    )
    meal_plan, plan_provenance = mp_core.from_rows(plan_rows)
    water, water_provenance = water_core.from_rows(water_rows)
    return Snapshot(
        recipes=tuple(recipes),
        meal_plan=meal_plan,
        water=water,
        plan_provenance=plan_provenance,
        water_provenance=water_provenance,
    )


class PassSequencer:
    """Numbers reconciliation passes so stale ones cannot overwrite newer results."""

    def __init__(self):
        self.started = 0
        self.committed = 0

    def begin(self) -> int:
        self.started += 1
        return self.started

    def may_commit(self, seq: int) -> bool:
        return seq > self.committed

    def commit(self, seq: int) -> None:
        self.committed = max(self.committed, seq)

    def is_latest(self, seq: int) -> bool:
        return seq == self.started
