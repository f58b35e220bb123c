"""Application state: the operations a UI calls, with write-through mirroring.

Every mutation is applied to memory and the local store first, so it succeeds
offline and is never rolled back.  When a remote store is configured the same
change is then mirrored to it; a failed mirror only flips the sync status to
'error' and the next successful reconciliation pass is the recovery path.

Reconciliation runs on authentication-state events (and on explicit retry),
never on local writes.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Awaitable, Callable, Optional

from meal_sync.config import get_remote_config, set_remote_config
from meal_sync.core import meal_plan as mp_core, nutrition, recipes as recipes_core, water as water_core
from meal_sync.core.errors import ConnectivityError, ConstraintError, SyncError
from meal_sync.core.reconcile import PassSequencer, fetch_remote, merge_snapshot
from meal_sync.core.remote import (
    MEAL_PLANS_TABLE, PLAN_CONFLICT_KEYS, PUBLIC_OWNER, RECIPE_CONFLICT_KEYS, RECIPES_TABLE,
    WATER_CONFLICT_KEYS, WATER_TABLE, RemoteStore,
    plan_row_to_remote, recipe_to_remote, water_row_to_remote,
)
from meal_sync.core.shopping_list import DEFAULT_WINDOW, WINDOW_CHOICES, CheckedItems, generate
from meal_sync.core.sync_status import ERROR, LOCAL_ONLY, LOCKED, SYNCED, SYNCING, StatusReport, SyncStatus
from meal_sync.db.local_store import MEAL_PLAN_KEY, RECIPES_KEY, WATER_KEY, LocalStore
from meal_sync.db.models import LOCAL, PROFILES, PlanRow, Recipe, Snapshot, WaterRow

logger = logging.getLogger(__name__)


class AppState:
    def __init__(self, store: LocalStore, status: Optional[SyncStatus] = None, transport=None):
        self.store = store
        self.status = status or SyncStatus()
        self.owner = PUBLIC_OWNER
        self.checked = CheckedItems()
        self._transport = transport
        self._sequencer = PassSequencer()
        self._snapshot = self._load()
        self.remote: Optional[RemoteStore] = RemoteStore.from_config(
            get_remote_config(store), transport=transport,
        )

    # ── Local state ──────────────────────────────────────────────────────────

    def _load(self) -> Snapshot:
        return Snapshot(
            recipes=recipes_core.recipes_from_list(self.store.get(RECIPES_KEY)),
            meal_plan=mp_core.plan_from_dict(self.store.get(MEAL_PLAN_KEY)),
            water=water_core.water_from_dict(self.store.get(WATER_KEY)),
        )

    def _commit(self, snapshot: Snapshot, *keys: str) -> None:
        """Persist the named collections of snapshot in one transaction, then expose it to readers."""
        documents = {}
        if RECIPES_KEY in keys:
            documents[RECIPES_KEY] = recipes_core.recipes_to_list(snapshot.recipes)
        if MEAL_PLAN_KEY in keys:
            documents[MEAL_PLAN_KEY] = mp_core.plan_to_dict(snapshot.meal_plan)
        if WATER_KEY in keys:
            documents[WATER_KEY] = {d: dict(day) for d, day in snapshot.water.items()}
        if documents:
            self.store.put_many(documents)
        self._snapshot = snapshot

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def recipes(self) -> tuple:
        return self._snapshot.recipes

    @property
    def meal_plan(self) -> dict:
        return self._snapshot.meal_plan

    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        return recipes_core.get(self._snapshot.recipes, recipe_id)

    def meals(self, entry_date: str, slot: str) -> list:
        return mp_core.meals(self._snapshot.meal_plan, entry_date, slot)

    def resolved_meals(self, entry_date: str, slot: str) -> list:
        return mp_core.resolve_meals(self._snapshot.meal_plan, self._snapshot.recipes, entry_date, slot)

    def water(self, entry_date: str) -> dict:
        return {p: water_core.amount(self._snapshot.water, entry_date, p) for p in PROFILES}

    # ── Mirroring ────────────────────────────────────────────────────────────

    async def _mirror(self, action: str, call: Callable[[RemoteStore], Awaitable[None]]) -> None:
        remote = self.remote
        if remote is None:
            return
        try:
            await call(remote)
        except (ConnectivityError, ConstraintError) as e:
            logger.warning("Mirroring %s failed, keeping local change: %s", action, e)
            if self.status.can_transition(ERROR):
                self.status.transition(ERROR, f"{action}: {e}")

    async def _mirror_plan_cell(self, entry_date: str, slot: str) -> None:
        row = PlanRow(date=entry_date, slot=slot, meals=tuple(self.meals(entry_date, slot)))
        owner = self.owner
        await self._mirror(
            f"meal plan {entry_date}/{slot}",
            lambda remote: remote.upsert(MEAL_PLANS_TABLE, plan_row_to_remote(row, owner), PLAN_CONFLICT_KEYS),
        )

    # ── Mutations ────────────────────────────────────────────────────────────

    async def save_recipe(self, recipe: Recipe) -> Recipe:
        """Create (fresh id when recipe.id is blank) or wholly replace a recipe."""
        if not recipe.id:
            recipe = replace(recipe, id=recipes_core.new_recipe_id())
        recipes_core.validate(recipe)
        snapshot = replace(self._snapshot, recipes=recipes_core.upsert(self._snapshot.recipes, recipe))
        self._commit(snapshot, RECIPES_KEY)
        saved = recipes_core.get(snapshot.recipes, recipe.id)
        owner = self.owner
        await self._mirror(
            f"recipe {saved.id}",
            lambda remote: remote.upsert(RECIPES_TABLE, recipe_to_remote(saved, owner), RECIPE_CONFLICT_KEYS),
        )
        return saved

    async def delete_recipe(self, recipe_id: str) -> bool:
        """Remove every plan assignment of recipe_id, then the recipe itself.

        Returns False if no such recipe existed (assignments are still cleaned up).
        """
        existed = self.get_recipe(recipe_id) is not None
        plan, touched = mp_core.cascade_delete_recipe(self._snapshot.meal_plan, recipe_id)
        if touched:
            provenance = dict(self._snapshot.plan_provenance)
            provenance.update({cell: LOCAL for cell in touched})
            self._commit(replace(self._snapshot, meal_plan=plan, plan_provenance=provenance), MEAL_PLAN_KEY)
        if existed:
            self._commit(
                replace(self._snapshot, recipes=recipes_core.remove(self._snapshot.recipes, recipe_id)),
                RECIPES_KEY,
            )

        for entry_date, slot in touched:
            await self._mirror_plan_cell(entry_date, slot)
        if existed:
            await self._mirror(f"delete recipe {recipe_id}", lambda remote: remote.delete(RECIPES_TABLE, recipe_id))
        return existed

    async def _update_cell(self, entry_date: str, slot: str, plan: dict) -> None:
        if plan is self._snapshot.meal_plan:
            return
        provenance = dict(self._snapshot.plan_provenance)
        provenance[(entry_date, slot)] = LOCAL
        self._commit(replace(self._snapshot, meal_plan=plan, plan_provenance=provenance), MEAL_PLAN_KEY)
        await self._mirror_plan_cell(entry_date, slot)

    async def assign_meal(self, entry_date: str, slot: str, recipe_id: str, profile: str) -> list:
        plan = mp_core.assign(self._snapshot.meal_plan, entry_date, slot, recipe_id, profile)
        await self._update_cell(entry_date, slot, plan)
        return self.meals(entry_date, slot)

    async def unassign_meal(self, entry_date: str, slot: str, recipe_id: str, profile: str) -> list:
        plan = mp_core.unassign(self._snapshot.meal_plan, entry_date, slot, recipe_id, profile)
        await self._update_cell(entry_date, slot, plan)
        return self.meals(entry_date, slot)

    async def adjust_water(self, entry_date: str, profile: str, delta: int) -> int:
        """Add delta (may be negative) to the day's intake for profile, never below zero."""
        water, amount = water_core.adjust(self._snapshot.water, entry_date, profile, delta)
        provenance = dict(self._snapshot.water_provenance)
        provenance[(entry_date, profile)] = LOCAL
        self._commit(replace(self._snapshot, water=water, water_provenance=provenance), WATER_KEY)
        row = WaterRow(date=entry_date, profile=profile, amount=amount)
        owner = self.owner
        await self._mirror(
            f"water {entry_date}/{profile}",
            lambda remote: remote.upsert(WATER_TABLE, water_row_to_remote(row, owner), WATER_CONFLICT_KEYS),
        )
        return amount

    # ── Grocery list ─────────────────────────────────────────────────────────

    def get_grocery_list(self, window_days: int = DEFAULT_WINDOW, today: Optional[date] = None):
        if window_days not in WINDOW_CHOICES:
            raise ValueError(f"window_days must be one of {WINDOW_CHOICES}, got {window_days}")
        return generate(self._snapshot.recipes, self._snapshot.meal_plan, window_days, today, self.checked)

    def toggle_grocery_item(self, key: str) -> bool:
        return self.checked.toggle(key)

    def clear_checked(self) -> None:
        self.checked.clear()

    # ── Nutrition ────────────────────────────────────────────────────────────

    def daily_totals(self, entry_date: str) -> dict:
        return nutrition.daily_totals(self._snapshot.meal_plan, self._snapshot.recipes, entry_date)

    def prep_for_next_day(self, entry_date: str) -> list:
        return nutrition.prep_for_next_day(self._snapshot.meal_plan, self._snapshot.recipes, entry_date)

    # ── Sync ─────────────────────────────────────────────────────────────────

    def get_sync_status(self) -> StatusReport:
        return self.status.report()

    async def configure_remote(self, endpoint: str, credential: str) -> StatusReport:
        """Store a new remote config and, once authenticated, reconcile against it."""
        config = set_remote_config(self.store, endpoint, credential)
        self.remote = RemoteStore.from_config(config, transport=self._transport)
        if self.status.state != LOCKED:
            await self.reconcile()
        return self.get_sync_status()

    async def on_auth_change(self, user_id: Optional[str]) -> bool:
        """Handle sign-in, token refresh or sign-out. Returns True if a pass committed."""
        self.owner = user_id or PUBLIC_OWNER
        if self.remote is None:
            if self.status.state != LOCAL_ONLY:
                self.status.transition(LOCAL_ONLY)
            return False
        return await self.reconcile()

    async def reconcile(self) -> bool:
        """Run one reconciliation pass. Returns True if its result was committed."""
        remote = self.remote
        if remote is None:
            logger.info("No remote store configured, skipping reconciliation")
            return False
        seq = self._sequencer.begin()
        owner = self.owner
        self.status.transition(SYNCING)
        logger.info("Reconciliation pass %d started for owner %s", seq, owner)

        try:
            rows = await fetch_remote(remote, owner)
        except SyncError as e:
            logger.warning("Reconciliation pass %d aborted: %s", seq, e)
            if self._sequencer.is_latest(seq):
                self.status.transition(ERROR, str(e))
            return False

        if not self._sequencer.may_commit(seq):
            logger.warning(
                "Discarding reconciliation pass %d, pass %d already committed", seq, self._sequencer.committed,
            )
            return False

        merged = merge_snapshot(self._snapshot, rows)
        self._commit(merged, RECIPES_KEY, MEAL_PLAN_KEY, WATER_KEY)
        self._sequencer.commit(seq)
        logger.info(
            "Reconciliation pass %d committed: %d recipes, %d plan days, %d water days",
            seq, len(merged.recipes), len(merged.meal_plan), len(merged.water),
        )
        if self._sequencer.is_latest(seq):
            self.status.transition(SYNCED)
        return True
