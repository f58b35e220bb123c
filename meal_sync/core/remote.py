"""Remote store adapter: a PostgREST-style REST table API reached over httpx.

A RemoteStore only exists when a valid {endpoint, credential} pair is
configured; otherwise callers hold None and skip every remote call.  The
translation helpers at the bottom convert between local records and the
remote column layout:

    recipes(id, name, type, difficulty, ingredients, prep_tasks, macros, owner)
    meal_plans(owner, planned_date, slot, meals)          unique (owner, planned_date, slot)
    water_intake(owner, planned_date, profile, amount)    unique (owner, planned_date, profile)
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Iterable, Optional
from urllib.parse import urlparse

import httpx

from meal_sync.core.errors import ConnectivityError, ConstraintError
from meal_sync.core.meal_plan import planned_meal_from_dict
from meal_sync.core.recipes import recipe_from_dict
from meal_sync.db.models import CLOUD, PlanRow, Recipe, WaterRow

logger = logging.getLogger(__name__)

PUBLIC_OWNER = "00000000-0000-0000-0000-000000000000"

RECIPES_TABLE = "recipes"
MEAL_PLANS_TABLE = "meal_plans"
WATER_TABLE = "water_intake"

RECIPE_CONFLICT_KEYS = ("id",)
PLAN_CONFLICT_KEYS = ("owner", "planned_date", "slot")
WATER_CONFLICT_KEYS = ("owner", "planned_date", "profile")

_REJECTED_WRITE = {400, 409, 422}


def is_valid_config(endpoint: Optional[str], credential: Optional[str]) -> bool:
    if not endpoint or not credential or not credential.strip():
        return False
    parsed = urlparse(endpoint.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class RemoteStore:
    """Per-collection read-all, upsert and delete against the remote tables."""

    def __init__(self, endpoint: str, credential: str,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: Optional[float] = None):
        self.endpoint = endpoint.strip().rstrip("/")
        self._credential = credential.strip()
        self._transport = transport
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: Optional[dict], transport=None) -> Optional["RemoteStore"]:
        """Return a RemoteStore for a valid config dict, or None."""
        if not config:
            return None
        endpoint, credential = config.get("endpoint"), config.get("credential")
        if not is_valid_config(endpoint, credential):
            return None
        return cls(endpoint, credential, transport=transport)

    def _client(self) -> httpx.AsyncClient:
        kwargs = {
            "base_url": f"{self.endpoint}/rest/v1",
            "headers": {
                "apikey": self._credential,
                "Authorization": f"Bearer {self._credential}",
            },
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        return httpx.AsyncClient(**kwargs)

    async def _send(self, method: str, table: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, f"/{table}", **kwargs)
        except httpx.HTTPError as e:
            raise ConnectivityError(f"{method} {table} failed: {e}") from e

    async def fetch_all(self, table: str, owner: str = PUBLIC_OWNER) -> list:
        """Return every row of table owned by owner."""
        resp = await self._send("GET", table, params={"select": "*", "owner": f"eq.{owner}"})
        if resp.is_error:
            raise ConnectivityError(f"GET {table} returned {resp.status_code}: {resp.text}")
        try:
            rows = resp.json()
        except ValueError as e:
            raise ConnectivityError(f"GET {table} returned malformed JSON") from e
        if not isinstance(rows, list):
            raise ConnectivityError(f"GET {table} returned {type(rows).__name__}, expected a list")
        logger.debug("Fetched %d rows from %s", len(rows), table)
        return rows

    async def upsert(self, table: str, record: dict, conflict_keys: Iterable[str]) -> None:
        """Insert or merge record, resolving on the conflict_keys unique constraint."""
        resp = await self._send(
            "POST", table,
            params={"on_conflict": ",".join(conflict_keys)},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            json=[record],
        )
        if resp.status_code in _REJECTED_WRITE:
            raise ConstraintError(f"{table} rejected write ({resp.status_code}): {resp.text}")
        if resp.is_error:
            raise ConnectivityError(f"POST {table} returned {resp.status_code}: {resp.text}")

    async def delete(self, table: str, record_id: str) -> None:
        resp = await self._send("DELETE", table, params={"id": f"eq.{record_id}"})
        if resp.is_error:
            raise ConnectivityError(f"DELETE {table} returned {resp.status_code}: {resp.text}")


# ── Schema translation ───────────────────────────────────────────────────────

def _decoded(value, default):
    """Serialized columns may arrive as JSON values or as JSON text."""
    if value is None:
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default
    return value


def _day(value) -> str:
    return str(value)[:10]


def recipe_to_remote(recipe: Recipe, owner: str) -> dict:
    data = asdict(recipe)
    return {
        "id": recipe.id,
        "name": recipe.name,
        "type": recipe.type,
        "difficulty": recipe.difficulty,
        "ingredients": data["ingredients"],
        "prep_tasks": data["prep_tasks"],
        "macros": data["macros"],
        "owner": owner,
    }


def recipe_from_remote(row: dict) -> Recipe:
    recipe = recipe_from_dict({
        "id": row["id"],
        "name": row.get("name", ""),
        "type": row.get("type"),
        "difficulty": row.get("difficulty"),
        "ingredients": _decoded(row.get("ingredients"), []),
        "prep_tasks": _decoded(row.get("prep_tasks"), []),
        "macros": _decoded(row.get("macros"), {}),
    })
    recipe.provenance = CLOUD
    return recipe


def plan_row_to_remote(row: PlanRow, owner: str) -> dict:
    return {
        "owner": owner,
        "planned_date": row.date,
        "slot": row.slot,
        "meals": [{"recipe_id": m.recipe_id, "profile": m.profile} for m in row.meals],
    }


def plan_row_from_remote(row: dict) -> PlanRow:
    meals = _decoded(row.get("meals"), [])
    return PlanRow(
        date=_day(row["planned_date"]),
        slot=row["slot"],
        meals=tuple(planned_meal_from_dict(m) for m in meals),
        provenance=CLOUD,
    )


def water_row_to_remote(row: WaterRow, owner: str) -> dict:
    return {
        "owner": owner,
        "planned_date": row.date,
        "profile": row.profile,
        "amount": row.amount,
    }


def water_row_from_remote(row: dict) -> WaterRow:
    return WaterRow(
        date=_day(row["planned_date"]),
        profile=row["profile"],
        amount=max(0, int(row.get("amount") or 0)),
        provenance=CLOUD,
    )
