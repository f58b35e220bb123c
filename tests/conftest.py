import json
import os

import httpx
import pytest

from meal_sync.core.app_state import AppState
from meal_sync.db.local_store import LocalStore
from meal_sync.db.models import Ingredient, Recipe

REMOTE_URL = "https://remote.test"
REMOTE_KEY = "anon-test-key"


@pytest.fixture(scope="session", autouse=True)
def set_test_env(tmp_path_factory):
    db_file = tmp_path_factory.mktemp("data") / "test.db"
    os.environ["DB_PATH"] = str(db_file)
    os.environ["APP_PASSWORD"] = "testpass"
    os.environ["SECRET_KEY"] = "test-secret-key-for-testing"
    os.environ.pop("REMOTE_URL", None)
    os.environ.pop("REMOTE_KEY", None)


@pytest.fixture(scope="session")
def client(set_test_env):
    from fastapi.testclient import TestClient
    from app.main import app
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture(scope="session")
def authed_client(client):
    client.post("/login", json={"password": "testpass"})
    return client


class FakeRemote:
    """In-memory stand-in for the remote REST tables, served via httpx.MockTransport."""

    def __init__(self):
        self.tables = {"recipes": [], "meal_plans": [], "water_intake": []}
        self.fail_tables = set()  # GETs on these tables answer 503
        self.offline = False  # every request fails at the transport
        self.reject_writes = False  # writes answer 409
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("network unreachable", request=request)
        table = request.url.path.rsplit("/", 1)[-1]
        params = request.url.params
        rows = self.tables[table]

        if request.method == "GET":
            if table in self.fail_tables:
                return httpx.Response(503, text="service unavailable")
            owner = params.get("owner", "").replace("eq.", "", 1)
            return httpx.Response(200, json=[r for r in rows if r.get("owner") == owner])

        if request.method == "POST":
            if self.reject_writes:
                return httpx.Response(409, json={"code": "23505", "message": "duplicate key"})
            keys = params["on_conflict"].split(",")
            for record in json.loads(request.content):
                for i, existing in enumerate(rows):
                    if all(existing.get(k) == record.get(k) for k in keys):
                        rows[i] = {**existing, **record}
                        break
                else:
                    rows.append(record)
            return httpx.Response(201)

        if request.method == "DELETE":
            record_id = params["id"].replace("eq.", "", 1)
            self.tables[table] = [r for r in rows if str(r.get("id")) != record_id]
            return httpx.Response(204)

        return httpx.Response(405)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def writes(self, table: str) -> list:
        return [r for r in self.requests if r.method != "GET" and r.url.path.endswith("/" + table)]


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "state.db")


@pytest.fixture
def state(store):
    """An AppState with no remote configured."""
    return AppState(store)


@pytest.fixture
def synced_state(store, remote):
    """An AppState wired to the fake remote (still locked: no auth event yet)."""
    import asyncio
    s = AppState(store, transport=remote.transport)
    asyncio.run(s.configure_remote(REMOTE_URL, REMOTE_KEY))
    return s


def _make_recipe(recipe_id="", name="Rice Bowl", ingredients=None, **kwargs) -> Recipe:
    return Recipe(
        id=recipe_id,
        name=name,
        ingredients=ingredients if ingredients is not None else [Ingredient("Rice", 1, "cup", "Costco")],
        **kwargs,
    )


@pytest.fixture
def make_recipe():
    """Factory for Recipe objects; defaults to one cup of rice from Costco."""
    return _make_recipe
