import asyncio

import pytest

from meal_sync.core import water

DAY = "2026-03-02"


def test_adjust_accumulates():
    w, amount = water.adjust({}, DAY, "V", 250)
    w, amount = water.adjust(w, DAY, "V", 250)
    assert amount == 500
    assert water.amount(w, DAY, "M") == 0


def test_adjust_clamps_at_zero():
    w, _ = water.adjust({}, DAY, "V", 20)
    w, amount = water.adjust(w, DAY, "V", -50)
    assert amount == 0
    assert water.amount(w, DAY, "V") == 0


def test_adjust_does_not_mutate_argument():
    w, _ = water.adjust({}, DAY, "V", 20)
    water.adjust(w, DAY, "V", 30)
    assert water.amount(w, DAY, "V") == 20


def test_adjust_unknown_profile_raises():
    with pytest.raises(ValueError):
        water.adjust({}, DAY, "Z", 1)


def test_water_from_dict_clamps_negative_values():
    assert water.water_from_dict({DAY: {"V": -3, "M": "40"}}) == {DAY: {"V": 0, "M": 40}}


def test_adjust_water_persists(state, store):
    assert asyncio.run(state.adjust_water(DAY, "M", 300)) == 300
    assert store.get("water_intake") == {DAY: {"M": 300}}
    assert state.water(DAY) == {"V": 0, "M": 300}


# ── API ──────────────────────────────────────────────────────────────────────

def test_water_adjust_endpoint(authed_client):
    resp = authed_client.post("/water/adjust", json={"date": "2026-05-01", "profile": "V", "delta": 20})
    assert resp.json() == {"date": "2026-05-01", "profile": "V", "amount": 20}
    resp = authed_client.post("/water/adjust", json={"date": "2026-05-01", "profile": "V", "delta": -50})
    assert resp.json()["amount"] == 0
    resp = authed_client.get("/water/2026-05-01")
    assert resp.json() == {"date": "2026-05-01", "amounts": {"V": 0, "M": 0}}


def test_water_adjust_unknown_profile_returns_400(authed_client):
    resp = authed_client.post("/water/adjust", json={"date": "2026-05-01", "profile": "Q", "delta": 1})
    assert resp.status_code == 400
