import math
from datetime import date, timedelta

from meal_sync.core import meal_plan as mp
from meal_sync.core.shopping_list import (
    CheckedItems, composite_key, format_shopping_list, generate, window_dates,
)
from meal_sync.db.models import Ingredient, Recipe

TODAY = date(2026, 3, 2)


def _day(offset: int) -> str:
    return (TODAY + timedelta(days=offset)).isoformat()


def _rice_recipes():
    return [
        Recipe(id="a", name="Rice Bowl", ingredients=[Ingredient("Rice", 1, "cup", "Costco")]),
        Recipe(id="b", name="Fried Rice", ingredients=[Ingredient("rice", 0.5, "cup", "costco")]),
    ]


def test_window_dates_start_today():
    assert window_dates(TODAY, 3) == ["2026-03-02", "2026-03-03", "2026-03-04"]


def test_composite_key_is_case_insensitive_and_defaults_store():
    assert composite_key(Ingredient("Rice", 1, "Cup", "Costco")) == "rice|cup|costco"
    assert composite_key(Ingredient("Salt", 1, "tsp")) == "salt|tsp|general"
    assert composite_key(Ingredient("Salt", 1, "tsp", "  ")) == "salt|tsp|general"


def test_same_item_across_recipes_is_summed_case_insensitively():
    plan = mp.assign({}, _day(0), "Lunch", "a", "V")
    plan = mp.assign(plan, _day(1), "Dinner", "b", "M")
    result = generate(_rice_recipes(), plan, 7, TODAY)
    assert result.total_items == 1
    assert [g.store_name for g in result.groups] == ["Costco"]
    entry = result.groups[0].items[0]
    assert entry.item == "Rice"
    assert entry.quantity == 1.5
    assert entry.unit == "cup"


def test_different_units_stay_separate():
    recipes = [Recipe(id="a", name="X", ingredients=[
        Ingredient("Milk", 1, "cup"), Ingredient("Milk", 200, "ml"),
    ])]
    plan = mp.assign({}, _day(0), "Breakfast", "a", "V")
    assert generate(recipes, plan, 3, TODAY).total_items == 2


def test_meals_outside_window_are_ignored():
    plan = mp.assign({}, _day(5), "Lunch", "a", "V")
    plan = mp.assign(plan, _day(-1), "Lunch", "a", "V")
    result = generate(_rice_recipes(), plan, 3, TODAY)
    assert result.groups == []
    assert result.total_items == 0


def test_last_day_of_window_is_included():
    plan = mp.assign({}, _day(2), "Lunch", "a", "V")
    assert generate(_rice_recipes(), plan, 3, TODAY).total_items == 1
    plan = mp.assign({}, _day(3), "Lunch", "a", "V")
    assert generate(_rice_recipes(), plan, 3, TODAY).total_items == 0


def test_each_planned_meal_counts_once_per_profile():
    plan = mp.assign({}, _day(0), "Lunch", "a", "V")
    plan = mp.assign(plan, _day(0), "Lunch", "a", "M")
    entry = generate(_rice_recipes(), plan, 3, TODAY).groups[0].items[0]
    assert entry.quantity == 2


def test_dangling_recipe_ids_are_skipped():
    plan = mp.assign({}, _day(0), "Lunch", "deleted", "V")
    plan = mp.assign(plan, _day(0), "Lunch", "a", "V")
    result = generate(_rice_recipes(), plan, 3, TODAY)
    assert result.total_items == 1


def test_groups_and_items_are_sorted_case_insensitively():
    recipes = [Recipe(id="a", name="Mixed", ingredients=[
        Ingredient("onion", 1, "", "walmart"),
        Ingredient("Apple", 2, "", "Costco"),
        Ingredient("banana", 3, "", "Walmart"),
        Ingredient("Salt", 1, "tsp"),
    ])]
    plan = mp.assign({}, _day(0), "Lunch", "a", "V")
    result = generate(recipes, plan, 3, TODAY)
    assert [g.store_name for g in result.groups] == ["Costco", "General", "walmart"]
    assert [i.item for i in result.groups[2].items] == ["banana", "onion"]


def test_generation_is_deterministic():
    plan = mp.assign({}, _day(0), "Lunch", "a", "V")
    plan = mp.assign(plan, _day(1), "Dinner", "b", "M")
    assert generate(_rice_recipes(), plan, 7, TODAY) == generate(_rice_recipes(), plan, 7, TODAY)


def test_plan_entry_order_does_not_change_result():
    recipes = _rice_recipes() + [Recipe(id="c", name="Salad", ingredients=[
        Ingredient("Lettuce", 1, "head", "Aldi"), Ingredient("Rice", 0.25, "cup", "COSTCO"),
    ])]
    first = mp.assign({}, _day(0), "Lunch", "a", "V")
    first = mp.assign(first, _day(0), "Lunch", "c", "M")
    first = mp.assign(first, _day(1), "Dinner", "b", "V")
    second = mp.assign({}, _day(1), "Dinner", "b", "V")
    second = mp.assign(second, _day(0), "Lunch", "c", "M")
    second = mp.assign(second, _day(0), "Lunch", "a", "V")

    a = generate(recipes, first, 7, TODAY)
    b = generate(list(reversed(recipes)), second, 7, TODAY)
    assert [(g.store_name.lower(), [(i.key, i.quantity) for i in g.items]) for g in a.groups] == \
        [(g.store_name.lower(), [(i.key, i.quantity) for i in g.items]) for g in b.groups]


def test_summed_quantity_is_independent_of_meal_order():
    recipes = [
        Recipe(id="pinch", name="Saffron Milk", ingredients=[Ingredient("Saffron", 0.0000004, "g")]),
        Recipe(id="biryani", name="Biryani", ingredients=[Ingredient("Saffron", 1, "g")]),
    ]
    small_first = mp.assign({}, _day(0), "Lunch", "pinch", "V")
    small_first = mp.assign(small_first, _day(1), "Lunch", "pinch", "V")
    small_first = mp.assign(small_first, _day(2), "Lunch", "biryani", "V")
    big_first = mp.assign({}, _day(0), "Lunch", "biryani", "V")
    big_first = mp.assign(big_first, _day(1), "Lunch", "pinch", "V")
    big_first = mp.assign(big_first, _day(2), "Lunch", "pinch", "V")

    a = generate(recipes, small_first, 3, TODAY).groups[0].items[0].quantity
    b = generate(recipes, big_first, 3, TODAY).groups[0].items[0].quantity
    assert a == b
    assert a == math.fsum([0.0000004, 0.0000004, 1])


def test_checked_state_survives_regeneration():
    checked = CheckedItems()
    assert checked.toggle("rice|cup|costco") is True
    plan = mp.assign({}, _day(0), "Lunch", "a", "V")
    assert generate(_rice_recipes(), plan, 7, TODAY, checked).groups[0].items[0].checked is True

    # Item drops off the list and comes back: the key is never pruned
    assert generate(_rice_recipes(), {}, 7, TODAY, checked).total_items == 0
    assert "rice|cup|costco" in checked
    assert generate(_rice_recipes(), plan, 3, TODAY, checked).groups[0].items[0].checked is True

    assert checked.toggle("rice|cup|costco") is False
    assert len(checked) == 0


def test_format_shopping_list():
    checked = CheckedItems(["rice|cup|costco"])
    plan = mp.assign({}, _day(0), "Lunch", "a", "V")
    text = format_shopping_list(generate(_rice_recipes(), plan, 7, TODAY, checked))
    assert "=== Costco (1/1) ===" in text
    assert "[x] Rice" in text
    assert text.endswith("Total items: 1")


def test_format_empty_list():
    assert format_shopping_list(generate([], {}, 7, TODAY)) == "No items needed."


# ── API ──────────────────────────────────────────────────────────────────────

def _plan_today(client, name, ingredients):
    rid = client.post("/recipes", json={"name": name, "ingredients": ingredients}).json()["id"]
    client.post("/meal-plan/assign", json={
        "date": date.today().isoformat(), "slot": "Lunch", "recipe_id": rid, "profile": "V",
    })
    return rid


def test_shopping_list_endpoint(authed_client):
    _plan_today(authed_client, "Shop Test Pasta", [
        {"item": "Shop Test Penne", "quantity": 2, "unit": "box", "store_name": "Shop Test Mart"},
    ])
    resp = authed_client.get("/shopping", params={"days": 3})
    assert resp.status_code == 200
    groups = {g["store_name"]: g for g in resp.json()["groups"]}
    items = groups["Shop Test Mart"]["items"]
    assert items[0]["key"] == "shop test penne|box|shop test mart"
    assert items[0]["quantity"] == 2


def test_shopping_list_rejects_other_windows(authed_client):
    assert authed_client.get("/shopping", params={"days": 5}).status_code == 400


def test_shopping_toggle_and_reset(authed_client):
    key = "toggle test|jar|general"
    resp = authed_client.post("/shopping/toggle", json={"key": key})
    assert resp.json() == {"key": key, "checked": True}
    resp = authed_client.post("/shopping/toggle", json={"key": key})
    assert resp.json()["checked"] is False
    authed_client.post("/shopping/toggle", json={"key": key})
    assert authed_client.post("/shopping/reset").json() == {"checked": 0}


def test_shopping_export(authed_client):
    _plan_today(authed_client, "Export Test Soup", [{"item": "Export Test Leek", "quantity": 1}])
    resp = authed_client.get("/shopping/export", params={"days": 7})
    assert resp.status_code == 200
    assert "text/plain" in resp.headers["content-type"]
    assert "Export Test Leek" in resp.text
