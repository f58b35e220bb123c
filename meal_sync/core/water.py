"""Daily water intake per profile: non-negative accumulators adjusted by signed deltas."""

from meal_sync.db.models import LOCAL, PROFILES, WaterRow


def amount(water: dict, entry_date: str, profile: str) -> int:
    return int(water.get(entry_date, {}).get(profile, 0))


def adjust(water: dict, entry_date: str, profile: str, delta: int) -> tuple:
    """Add delta to the (date, profile) amount, clamping at zero.

    Returns (new_water, new_amount).  The argument is not mutated.
    """
    if profile not in PROFILES:
        raise ValueError(f"Unknown profile: {profile!r}")
    new_amount = max(0, amount(water, entry_date, profile) + int(delta))
    new_water = dict(water)
    day = dict(new_water.get(entry_date, {}))
    day[profile] = new_amount
    new_water[entry_date] = day
    return new_water, new_amount


def water_from_dict(data) -> dict:
    water = {}
    for entry_date, day in (data or {}).items():
        if not isinstance(day, dict):
            continue
        water[entry_date] = {p: max(0, int(v or 0)) for p, v in day.items()}
    return water


def to_rows(water: dict, provenance: dict = None) -> list:
    provenance = provenance or {}
    return [
        WaterRow(date=entry_date, profile=profile, amount=value,
                 provenance=provenance.get((entry_date, profile), LOCAL))
        for entry_date, day in water.items()
        for profile, value in day.items()
    ]


def from_rows(rows) -> tuple:
    """Rebuild (water, provenance) from WaterRow records."""
    water = {}
    provenance = {}
    for row in rows:
        water.setdefault(row.date, {})[row.profile] = row.amount
        provenance[(row.date, row.profile)] = row.provenance
    return water, provenance
