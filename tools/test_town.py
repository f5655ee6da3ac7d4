from __future__ import annotations

import random

from poopster.models import House, TownConfig
from poopster.presets import HOUSE_TIERS
from poopster.town import (
    available_lots,
    generate_customers,
    generate_new_house,
    generate_town,
    is_road_position,
    next_house_index,
    tier_for_position,
)


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def test_default_town_has_twenty_houses() -> None:
    cfg = TownConfig()
    houses = generate_town(random.Random(20260101), cfg)
    _assert(len(houses) == 20, f"expected 20 houses, got {len(houses)}")
    ids = [h.house_id for h in houses]
    _assert(len(set(ids)) == len(ids), "house ids should be unique")
    for h in houses:
        _assert(0 <= h.x < cfg.grid_width and 0 <= h.y < cfg.grid_height, f"{h.house_id} out of bounds")
        _assert(h.tier in HOUSE_TIERS, f"unknown tier {h.tier}")
        _assert(not is_road_position(h.x, h.y, cfg), f"{h.house_id} sits on a road")


def test_generated_values_stay_in_range() -> None:
    for seed in range(10):
        for h in generate_town(random.Random(seed)):
            tier = HOUSE_TIERS[h.tier]
            _assert(1 <= h.dirtiness <= tier.max_dirtiness, f"dirtiness {h.dirtiness} above tier max")
            _assert(2 <= h.satisfaction <= 4, f"initial satisfaction {h.satisfaction} out of range")
            _assert(h.base_price == tier.base_price, "base price should come from the tier")
            if h.is_premium:
                _assert(h.tier in ("MEDIUM", "LARGE"), "only medium/large houses can be premium")


def test_small_grid_yields_fewer_houses() -> None:
    cfg = TownConfig(grid_width=6, grid_height=6, starting_houses=20)
    houses = generate_town(random.Random(1), cfg)
    _assert(len(houses) == len(available_lots(cfg)), "town should use every lot when candidates run out")
    _assert(len(houses) < 20, "tiny grid cannot hold 20 houses")


def test_tiers_by_distance_to_centre() -> None:
    cfg = TownConfig()
    _assert(tier_for_position(10, 6, cfg) == "LARGE", "centre should be large")
    _assert(tier_for_position(14, 6, cfg) == "MEDIUM", "ring should be medium")
    _assert(tier_for_position(0, 0, cfg) == "SMALL", "corner should be small")


def test_new_house_none_when_town_full() -> None:
    cfg = TownConfig(grid_width=3, grid_height=3)
    existing = [House(house_id="house_0", x=1, y=1)]
    _assert(generate_new_house(existing, random.Random(1), cfg) is None, "no free cell should yield None")

    capped = TownConfig(max_houses=1)
    _assert(generate_new_house(existing, random.Random(1), capped) is None, "max_houses should yield None")


def test_new_house_gets_fresh_id_and_low_satisfaction() -> None:
    existing = [House(house_id="house_0", x=1, y=1), House(house_id="house_5", x=10, y=6)]
    lead = generate_new_house(existing, random.Random(3))
    _assert(lead is not None, "expected a lead house")
    assert lead is not None
    _assert(lead.house_id == "house_6", f"expected house_6, got {lead.house_id}")
    _assert(1 <= lead.satisfaction <= 2, "lead satisfaction should start at 1-2")
    for h in existing:
        _assert(max(abs(h.x - lead.x), abs(h.y - lead.y)) > 1, "lead should not touch an existing house")


def test_next_house_index_ignores_foreign_ids() -> None:
    _assert(next_house_index([]) == 0, "empty town starts at 0")
    _assert(next_house_index(["house_2", "house_10", "garage"]) == 11, "index should follow the highest id")


def test_customers_one_per_house() -> None:
    houses = generate_town(random.Random(5))
    customers = generate_customers(houses, random.Random(5))
    _assert(len(customers) == len(houses), "one customer per house")
    _assert({c.house_id for c in customers.values()} == {h.house_id for h in houses}, "customers should map to houses")
    _assert(all(c.status == "active" for c in customers.values()), "starting customers are active")


def main() -> None:
    tests = [
        test_default_town_has_twenty_houses,
        test_generated_values_stay_in_range,
        test_small_grid_yields_fewer_houses,
        test_tiers_by_distance_to_centre,
        test_new_house_none_when_town_full,
        test_new_house_gets_fresh_id_and_low_satisfaction,
        test_next_house_index_ignores_foreign_ids,
        test_customers_one_per_house,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
