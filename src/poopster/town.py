from __future__ import annotations

import math
import random
from typing import Dict, Iterable, List, Optional, Set, Tuple

from poopster.models import Customer, House, TownConfig
from poopster.presets import CUSTOMER_NAMES, HOUSE_TIERS, STREET_NAMES


def road_cells(cfg: Optional[TownConfig] = None) -> Set[Tuple[int, int]]:
    """Road cells of the town grid.

    Roads are used for rendering and lot placement only; route distance is
    straight-line between houses.
    """

    c = cfg or TownConfig()
    step = max(1, int(c.lot_size) + int(c.road_width))
    cells: Set[Tuple[int, int]] = set()

    # Horizontal roads
    for y in range(int(c.road_width), c.grid_height, step):
        for x in range(c.grid_width):
            cells.add((x, y))

    # Vertical roads
    for x in range(int(c.road_width), c.grid_width, step):
        for y in range(c.grid_height):
            cells.add((x, y))
    return cells


def is_road_position(x: int, y: int, cfg: Optional[TownConfig] = None) -> bool:
    return (int(x), int(y)) in road_cells(cfg)


def get_road_positions(cfg: Optional[TownConfig] = None) -> List[Tuple[int, int]]:
    return sorted(road_cells(cfg), key=lambda p: (p[1], p[0]))


def tier_for_position(x: int, y: int, cfg: Optional[TownConfig] = None) -> str:
    # Wealthy downtown: bigger houses near the centre.
    cx, cy = (cfg or TownConfig()).center()
    d = math.hypot(x - cx, y - cy)
    if d < 3:
        return "LARGE"
    if d < 6:
        return "MEDIUM"
    return "SMALL"


def available_lots(cfg: Optional[TownConfig] = None) -> List[Tuple[int, int]]:
    """Lot centres whose whole footprint is clear of roads."""

    c = cfg or TownConfig()
    roads = road_cells(c)
    lot = int(c.lot_size)
    half = lot / 2.0

    lots: List[Tuple[int, int]] = []
    for y in range(c.grid_height):
        for x in range(c.grid_width):
            if x + half >= c.grid_width or y + half >= c.grid_height:
                continue
            blocked = any((x + dx, y + dy) in roads for dy in range(lot) for dx in range(lot))
            if blocked:
                continue
            lots.append((int(math.floor(x + half)), int(math.floor(y + half))))
    return lots


def generate_house(
    x: int,
    y: int,
    index: int,
    rng: random.Random,
    cfg: Optional[TownConfig] = None,
    premium_chance: float = 0.1,
) -> House:
    tier_key = tier_for_position(x, y, cfg)
    tier = HOUSE_TIERS[tier_key]
    dirtiness = rng.randint(1, tier.max_dirtiness)
    satisfaction = rng.randint(2, 4)
    is_premium = tier_key in ("MEDIUM", "LARGE") and rng.random() < float(premium_chance)
    return House(
        house_id=f"house_{int(index)}",
        x=int(x),
        y=int(y),
        tier=tier_key,
        base_price=tier.base_price,
        dirtiness=dirtiness,
        frequency=tier.frequency,
        last_serviced=0,
        satisfaction=satisfaction,
        is_premium=is_premium,
    )


def generate_town(rng: Optional[random.Random] = None, cfg: Optional[TownConfig] = None) -> List[House]:
    """Lay out the starting town. Returns fewer houses if lots run out."""

    c = cfg or TownConfig()
    rr = rng or random.Random()
    lots = available_lots(c)
    rr.shuffle(lots)

    houses: List[House] = []
    for i, (x, y) in enumerate(lots[: max(0, int(c.starting_houses))]):
        houses.append(generate_house(x, y, i, rr, c))
    return houses


def next_house_index(house_ids: Iterable[str]) -> int:
    top = -1
    for hid in house_ids:
        _, _, suffix = str(hid).rpartition("_")
        if suffix.isdigit():
            top = max(top, int(suffix))
    return top + 1


def generate_new_house(
    existing: List[House],
    rng: Optional[random.Random] = None,
    cfg: Optional[TownConfig] = None,
    premium_chance: float = 0.1,
    index: Optional[int] = None,
) -> Optional[House]:
    """Place a lead house on a free cell, or return None if the town is full."""

    c = cfg or TownConfig()
    rr = rng or random.Random()
    if len(existing) >= c.max_houses:
        return None

    occupied = {(h.x, h.y) for h in existing}
    free: List[Tuple[int, int]] = []
    for y in range(c.grid_height):
        for x in range(c.grid_width):
            if any((x + dx, y + dy) in occupied for dy in (-1, 0, 1) for dx in (-1, 0, 1)):
                continue
            free.append((x, y))
    if not free:
        return None

    x, y = rr.choice(free)
    idx = next_house_index(h.house_id for h in existing) if index is None else int(index)
    house = generate_house(x, y, idx, rr, c, premium_chance=premium_chance)
    # Unproven relationship
    house.satisfaction = rr.randint(1, 2)
    return house


def customer_for_house(house: House, index: int, rng: random.Random, status: str = "active") -> Customer:
    name = CUSTOMER_NAMES[index % len(CUSTOMER_NAMES)]
    street = STREET_NAMES[rng.randrange(len(STREET_NAMES))]
    return Customer(
        customer_id=f"customer_{index}",
        house_id=house.house_id,
        name=name,
        address=f"{rng.randint(1, 9999)} {street}",
        tier=house.tier,
        last_service=house.last_serviced,
        next_service=1,
        status=status,
    )


def generate_customers(houses: List[House], rng: Optional[random.Random] = None) -> Dict[str, Customer]:
    rr = rng or random.Random()
    out: Dict[str, Customer] = {}
    for i, h in enumerate(houses):
        cust = customer_for_house(h, i, rr)
        out[cust.customer_id] = cust
    return out
