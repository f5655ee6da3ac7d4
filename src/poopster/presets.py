from __future__ import annotations

from typing import Dict, Mapping

from poopster.models import HouseTier, UpgradeSpec

STORAGE_KEY = "poopster_game_state"

HOUSE_TIERS: Dict[str, HouseTier] = {
    "SMALL": HouseTier(
        key="SMALL",
        name="Small House",
        base_price=25.0,
        max_dirtiness=3,
        frequency="weekly",
        color="#4ade80",
        size=1.0,
    ),
    "MEDIUM": HouseTier(
        key="MEDIUM",
        name="Medium House",
        base_price=45.0,
        max_dirtiness=4,
        frequency="weekly",
        color="#fbbf24",
        size=1.2,
    ),
    "LARGE": HouseTier(
        key="LARGE",
        name="Large House",
        base_price=75.0,
        max_dirtiness=5,
        frequency="biweekly",
        color="#f97316",
        size=1.5,
    ),
}

BAG_CAPACITY = "bag_capacity"
WALKING_SPEED = "walking_speed"
VAN_SPEED = "van_speed"
ROUTE_PLANNER = "route_planner"
MARKETING = "marketing"
WORKER = "worker"
PREMIUM_ADDON = "premium_addon"


def _pct_off(factor: float) -> int:
    return int(round((1.0 - factor) * 100))


UPGRADES: Dict[str, UpgradeSpec] = {
    BAG_CAPACITY: UpgradeSpec(
        key=BAG_CAPACITY,
        name="Bag Capacity",
        description="Reduces supplies cost per job",
        base_cost=500.0,
        cost_multiplier=1.5,
        max_level=5,
        effect=lambda level: max(0.5, 1.0 - level * 0.1),
        effect_label=lambda level: f"Supplies cost: {_pct_off(max(0.5, 1.0 - level * 0.1))}% off",
    ),
    WALKING_SPEED: UpgradeSpec(
        key=WALKING_SPEED,
        name="Walking Speed",
        description="Reduces time spent at each house",
        base_cost=300.0,
        cost_multiplier=1.4,
        max_level=5,
        effect=lambda level: max(0.5, 1.0 - level * 0.1),
        effect_label=lambda level: f"Scoop time: {_pct_off(max(0.5, 1.0 - level * 0.1))}% faster",
    ),
    VAN_SPEED: UpgradeSpec(
        key=VAN_SPEED,
        name="Van Speed",
        description="Reduces driving time between houses",
        base_cost=400.0,
        cost_multiplier=1.6,
        max_level=5,
        effect=lambda level: max(0.6, 1.0 - level * 0.08),
        effect_label=lambda level: f"Drive time: {_pct_off(max(0.6, 1.0 - level * 0.08))}% faster",
    ),
    ROUTE_PLANNER: UpgradeSpec(
        key=ROUTE_PLANNER,
        name="Route Planner+",
        description="Better route optimization",
        base_cost=800.0,
        cost_multiplier=2.0,
        max_level=3,
        effect=lambda level: 1.0 - level * 0.05,
        effect_label=lambda level: f"Route distance: {level * 5}% shorter",
    ),
    MARKETING: UpgradeSpec(
        key=MARKETING,
        name="Marketing",
        description="Increases chance of new leads",
        base_cost=600.0,
        cost_multiplier=1.8,
        max_level=5,
        effect=lambda level: level * 0.05,
        effect_label=lambda level: f"Lead chance: +{level * 5}%",
    ),
    WORKER: UpgradeSpec(
        key=WORKER,
        name="Hire Worker",
        description="Doubles daily capacity",
        base_cost=2000.0,
        cost_multiplier=1.0,  # one-time purchase
        max_level=1,
        effect=lambda level: level * 2.0,
        effect_label=lambda level: f"Daily capacity: {level * 2}x",
    ),
    PREMIUM_ADDON: UpgradeSpec(
        key=PREMIUM_ADDON,
        name="Premium Add-on",
        description="Some houses upgrade to higher pricing",
        base_cost=1500.0,
        cost_multiplier=1.0,  # one-time purchase
        max_level=1,
        effect=lambda level: level * 0.3,
        effect_label=lambda level: f"Upgrade chance: {level * 30}%",
    ),
}

PROFIT_MILESTONES = [1000, 5000, 15000, 50000, 100000]

FLAVOR_EVENTS = [
    "🚧 Road construction added 5 minutes to route",
    "🎉 Customer left a generous tip!",
    "🐕 Friendly dog slowed down service",
    "📱 GPS malfunction caused minor delay",
    "☕ Coffee break boosted efficiency",
    "🚗 Traffic jam increased fuel costs",
    "🌱 Customer upgraded to premium service",
    "📦 Supplies on sale - saved money today",
]

WEATHER_MESSAGES = {
    "rain": "🌧️ Rainy day increased supply costs",
    "heat": "🔥 Heat wave - tough day on the route",
}

CUSTOMER_NAMES = [
    "Smith Family", "Johnson Residence", "Williams Home", "Brown House",
    "Davis Family", "Miller Residence", "Wilson Home", "Moore House",
    "Taylor Family", "Anderson Residence", "Thomas Home", "Jackson House",
    "White Family", "Harris Residence", "Martin Home", "Thompson House",
    "Garcia Family", "Martinez Residence", "Robinson Home", "Clark House",
]

STREET_NAMES = [
    "Oak Street", "Maple Avenue", "Pine Road", "Elm Street",
    "Cedar Lane", "Birch Drive", "Willow Way", "Cherry Street",
    "Magnolia Avenue", "Sycamore Road", "Poplar Street", "Hickory Lane",
    "Walnut Drive", "Chestnut Way", "Ash Street", "Beech Avenue",
    "Spruce Road", "Fir Street", "Hemlock Lane", "Cypress Drive",
]


def upgrade_level(upgrades: Mapping[str, int] | None, key: str) -> int:
    if not upgrades:
        return 0
    return max(0, int(upgrades.get(key, 0) or 0))


def upgrade_effect(upgrades: Mapping[str, int] | None, key: str) -> float:
    """Effect value of the owned level of `key` (level 0 when not owned)."""

    spec = UPGRADES.get(key)
    if spec is None:
        return 0.0
    level = min(spec.max_level, upgrade_level(upgrades, key))
    return float(spec.effect(level))
