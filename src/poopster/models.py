from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple


@dataclass
class HouseTier:
    key: str  # SMALL|MEDIUM|LARGE
    name: str
    base_price: float
    max_dirtiness: int
    frequency: str = "weekly"  # weekly|biweekly
    color: str = ""
    size: float = 1.0

    def service_interval_days(self) -> int:
        return 14 if self.frequency == "biweekly" else 7


@dataclass
class UpgradeSpec:
    key: str
    name: str
    description: str
    base_cost: float
    cost_multiplier: float
    max_level: int
    effect: Callable[[int], float]
    effect_label: Callable[[int], str]

    def cost_at_level(self, level: int) -> float:
        return float(self.base_cost) * float(self.cost_multiplier) ** max(0, int(level))


@dataclass
class TownConfig:
    grid_width: int = 20
    grid_height: int = 12
    road_width: int = 2
    lot_size: int = 3
    starting_houses: int = 20
    max_houses: int = 50

    def center(self) -> Tuple[float, float]:
        return self.grid_width / 2.0, self.grid_height / 2.0


@dataclass
class EngineConfig:
    # Time (hours)
    day_time_budget: float = 8.0
    tile_drive_time: float = 0.1
    base_scoop_time: float = 0.2

    # Economy
    starting_cash: float = 1000.0
    fuel_cost_per_tile: float = 2.0
    supplies_cost_per_job: float = 5.0
    worker_daily_wage: float = 50.0
    base_daily_capacity: int = 8
    premium_price_multiplier: float = 1.5
    dirtiness_price_step: float = 0.1

    # Satisfaction & churn
    satisfaction_serviced: int = 2
    satisfaction_missed: int = -1
    satisfaction_late: int = -4
    churn_threshold: int = 0

    # Flat improvement used by plan_route projections
    auto_route_improvement: float = 0.15

    # Weather
    weather_clear_chance: float = 0.70
    weather_rain_chance: float = 0.15
    rain_time_multiplier: float = 1.2
    rain_fuel_multiplier: float = 1.1
    heat_fuel_multiplier: float = 1.05
    rain_expense_multiplier: float = 1.2

    # Leads & events
    base_lead_chance: float = 0.1
    base_premium_chance: float = 0.1
    random_event_chance: float = 0.15


@dataclass
class House:
    house_id: str
    x: int
    y: int
    tier: str = "SMALL"
    base_price: float = 25.0
    dirtiness: int = 1
    frequency: str = "weekly"
    last_serviced: int = 0  # game day, 0 = never
    satisfaction: int = 3
    is_premium: bool = False
    serviced: bool = False

    def job_price(self, cfg: Optional[EngineConfig] = None) -> float:
        c = cfg or EngineConfig()
        price = float(self.base_price) * (1.0 + int(self.dirtiness) * float(c.dirtiness_price_step))
        if self.is_premium:
            price *= float(c.premium_price_multiplier)
        return price


@dataclass
class RoutePoint:
    house_id: str
    x: int
    y: int
    estimated_time: float = 0.0
    estimated_revenue: float = 0.0


@dataclass
class Route:
    points: List[RoutePoint] = field(default_factory=list)
    total_distance: float = 0.0
    total_time: float = 0.0
    total_revenue: float = 0.0
    total_fuel: float = 0.0

    @property
    def house_ids(self) -> List[str]:
        return [p.house_id for p in self.points]


@dataclass
class RouteCosts:
    stop_times: List[float] = field(default_factory=list)
    stop_fuel: List[float] = field(default_factory=list)
    total_distance: float = 0.0
    total_time: float = 0.0
    total_fuel: float = 0.0


@dataclass
class DayResult:
    day: int
    weather: str = "clear"

    revenue: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0

    houses_serviced: int = 0
    houses_missed: int = 0
    serviced_ids: List[str] = field(default_factory=list)
    missed_ids: List[str] = field(default_factory=list)
    satisfaction_changes: Dict[str, int] = field(default_factory=dict)

    churned_houses: List[str] = field(default_factory=list)
    new_leads: List[House] = field(default_factory=list)
    new_events: List[str] = field(default_factory=list)

    # Expense breakdown
    cost_supplies: float = 0.0
    cost_fuel: float = 0.0
    cost_wages: float = 0.0
    cost_weather: float = 0.0
    time_used: float = 0.0


@dataclass
class WeeklyStats:
    week: int = 0
    days: int = 0
    revenue: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0
    houses_serviced: int = 0
    houses_missed: int = 0
    new_customers: int = 0
    churned_customers: int = 0
    customers_at_start: int = 0
    rating_sum: float = 0.0

    def add_day(self, result: DayResult, rating: float = 0.0) -> None:
        self.days += 1
        self.revenue += result.revenue
        self.expenses += result.expenses
        self.profit += result.profit
        self.houses_serviced += result.houses_serviced
        self.houses_missed += result.houses_missed
        self.new_customers += len(result.new_leads)
        self.churned_customers += len(result.churned_houses)
        self.rating_sum += float(rating)

    def efficiency(self) -> float:
        total = self.houses_serviced + self.houses_missed
        if total <= 0:
            return 0.0
        return self.houses_serviced / float(total)

    def retention_rate(self) -> float:
        if self.customers_at_start <= 0:
            return 100.0
        kept = max(0, self.customers_at_start - self.churned_customers)
        return 100.0 * kept / float(self.customers_at_start)

    def average_rating(self) -> float:
        if self.days <= 0:
            return 0.0
        return self.rating_sum / float(self.days)


@dataclass
class Customer:
    customer_id: str
    house_id: str
    name: str
    address: str = ""
    tier: str = "SMALL"
    last_service: int = 0  # game day, 0 = never
    next_service: int = 0
    status: str = "pending"  # active|pending|overdue|churned
    notes: str = ""


@dataclass
class GameState:
    day: int = 1
    cash: float = 1000.0
    time_left: float = 8.0
    is_day_active: bool = False
    current_route: Optional[Route] = None

    houses: List[House] = field(default_factory=list)
    selected_houses: List[str] = field(default_factory=list)
    daily_capacity: int = 8

    upgrades: Dict[str, int] = field(default_factory=dict)

    # Running totals
    total_revenue: float = 0.0
    total_expenses: float = 0.0
    total_profit: float = 0.0
    houses_serviced: int = 0
    houses_missed: int = 0

    weather: str = "clear"  # clear|rain|heat
    events: List[str] = field(default_factory=list)
    weekly_stats: WeeklyStats = field(default_factory=WeeklyStats)
    customers: Dict[str, Customer] = field(default_factory=dict)
    milestones_reached: List[int] = field(default_factory=list)

    # Not persisted
    last_result: Optional[DayResult] = None

    rng_seed: int = 20260101
    rng_state: Optional[Any] = None

    def house_by_id(self, house_id: str) -> Optional[House]:
        for h in self.houses:
            if h.house_id == house_id:
                return h
        return None

    def average_satisfaction(self) -> float:
        if not self.houses:
            return 75.0
        return sum(h.satisfaction for h in self.houses) / float(len(self.houses))

    def customer_satisfaction(self) -> float:
        # Display only: clamped 0-100.
        return max(0.0, min(100.0, self.average_satisfaction()))
