from __future__ import annotations

import logging
import random
from typing import Iterable, List, Mapping, Optional

from poopster.models import DayResult, EngineConfig, House, Route, TownConfig, WeeklyStats
from poopster.presets import (
    BAG_CAPACITY,
    FLAVOR_EVENTS,
    MARKETING,
    PREMIUM_ADDON,
    PROFIT_MILESTONES,
    WEATHER_MESSAGES,
    WORKER,
    upgrade_effect,
    upgrade_level,
)
from poopster.route import estimate_route_costs
from poopster.town import generate_new_house, next_house_index

logger = logging.getLogger(__name__)


def generate_weather(rng: random.Random, cfg: Optional[EngineConfig] = None) -> str:
    c = cfg or EngineConfig()
    r = rng.random()
    if r < c.weather_clear_chance:
        return "clear"
    if r < c.weather_clear_chance + c.weather_rain_chance:
        return "rain"
    return "heat"


def supplies_cost_per_job(upgrades: Optional[Mapping[str, int]], cfg: Optional[EngineConfig] = None) -> float:
    c = cfg or EngineConfig()
    return float(c.supplies_cost_per_job) * upgrade_effect(upgrades, BAG_CAPACITY)


def missed_penalty(house: House, day: int, cfg: Optional[EngineConfig] = None) -> int:
    """Satisfaction change for a missed visit.

    Overdue houses (more than one game day since the last service) take the
    harsher late penalty. Never-serviced houses count from day 0.
    """

    c = cfg or EngineConfig()
    elapsed = int(day) - int(house.last_serviced or 0)
    if elapsed > 1:
        return int(c.satisfaction_late)
    return int(c.satisfaction_missed)


def process_churn(houses: Iterable[House], cfg: Optional[EngineConfig] = None) -> List[str]:
    threshold = (cfg or EngineConfig()).churn_threshold
    return [h.house_id for h in houses if h.satisfaction < threshold]


def lead_chance(upgrades: Optional[Mapping[str, int]], cfg: Optional[EngineConfig] = None) -> float:
    c = cfg or EngineConfig()
    return float(c.base_lead_chance) + upgrade_effect(upgrades, MARKETING)


def generate_leads(
    houses: List[House],
    upgrades: Optional[Mapping[str, int]],
    rng: random.Random,
    cfg: Optional[EngineConfig] = None,
    town_cfg: Optional[TownConfig] = None,
    index: Optional[int] = None,
) -> List[House]:
    c = cfg or EngineConfig()
    tc = town_cfg or TownConfig()
    if rng.random() >= lead_chance(upgrades, c) or len(houses) >= tc.max_houses:
        return []
    premium = max(float(c.base_premium_chance), upgrade_effect(upgrades, PREMIUM_ADDON))
    house = generate_new_house(houses, rng=rng, cfg=tc, premium_chance=premium, index=index)
    return [house] if house is not None else []


def random_event(rng: random.Random, cfg: Optional[EngineConfig] = None) -> Optional[str]:
    c = cfg or EngineConfig()
    if rng.random() < c.random_event_chance:
        return FLAVOR_EVENTS[rng.randrange(len(FLAVOR_EVENTS))]
    return None


def check_milestones(profit: float) -> List[int]:
    return [m for m in PROFIT_MILESTONES if profit >= m]


def week_index(day: int) -> int:
    return int(day) // 7


def calculate_weekly_summary(results: Iterable[DayResult], week: int = 0, customers_at_start: int = 0) -> WeeklyStats:
    stats = WeeklyStats(week=int(week), customers_at_start=int(customers_at_start))
    for r in results:
        stats.add_day(r)
    return stats


def settle_day(
    houses: List[House],
    route: Route,
    upgrades: Optional[Mapping[str, int]],
    weather: str,
    time_left: float,
    day: int,
    cfg: Optional[EngineConfig] = None,
    town_cfg: Optional[TownConfig] = None,
    rng: Optional[random.Random] = None,
    lead_index: Optional[int] = None,
) -> DayResult:
    """Settle one day of service.

    Updates satisfaction and `last_serviced` on the given houses in place.
    Churned houses are reported, not removed; the caller commits the result.
    """

    c = cfg or EngineConfig()
    rr = rng or random.Random()
    result = DayResult(day=int(day), weather=str(weather))

    by_id = {h.house_id: h for h in houses}
    for h in houses:
        h.serviced = False

    # The crew works the route in order; a run-out clock means nothing got done.
    available = float(c.day_time_budget) if time_left > 0 else 0.0
    costs = estimate_route_costs(route, upgrades, weather, c)
    per_job_supplies = supplies_cost_per_job(upgrades, c)

    elapsed = 0.0
    for i, point in enumerate(route.points):
        house = by_id.get(point.house_id)
        if house is None:
            continue

        stop_time = costs.stop_times[i]
        if available > 0 and elapsed + stop_time <= available + 1e-9:
            elapsed += stop_time
            result.revenue += house.job_price(c)
            result.cost_supplies += per_job_supplies
            result.cost_fuel += costs.stop_fuel[i]
            result.houses_serviced += 1
            result.serviced_ids.append(house.house_id)

            delta = int(c.satisfaction_serviced)
            house.last_serviced = int(day)
            house.serviced = True
        else:
            # Every later stop is missed too.
            available = 0.0
            result.houses_missed += 1
            result.missed_ids.append(house.house_id)
            delta = missed_penalty(house, day, c)

        house.satisfaction += delta
        result.satisfaction_changes[house.house_id] = delta

    result.time_used = elapsed

    if upgrade_level(upgrades, WORKER) > 0:
        result.cost_wages = float(c.worker_daily_wage)

    expenses = result.cost_supplies + result.cost_fuel + result.cost_wages
    if weather == "rain":
        result.cost_weather = expenses * (float(c.rain_expense_multiplier) - 1.0)
        expenses += result.cost_weather
    if weather in WEATHER_MESSAGES:
        result.new_events.append(WEATHER_MESSAGES[weather])

    result.expenses = expenses
    result.profit = result.revenue - result.expenses

    result.churned_houses = process_churn(houses, c)
    churned = set(result.churned_houses)
    survivors = [h for h in houses if h.house_id not in churned]
    if lead_index is None:
        lead_index = next_house_index(h.house_id for h in houses)
    result.new_leads = generate_leads(survivors, upgrades, rr, cfg=c, town_cfg=town_cfg, index=lead_index)

    flavor = random_event(rr, c)
    if flavor:
        result.new_events.append(flavor)

    logger.debug(
        "day %s settled: serviced=%s missed=%s churned=%s leads=%s profit=%.2f",
        day,
        result.houses_serviced,
        result.houses_missed,
        len(result.churned_houses),
        len(result.new_leads),
        result.profit,
    )
    return result
