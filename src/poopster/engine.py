from __future__ import annotations

import logging
import random
from typing import Any, List, Optional, Tuple, cast

from poopster.daycycle import check_milestones, generate_weather, settle_day, week_index
from poopster.models import (
    Customer,
    DayResult,
    EngineConfig,
    GameState,
    Route,
    RouteCosts,
    TownConfig,
    WeeklyStats,
)
from poopster.presets import HOUSE_TIERS, UPGRADES, WORKER, upgrade_level
from poopster.route import estimate_route_costs, improve_route, plan_route
from poopster.town import customer_for_house, generate_customers, generate_town, next_house_index

logger = logging.getLogger(__name__)


def _to_jsonable(x: object) -> object:
    if isinstance(x, tuple):
        return [_to_jsonable(v) for v in x]
    if isinstance(x, list):
        return [_to_jsonable(v) for v in x]
    return x


def _to_tuple(x: object) -> object:
    if isinstance(x, list):
        return tuple(_to_tuple(v) for v in x)
    return x


def _rng_from_state(state: GameState) -> random.Random:
    rng = random.Random()
    st = state.rng_state
    if st is not None:
        try:
            rng.setstate(cast(Tuple[Any, ...], _to_tuple(st)))
            return rng
        except (TypeError, ValueError) as e:
            logger.warning("discarding unreadable rng state: %s", e)
    rng.seed(int(state.rng_seed))
    return rng


def _persist_rng_state(state: GameState, rng: random.Random) -> None:
    state.rng_state = _to_jsonable(rng.getstate())


def new_game(
    seed: Optional[int] = None,
    cfg: Optional[EngineConfig] = None,
    town_cfg: Optional[TownConfig] = None,
) -> GameState:
    c = cfg or EngineConfig()
    seed_i = int(seed) if seed is not None else random.randrange(1, 2**31)
    state = GameState(
        cash=float(c.starting_cash),
        time_left=float(c.day_time_budget),
        daily_capacity=int(c.base_daily_capacity),
        rng_seed=seed_i,
    )
    rng = _rng_from_state(state)
    state.houses = generate_town(rng, town_cfg)
    state.customers = generate_customers(state.houses, rng)
    state.weekly_stats = WeeklyStats(week=week_index(state.day), customers_at_start=len(state.houses))
    _persist_rng_state(state, rng)
    return state


def reset_game(
    state: GameState,
    seed: Optional[int] = None,
    cfg: Optional[EngineConfig] = None,
    town_cfg: Optional[TownConfig] = None,
) -> GameState:
    """Return a fresh game. Reuses the current seed unless one is given."""

    return new_game(seed=state.rng_seed if seed is None else seed, cfg=cfg, town_cfg=town_cfg)


def select_house(state: GameState, house_id: str) -> bool:
    if len(state.selected_houses) >= state.daily_capacity:
        return False
    if house_id in state.selected_houses:
        return False
    if state.house_by_id(house_id) is None:
        return False
    state.selected_houses.append(house_id)
    return True


def deselect_house(state: GameState, house_id: str) -> bool:
    if house_id not in state.selected_houses:
        return False
    state.selected_houses = [hid for hid in state.selected_houses if hid != house_id]
    return True


def auto_plan_route(state: GameState) -> List[str]:
    """Fill free capacity with the best-paying unselected houses. Returns added ids."""

    free = state.daily_capacity - len(state.selected_houses)
    if free <= 0:
        return []
    chosen = set(state.selected_houses)
    candidates = [h for h in state.houses if h.house_id not in chosen]
    candidates.sort(key=lambda h: h.base_price / (h.dirtiness * 0.1 + 1.0), reverse=True)
    added = [h.house_id for h in candidates[:free]]
    state.selected_houses.extend(added)
    return added


def preview_route(
    state: GameState,
    cfg: Optional[EngineConfig] = None,
    town_cfg: Optional[TownConfig] = None,
) -> Tuple[Route, RouteCosts]:
    c = cfg or EngineConfig()
    route = state.current_route
    if route is None:
        route = improve_route(plan_route(state.houses, state.selected_houses, c, town_cfg), c)
    return route, estimate_route_costs(route, state.upgrades, state.weather, c)


def start_day(
    state: GameState,
    cfg: Optional[EngineConfig] = None,
    town_cfg: Optional[TownConfig] = None,
) -> Optional[Route]:
    if not state.selected_houses:
        return None
    if state.is_day_active and state.current_route is not None:
        return state.current_route

    c = cfg or EngineConfig()
    route = improve_route(plan_route(state.houses, state.selected_houses, c, town_cfg), c)
    state.current_route = route
    state.is_day_active = True
    state.time_left = float(c.day_time_budget)
    return route


def tick_day(state: GameState, hours: float) -> float:
    """Run the day clock down. Ignored once the day has ended."""

    if not state.is_day_active:
        return state.time_left
    state.time_left = max(0.0, float(state.time_left) - max(0.0, float(hours)))
    return state.time_left


def _update_customers(state: GameState, result: DayResult, rng: random.Random) -> None:
    by_house = {cust.house_id: cust for cust in state.customers.values()}

    for hid in result.serviced_ids:
        cust = by_house.get(hid)
        if cust is None or cust.status == "churned":
            continue
        tier = HOUSE_TIERS.get(cust.tier)
        interval = tier.service_interval_days() if tier else 7
        cust.last_service = result.day
        cust.next_service = result.day + interval
        cust.status = "active"

    for hid in result.missed_ids:
        cust = by_house.get(hid)
        if cust is not None and cust.status != "churned":
            cust.status = "overdue"

    for hid in result.churned_houses:
        cust = by_house.get(hid)
        if cust is not None:
            cust.status = "churned"

    for lead in result.new_leads:
        idx = len(state.customers)
        cust = customer_for_house(lead, idx, rng, status="pending")
        cust.next_service = result.day + 1
        state.customers[cust.customer_id] = cust


def end_day(
    state: GameState,
    cfg: Optional[EngineConfig] = None,
    town_cfg: Optional[TownConfig] = None,
) -> Optional[DayResult]:
    """Settle the running day. Returns None and changes nothing when no day is running."""

    route = state.current_route
    if not state.is_day_active or route is None:
        return None

    c = cfg or EngineConfig()

    # Read the clock once and stop it before settling.
    time_left = float(state.time_left)
    state.is_day_active = False

    rng = _rng_from_state(state)
    result = settle_day(
        state.houses,
        route,
        state.upgrades,
        state.weather,
        time_left,
        state.day,
        cfg=c,
        town_cfg=town_cfg,
        rng=rng,
        lead_index=next_house_index(
            [h.house_id for h in state.houses] + [cust.house_id for cust in state.customers.values()]
        ),
    )

    houses_before = len(state.houses)
    churned = set(result.churned_houses)
    state.houses = [h for h in state.houses if h.house_id not in churned] + list(result.new_leads)
    _update_customers(state, result, rng)
    if churned:
        logger.info("day %s: %d house(s) churned", state.day, len(churned))

    state.cash += result.profit
    state.total_revenue += result.revenue
    state.total_expenses += result.expenses
    state.total_profit += result.profit
    state.houses_serviced += result.houses_serviced
    state.houses_missed += result.houses_missed

    week = week_index(state.day)
    if week != state.weekly_stats.week:
        state.weekly_stats = WeeklyStats(week=week, customers_at_start=houses_before)
    state.weekly_stats.add_day(result, rating=state.customer_satisfaction() / 20.0)

    events = list(result.new_events)
    for m in check_milestones(state.total_profit):
        if m not in state.milestones_reached:
            state.milestones_reached.append(m)
            events.append(f"🏆 Milestone reached: ${m:,} total profit")
    state.events = events

    state.last_result = result
    state.day += 1
    state.current_route = None
    state.selected_houses = []
    state.time_left = 0.0
    state.weather = generate_weather(rng, c)

    _persist_rng_state(state, rng)
    return result


def upgrade_cost(state: GameState, key: str) -> Optional[float]:
    """Price of the next level, or None when unknown or maxed."""

    spec = UPGRADES.get(key)
    if spec is None:
        return None
    level = upgrade_level(state.upgrades, key)
    if level >= spec.max_level:
        return None
    return spec.cost_at_level(level)


def purchase_upgrade(state: GameState, key: str) -> float:
    """Buy the next level of `key`. Returns the amount spent (0.0 when rejected)."""

    cost = upgrade_cost(state, key)
    if cost is None or state.cash < cost:
        return 0.0

    state.cash -= cost
    state.upgrades[key] = upgrade_level(state.upgrades, key) + 1
    if key == WORKER:
        state.daily_capacity = int(state.daily_capacity) * 2
    logger.info("purchased %s level %d for %.2f", key, state.upgrades[key], cost)
    return cost


def update_customer_service(state: GameState, customer_id: str, next_service: int) -> bool:
    cust = state.customers.get(customer_id)
    if cust is None:
        return False
    cust.next_service = max(0, int(next_service))
    return True


def add_customer_note(state: GameState, customer_id: str, note: str) -> bool:
    cust = state.customers.get(customer_id)
    if cust is None:
        return False
    cust.notes = str(note)
    return True


def churn_customer(state: GameState, customer_id: str) -> bool:
    cust: Optional[Customer] = state.customers.get(customer_id)
    if cust is None:
        return False
    cust.status = "churned"
    return True
