from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from poopster.models import EngineConfig, House, Route, RouteCosts, RoutePoint, TownConfig
from poopster.presets import ROUTE_PLANNER, VAN_SPEED, WALKING_SPEED, upgrade_effect


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x2 - x1, y2 - y1)


def path_length(points: List[RoutePoint]) -> float:
    total = 0.0
    for prev, cur in zip(points, points[1:]):
        total += distance(prev.x, prev.y, cur.x, cur.y)
    return total


def _finalize(points: List[RoutePoint], cfg: EngineConfig) -> Route:
    total_time = 0.0
    total_revenue = 0.0
    for i, p in enumerate(points):
        drive = 0.0
        if i > 0:
            prev = points[i - 1]
            drive = distance(prev.x, prev.y, p.x, p.y) * cfg.tile_drive_time
        p.estimated_time = drive + cfg.base_scoop_time
        total_time += p.estimated_time
        total_revenue += p.estimated_revenue

    # Flat planner improvement for projections.
    factor = 1.0 - float(cfg.auto_route_improvement)
    total_distance = path_length(points) * factor
    total_time *= factor
    return Route(
        points=points,
        total_distance=total_distance,
        total_time=total_time,
        total_revenue=total_revenue,
        total_fuel=total_distance * cfg.fuel_cost_per_tile,
    )


def plan_route(
    houses: List[House],
    selected_ids: Iterable[str],
    cfg: Optional[EngineConfig] = None,
    town_cfg: Optional[TownConfig] = None,
) -> Route:
    """Nearest-neighbour tour over the selected houses, seeded from the town centre.

    Ties go to the first candidate in `houses` order.
    """

    c = cfg or EngineConfig()
    wanted = set(selected_ids)
    unvisited = [h for h in houses if h.house_id in wanted]
    if not unvisited:
        return Route()

    cx, cy = (town_cfg or TownConfig()).center()
    start = unvisited[0]
    best = distance(cx, cy, start.x, start.y)
    for h in unvisited:
        d = distance(cx, cy, h.x, h.y)
        if d < best:
            best = d
            start = h
    unvisited.remove(start)

    points = [RoutePoint(house_id=start.house_id, x=start.x, y=start.y, estimated_revenue=start.job_price(c))]
    cur_x, cur_y = start.x, start.y
    while unvisited:
        nearest = unvisited[0]
        best = distance(cur_x, cur_y, nearest.x, nearest.y)
        for h in unvisited:
            d = distance(cur_x, cur_y, h.x, h.y)
            if d < best:
                best = d
                nearest = h
        points.append(
            RoutePoint(house_id=nearest.house_id, x=nearest.x, y=nearest.y, estimated_revenue=nearest.job_price(c))
        )
        cur_x, cur_y = nearest.x, nearest.y
        unvisited.remove(nearest)

    return _finalize(points, c)


def improve_route(route: Route, cfg: Optional[EngineConfig] = None) -> Route:
    """2-opt pass: reverse inner segments while the path strictly shortens.

    Endpoints stay fixed. Mutates and returns `route`.
    """

    points = route.points
    n = len(points)
    if n < 4:
        return route

    best = path_length(points)
    changed = False
    improved = True
    while improved:
        improved = False
        for i in range(1, n - 2):
            for j in range(i + 1, n - 1):
                candidate = points[:i] + points[i : j + 1][::-1] + points[j + 1 :]
                d = path_length(candidate)
                if d < best - 1e-9:
                    best = d
                    points = candidate
                    improved = True
                    changed = True
                    break
            if improved:
                break

    if changed:
        fresh = _finalize(points, cfg or EngineConfig())
        route.points = fresh.points
        route.total_distance = fresh.total_distance
        route.total_time = fresh.total_time
        route.total_revenue = fresh.total_revenue
        route.total_fuel = fresh.total_fuel
    return route


def weather_multipliers(weather: str, cfg: Optional[EngineConfig] = None) -> Tuple[float, float]:
    """Return (time_multiplier, fuel_multiplier)."""

    c = cfg or EngineConfig()
    if weather == "rain":
        return float(c.rain_time_multiplier), float(c.rain_fuel_multiplier)
    if weather == "heat":
        # AC usage
        return 1.0, float(c.heat_fuel_multiplier)
    return 1.0, 1.0


def apply_weather_effects(
    base_time: float, base_fuel: float, weather: str, cfg: Optional[EngineConfig] = None
) -> Tuple[float, float]:
    tm, fm = weather_multipliers(weather, cfg)
    return float(base_time) * tm, float(base_fuel) * fm


def estimate_route_costs(
    route: Route,
    upgrades: Optional[Mapping[str, int]] = None,
    weather: str = "clear",
    cfg: Optional[EngineConfig] = None,
) -> RouteCosts:
    """Time and fuel for driving `route` with the owned upgrades and weather.

    Shared by the pre-day preview and the end-of-day settlement.
    """

    c = cfg or EngineConfig()
    planner = upgrade_effect(upgrades, ROUTE_PLANNER)
    van = upgrade_effect(upgrades, VAN_SPEED)
    walking = upgrade_effect(upgrades, WALKING_SPEED)
    time_mult, fuel_mult = weather_multipliers(weather, c)

    out = RouteCosts()
    for i, p in enumerate(route.points):
        leg = 0.0
        if i > 0:
            prev = route.points[i - 1]
            leg = distance(prev.x, prev.y, p.x, p.y) * planner
        stop_time = (leg * c.tile_drive_time * van + c.base_scoop_time * walking) * time_mult
        stop_fuel = leg * c.fuel_cost_per_tile * fuel_mult
        out.stop_times.append(stop_time)
        out.stop_fuel.append(stop_fuel)
        out.total_distance += leg
        out.total_time += stop_time
        out.total_fuel += stop_fuel
    return out


def get_route_visualization(route: Route) -> List[Tuple[int, int]]:
    return [(p.x, p.y) for p in route.points]


def is_route_valid(route: Route, time_budget: float) -> bool:
    return route.total_time <= float(time_budget)


def get_route_stats(route: Route) -> Dict[str, float]:
    return {
        "houses": len(route.points),
        "distance": round(route.total_distance, 1),
        "time": round(route.total_time, 1),
        "revenue": int(round(route.total_revenue)),
        "fuel": int(round(route.total_fuel)),
    }
