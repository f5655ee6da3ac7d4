from __future__ import annotations

from typing import Dict, List

from poopster.models import DayResult, GameState, Route, RouteCosts, WeeklyStats
from poopster.presets import HOUSE_TIERS, UPGRADES, upgrade_level
from poopster.route import get_route_stats


WEATHER_ICONS = {"clear": "☀️", "rain": "🌧️", "heat": "🔥"}


def format_money(x: float) -> str:
    sign = "-" if x < 0 else ""
    return f"{sign}${abs(x):,.2f}"


def upgrade_rows(state: GameState) -> List[Dict[str, object]]:
    """One row per upgrade: level, next price (None when maxed) and effect label."""

    rows: List[Dict[str, object]] = []
    for key, spec in UPGRADES.items():
        level = upgrade_level(state.upgrades, key)
        maxed = level >= spec.max_level
        rows.append(
            {
                "key": key,
                "name": spec.name,
                "description": spec.description,
                "level": level,
                "max_level": spec.max_level,
                "cost": None if maxed else spec.cost_at_level(level),
                "effect": spec.effect_label(level),
                "affordable": (not maxed) and state.cash >= spec.cost_at_level(level),
            }
        )
    return rows


def print_status(state: GameState) -> None:
    icon = WEATHER_ICONS.get(state.weather, "")
    print("\n------------------------------")
    print(f"Day {state.day}  {icon} {state.weather}")
    print(f"Cash: {format_money(state.cash)}")
    print(f"Houses: {len(state.houses)}  Selected: {len(state.selected_houses)}/{state.daily_capacity}")
    print(f"Satisfaction: {state.customer_satisfaction():.1f}")
    if state.is_day_active:
        print(f"Day running, {state.time_left:.1f}h left")
    print("------------------------------\n")


def print_houses(state: GameState) -> None:
    if not state.houses:
        print("No houses in town.")
        return
    selected = set(state.selected_houses)
    for h in sorted(state.houses, key=lambda x: (x.y, x.x)):
        tier = HOUSE_TIERS.get(h.tier)
        mark = "*" if h.house_id in selected else " "
        premium = " premium" if h.is_premium else ""
        print(
            f"{mark} {h.house_id:<10} ({h.x:>2},{h.y:>2})  {tier.name if tier else h.tier:<12}"
            f" dirt {h.dirtiness}  sat {h.satisfaction:>2}  {format_money(h.job_price())}{premium}"
        )


def print_route_preview(route: Route, costs: RouteCosts, time_budget: float) -> None:
    if not route.points:
        print("No houses selected.")
        return
    stats = get_route_stats(route)
    print(f"\n=== Route preview ({stats['houses']} stops) ===")
    print(" -> ".join(route.house_ids))
    print(f"Planned: {stats['distance']} tiles  {stats['time']}h  revenue ${stats['revenue']}  fuel ${stats['fuel']}")
    print(f"With upgrades and weather: {costs.total_time:.1f}h of {time_budget:.1f}h  fuel {format_money(costs.total_fuel)}")
    if costs.total_time > time_budget:
        print("Warning: route will not finish today; late stops will be missed.")


def print_day_result(dr: DayResult) -> None:
    print(f"\n=== Day {dr.day} report ===")
    print(f"Serviced: {dr.houses_serviced}  Missed: {dr.houses_missed}  Time used: {dr.time_used:.1f}h")
    print(f"Revenue: {format_money(dr.revenue)}")
    print(
        "  ".join(
            [
                f"Supplies {format_money(dr.cost_supplies)}",
                f"Fuel {format_money(dr.cost_fuel)}",
                f"Wages {format_money(dr.cost_wages)}",
                f"Weather {format_money(dr.cost_weather)}",
            ]
        )
    )
    print(f"Expenses: {format_money(dr.expenses)}  Profit: {format_money(dr.profit)}")
    if dr.churned_houses:
        print(f"Lost customers: {', '.join(dr.churned_houses)}")
    if dr.new_leads:
        print(f"New leads: {', '.join(h.house_id for h in dr.new_leads)}")


def print_last_day(state: GameState) -> None:
    if state.last_result is None:
        print("No day settled yet.")
        return
    print_day_result(state.last_result)
    for e in state.events:
        print(f"  {e}")


def print_weekly(stats: WeeklyStats) -> None:
    print(f"\n=== Week {stats.week} ({stats.days} day(s)) ===")
    print(f"Revenue: {format_money(stats.revenue)}  Expenses: {format_money(stats.expenses)}  Profit: {format_money(stats.profit)}")
    print(f"Serviced: {stats.houses_serviced}  Missed: {stats.houses_missed}  Efficiency: {stats.efficiency() * 100:.0f}%")
    print(f"New customers: {stats.new_customers}  Churned: {stats.churned_customers}  Retention: {stats.retention_rate():.0f}%")
    print(f"Average rating: {stats.average_rating():.1f}/5")


def print_totals(state: GameState) -> None:
    print("\n=== Totals ===")
    print(f"Revenue: {format_money(state.total_revenue)}  Expenses: {format_money(state.total_expenses)}")
    print(f"Profit: {format_money(state.total_profit)}")
    print(f"Serviced: {state.houses_serviced}  Missed: {state.houses_missed}")
    if state.milestones_reached:
        print("Milestones: " + ", ".join(format_money(m) for m in sorted(state.milestones_reached)))


def print_upgrades(state: GameState) -> None:
    for i, row in enumerate(upgrade_rows(state), start=1):
        cost = row["cost"]
        price = "MAX" if cost is None else format_money(float(cost))
        print(f"{i}) {row['name']:<16} Lv {row['level']}/{row['max_level']}  {price:<12} {row['effect']}")


def print_customers(state: GameState) -> None:
    if not state.customers:
        print("No customers yet.")
        return
    for cust in state.customers.values():
        note = f"  [{cust.notes}]" if cust.notes else ""
        print(
            f"- {cust.customer_id}: {cust.name}, {cust.address} ({cust.house_id})"
            f"  {cust.status}  next day {cust.next_service}{note}"
        )
