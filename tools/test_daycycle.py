from __future__ import annotations

import random

from poopster.daycycle import (
    calculate_weekly_summary,
    check_milestones,
    generate_leads,
    generate_weather,
    missed_penalty,
    settle_day,
)
from poopster.models import DayResult, EngineConfig, House, TownConfig
from poopster.presets import WEATHER_MESSAGES
from poopster.route import plan_route


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def _close(a: float, b: float, tol: float = 1e-6) -> bool:
    return abs(float(a) - float(b)) <= tol


def _pair() -> list[House]:
    return [
        House(house_id="house_0", x=0, y=0, base_price=25.0, dirtiness=1, satisfaction=3),
        House(house_id="house_1", x=1, y=0, base_price=25.0, dirtiness=1, satisfaction=3),
    ]


def _settle(houses, weather="clear", time_left=8.0, day=1, upgrades=None, cfg=None):
    c = cfg or EngineConfig()
    route = plan_route(houses, [h.house_id for h in houses], c)
    return settle_day(houses, route, upgrades or {}, weather, time_left, day, cfg=c, rng=random.Random(0))


def test_out_of_time_misses_every_house() -> None:
    houses = _pair()
    dr = _settle(houses, time_left=0.0)
    _assert(dr.houses_serviced == 0, "nothing should be serviced when the clock ran out")
    _assert(dr.houses_missed == 2, "every routed house should be missed")
    _assert(dr.revenue == 0.0 and dr.cost_supplies == 0.0 and dr.cost_fuel == 0.0, "no revenue or job costs")
    _assert(all(h.satisfaction == 2 for h in houses), "first miss costs one point")


def test_serviced_houses_pay_and_gain_satisfaction() -> None:
    houses = _pair()
    dr = _settle(houses, day=3)
    _assert(dr.houses_serviced == 2 and dr.houses_missed == 0, "both houses fit in the day")
    _assert(_close(dr.revenue, 2 * 27.5), f"unexpected revenue {dr.revenue}")
    _assert(_close(dr.cost_supplies, 10.0), f"unexpected supplies {dr.cost_supplies}")
    _assert(_close(dr.cost_fuel, 2.0), f"one tile of driving, got {dr.cost_fuel}")
    _assert(_close(dr.profit, dr.revenue - dr.expenses), "profit is revenue minus expenses")
    for h in houses:
        _assert(h.satisfaction == 5, "service adds two points")
        _assert(h.last_serviced == 3, "last_serviced should record the day")
        _assert(h.serviced, "serviced flag should be set")


def test_partial_completion_stops_at_budget() -> None:
    houses = [
        House(house_id="house_0", x=0, y=0),
        House(house_id="house_1", x=40, y=0),
        House(house_id="house_2", x=80, y=0),
    ]
    dr = _settle(houses)
    _assert(dr.serviced_ids == ["house_0", "house_1"], f"unexpected serviced {dr.serviced_ids}")
    _assert(dr.missed_ids == ["house_2"], f"unexpected missed {dr.missed_ids}")
    _assert(_close(dr.cost_fuel, 80.0), "fuel is only charged for driven legs")
    _assert(_close(dr.time_used, 0.2 + 4.2), f"unexpected time used {dr.time_used}")


def test_late_miss_is_harsher() -> None:
    cfg = EngineConfig()
    h = House(house_id="house_0", x=0, y=0, last_serviced=0)
    _assert(missed_penalty(h, 1, cfg) == cfg.satisfaction_missed, "first day counts as a plain miss")
    _assert(missed_penalty(h, 5, cfg) == cfg.satisfaction_late, "overdue house takes the late penalty")
    h.last_serviced = 4
    _assert(missed_penalty(h, 5, cfg) == cfg.satisfaction_missed, "recently serviced house is a plain miss")
    _assert(cfg.satisfaction_late < cfg.satisfaction_missed, "late should cost more than missed")


def test_repeated_misses_churn_house() -> None:
    houses = [House(house_id="house_0", x=0, y=0, satisfaction=2)]
    churned = []
    for day in range(1, 4):
        dr = _settle(houses, time_left=0.0, day=day)
        churned = dr.churned_houses
        if churned:
            break
    _assert(churned == ["house_0"], "house below zero satisfaction should churn")
    _assert(houses[0].satisfaction < 0, "churned house is below zero")


def test_rain_surcharges_expenses() -> None:
    dr = _settle([House(house_id="house_0", x=0, y=0)], weather="rain")
    _assert(dr.houses_serviced == 1, "single stop fits the day")
    _assert(_close(dr.cost_weather, 1.0), f"rain adds 20% of 5.0, got {dr.cost_weather}")
    _assert(_close(dr.expenses, 6.0), f"unexpected expenses {dr.expenses}")
    _assert(WEATHER_MESSAGES["rain"] in dr.new_events, "rain should log a flavor line")


def test_heat_logs_message_only() -> None:
    dr = _settle([House(house_id="house_0", x=0, y=0)], weather="heat")
    _assert(dr.cost_weather == 0.0, "heat has no expense surcharge")
    _assert(WEATHER_MESSAGES["heat"] in dr.new_events, "heat should log a flavor line")
    _assert("churn" not in WEATHER_MESSAGES["heat"].lower(), "heat message should not promise churn")
    _assert(dr.churned_houses == [], "heat alone does not churn anyone")


def test_upgrades_change_costs() -> None:
    dr = _settle([House(house_id="house_0", x=0, y=0)], upgrades={"worker": 1, "bag_capacity": 2})
    _assert(_close(dr.cost_wages, 50.0), "worker draws a daily wage")
    _assert(_close(dr.cost_supplies, 4.0), "bag capacity level 2 cuts supplies by 20%")


def test_leads_respect_chance_and_cap() -> None:
    houses = [House(house_id="house_3", x=0, y=0)]
    sure = EngineConfig(base_lead_chance=1.0)
    leads = generate_leads(houses, {}, random.Random(1), cfg=sure)
    _assert(len(leads) == 1, "guaranteed lead chance should add one house")
    _assert(leads[0].house_id == "house_4", f"lead should take the next id, got {leads[0].house_id}")

    never = EngineConfig(base_lead_chance=0.0)
    _assert(generate_leads(houses, {}, random.Random(1), cfg=never) == [], "zero chance adds nothing")

    full = TownConfig(max_houses=1)
    _assert(generate_leads(houses, {}, random.Random(1), cfg=sure, town_cfg=full) == [], "full town adds nothing")


def test_milestones() -> None:
    _assert(check_milestones(999) == [], "below first milestone")
    _assert(check_milestones(5000) == [1000, 5000], "milestones are inclusive")
    _assert(check_milestones(250000) == [1000, 5000, 15000, 50000, 100000], "all milestones reached")


def test_weekly_summary() -> None:
    days = [
        DayResult(day=1, revenue=100.0, expenses=30.0, profit=70.0, houses_serviced=3, houses_missed=1),
        DayResult(day=2, revenue=50.0, expenses=20.0, profit=30.0, houses_serviced=1, houses_missed=1, churned_houses=["house_1"]),
    ]
    ws = calculate_weekly_summary(days, week=0, customers_at_start=10)
    _assert(ws.days == 2, "two days aggregated")
    _assert(_close(ws.revenue, 150.0) and _close(ws.profit, 100.0), "revenue and profit should sum")
    _assert(_close(ws.efficiency(), 4 / 6), f"unexpected efficiency {ws.efficiency()}")
    _assert(_close(ws.retention_rate(), 90.0), f"unexpected retention {ws.retention_rate()}")

    empty = calculate_weekly_summary([])
    _assert(empty.retention_rate() == 100.0, "no customers means full retention")
    _assert(empty.efficiency() == 0.0, "no jobs means zero efficiency")


def test_weather_distribution() -> None:
    rng = random.Random(99)
    seen = {generate_weather(rng) for _ in range(500)}
    _assert(seen == {"clear", "rain", "heat"}, f"unexpected weather values {seen}")


def main() -> None:
    tests = [
        test_out_of_time_misses_every_house,
        test_serviced_houses_pay_and_gain_satisfaction,
        test_partial_completion_stops_at_budget,
        test_late_miss_is_harsher,
        test_repeated_misses_churn_house,
        test_rain_surcharges_expenses,
        test_heat_logs_message_only,
        test_upgrades_change_costs,
        test_leads_respect_chance_and_cap,
        test_milestones,
        test_weekly_summary,
        test_weather_distribution,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
