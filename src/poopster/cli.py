from __future__ import annotations

import logging
from typing import Optional

from poopster.engine import (
    add_customer_note,
    auto_plan_route,
    churn_customer,
    deselect_house,
    end_day,
    new_game,
    preview_route,
    purchase_upgrade,
    select_house,
    start_day,
    tick_day,
    update_customer_service,
)
from poopster.models import EngineConfig, GameState, TownConfig
from poopster.presets import UPGRADES
from poopster.reporting import (
    format_money,
    print_customers,
    print_houses,
    print_last_day,
    print_route_preview,
    print_status,
    print_totals,
    print_upgrades,
    print_weekly,
)
from poopster.storage import append_ledger_csv, load_or_new, reset_data_files, save_state


def _input_int(prompt: str, default: Optional[int] = None) -> Optional[int]:
    s = input(prompt).strip()
    if not s:
        return default
    try:
        return int(s)
    except ValueError:
        print("Invalid input: enter a whole number.")
        return None


def _input_float(prompt: str, default: Optional[float] = None) -> Optional[float]:
    s = input(prompt).strip()
    if not s:
        return default
    try:
        return float(s)
    except ValueError:
        print("Invalid input: enter a number.")
        return None


def _cmd_select(state: GameState) -> None:
    hid = input("House ID (e.g. house_3): ").strip()
    if not hid:
        return
    if state.is_day_active:
        print("Route is locked while the day is running.")
        return
    if select_house(state, hid):
        print(f"Selected {hid} ({len(state.selected_houses)}/{state.daily_capacity}).")
    elif state.house_by_id(hid) is None:
        print("No such house.")
    elif hid in state.selected_houses:
        print("Already selected.")
    else:
        print("Daily capacity reached.")


def _cmd_deselect(state: GameState) -> None:
    hid = input("House ID to drop: ").strip()
    if not hid:
        return
    if state.is_day_active:
        print("Route is locked while the day is running.")
        return
    if not deselect_house(state, hid):
        print("That house is not on the route.")


def _cmd_auto_plan(state: GameState) -> None:
    if state.is_day_active:
        print("Route is locked while the day is running.")
        return
    added = auto_plan_route(state)
    if added:
        print(f"Added {len(added)} house(s): {', '.join(added)}")
    else:
        print("Nothing to add.")


def _cmd_start_day(state: GameState, cfg: EngineConfig, town_cfg: TownConfig) -> None:
    if state.is_day_active:
        print("The day is already running.")
        return
    route = start_day(state, cfg, town_cfg)
    if route is None:
        print("Select at least one house first.")
        return
    print(f"Day {state.day} started: {len(route.points)} stop(s), {state.time_left:.1f}h on the clock.")


def _cmd_tick(state: GameState) -> None:
    if not state.is_day_active:
        print("No day is running.")
        return
    hours = _input_float("Hours to advance (default 1): ", 1.0)
    if hours is None:
        return
    left = tick_day(state, hours)
    print(f"{left:.1f}h left.")


def _cmd_end_day(state: GameState, cfg: EngineConfig, town_cfg: TownConfig) -> None:
    if not state.is_day_active:
        print("Nothing to settle: start a day first.")
        return
    dr = end_day(state, cfg, town_cfg)
    if dr is None:
        print("Nothing to settle: start a day first.")
        return
    try:
        append_ledger_csv(dr)
    except OSError as e:
        print(f"Ledger export failed: {e}")
    _autosave(state)
    print_last_day(state)


def _cmd_upgrades(state: GameState) -> None:
    print(f"\nCash: {format_money(state.cash)}")
    print_upgrades(state)
    n = _input_int("Buy which (0 = back): ", 0)
    if not n:
        return
    keys = list(UPGRADES.keys())
    if n < 1 or n > len(keys):
        print("No such upgrade.")
        return
    spent = purchase_upgrade(state, keys[n - 1])
    if spent > 0:
        print(f"Bought {UPGRADES[keys[n - 1]].name} for {format_money(spent)}.")
        _autosave(state)
    else:
        print("Cannot buy: maxed out or not enough cash.")


def _cmd_customers(state: GameState) -> None:
    print_customers(state)
    print("\n1) Reschedule  2) Add note  3) Mark churned  0) Back")
    sub = input("Choose: ").strip()
    if sub not in ("1", "2", "3"):
        return
    cid = input("Customer ID: ").strip()
    if cid not in state.customers:
        print("No such customer.")
        return
    if sub == "1":
        day = _input_int("Next service day: ")
        if day is not None:
            update_customer_service(state, cid, day)
    elif sub == "2":
        add_customer_note(state, cid, input("Note: ").strip())
    else:
        churn_customer(state, cid)
    _autosave(state)


def _cmd_reports(state: GameState) -> None:
    print("\n1) Last day  2) This week  3) Totals")
    sub = input("Choose: ").strip()
    if sub == "1":
        print_last_day(state)
    elif sub == "2":
        print_weekly(state.weekly_stats)
    elif sub == "3":
        print_totals(state)
    else:
        print("Invalid option.")


def _autosave(state: GameState) -> None:
    try:
        save_state(state)
    except OSError as e:
        print(f"Save failed: {e}")


def main() -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    cfg = EngineConfig()
    town_cfg = TownConfig()
    state = load_or_new(cfg=cfg, town_cfg=town_cfg)

    print("Poopster (CLI)")
    print("Pick houses, plan the route, scoop, get paid.\n")

    while True:
        print_status(state)
        print("1) List houses")
        print("2) Select house")
        print("3) Deselect house")
        print("4) Auto-plan route")
        print("5) Preview route")
        print("6) Start day")
        print("7) Advance clock")
        print("8) End day")
        print("9) Upgrades")
        print("10) Customers")
        print("11) Reports")
        print("12) Save")
        print("13) New game")
        print("0) Quit")

        try:
            choice = input("Choose: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return 0

        if choice == "1":
            print_houses(state)
        elif choice == "2":
            _cmd_select(state)
        elif choice == "3":
            _cmd_deselect(state)
        elif choice == "4":
            _cmd_auto_plan(state)
        elif choice == "5":
            route, costs = preview_route(state, cfg, town_cfg)
            print_route_preview(route, costs, cfg.day_time_budget)
        elif choice == "6":
            _cmd_start_day(state, cfg, town_cfg)
        elif choice == "7":
            _cmd_tick(state)
        elif choice == "8":
            _cmd_end_day(state, cfg, town_cfg)
        elif choice == "9":
            _cmd_upgrades(state)
        elif choice == "10":
            _cmd_customers(state)
        elif choice == "11":
            _cmd_reports(state)
        elif choice == "12":
            _autosave(state)
            print("Saved.")
        elif choice == "13":
            if input("Start over? Progress will be lost (y/N): ").strip().lower() == "y":
                reset_data_files()
                state = new_game(cfg=cfg, town_cfg=town_cfg)
                _autosave(state)
        elif choice == "0":
            _autosave(state)
            print("Bye.")
            return 0
        else:
            print("Invalid option: enter 0-13.")
