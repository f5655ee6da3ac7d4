from __future__ import annotations

import csv
import json
import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

from poopster.engine import new_game
from poopster.models import Customer, DayResult, EngineConfig, GameState, House, TownConfig, WeeklyStats
from poopster.presets import STORAGE_KEY

logger = logging.getLogger(__name__)

SAVE_VERSION = "1.0.0"

# Fields written to the save file; everything else is rebuilt at load.
PERSISTED_FIELDS = (
    "day",
    "cash",
    "houses",
    "upgrades",
    "daily_capacity",
    "total_revenue",
    "total_expenses",
    "total_profit",
    "houses_serviced",
    "houses_missed",
    "weather",
    "weekly_stats",
    "customers",
    "milestones_reached",
    "rng_seed",
    "rng_state",
)


def project_root() -> Path:
    # .../src/poopster/storage.py -> parents[2] == project root
    return Path(__file__).resolve().parents[2]


def data_dir() -> Path:
    override = os.environ.get("POOPSTER_DATA_DIR")
    p = Path(override) if override else project_root() / "data"
    p.mkdir(parents=True, exist_ok=True)
    return p


def state_path() -> Path:
    return data_dir() / f"{STORAGE_KEY}.json"


def ledger_path() -> Path:
    return data_dir() / "ledger.csv"


def reset_data_files() -> None:
    """Delete persisted state and ledger."""

    for fp in [state_path(), ledger_path()]:
        fp.unlink(missing_ok=True)


def save_state(state: GameState, path: Path | None = None) -> None:
    p = path or state_path()
    full = asdict(state)
    payload = {
        "version": SAVE_VERSION,
        "key": STORAGE_KEY,
        "state": {k: full[k] for k in PERSISTED_FIELDS},
    }
    p.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def _load_house(d: Dict[str, Any]) -> House:
    return House(
        house_id=str(d.get("house_id", "")),
        x=int(d.get("x", 0)),
        y=int(d.get("y", 0)),
        tier=str(d.get("tier", "SMALL")),
        base_price=float(d.get("base_price", 25.0)),
        dirtiness=max(1, int(d.get("dirtiness", 1))),
        frequency=str(d.get("frequency", "weekly")),
        last_serviced=int(d.get("last_serviced", 0) or 0),
        satisfaction=int(d.get("satisfaction", 0)),
        is_premium=bool(d.get("is_premium", False)),
        serviced=bool(d.get("serviced", False)),
    )


def _load_customer(cid: str, d: Dict[str, Any]) -> Customer:
    return Customer(
        customer_id=str(d.get("customer_id", cid)),
        house_id=str(d.get("house_id", "")),
        name=str(d.get("name", cid)),
        address=str(d.get("address", "")),
        tier=str(d.get("tier", "SMALL")),
        last_service=int(d.get("last_service", 0) or 0),
        next_service=int(d.get("next_service", 0) or 0),
        status=str(d.get("status", "pending")),
        notes=str(d.get("notes", "")),
    )


def _load_weekly(d: Any) -> WeeklyStats:
    if not isinstance(d, dict):
        return WeeklyStats()
    return WeeklyStats(
        week=int(d.get("week", 0)),
        days=int(d.get("days", 0)),
        revenue=float(d.get("revenue", 0.0)),
        expenses=float(d.get("expenses", 0.0)),
        profit=float(d.get("profit", 0.0)),
        houses_serviced=int(d.get("houses_serviced", 0)),
        houses_missed=int(d.get("houses_missed", 0)),
        new_customers=int(d.get("new_customers", 0)),
        churned_customers=int(d.get("churned_customers", 0)),
        customers_at_start=int(d.get("customers_at_start", 0)),
        rating_sum=float(d.get("rating_sum", 0.0)),
    )


def load_state(path: Path | None = None, cfg: Optional[EngineConfig] = None) -> GameState:
    """Read a save file. Raises ValueError when the payload is unusable."""

    p = path or state_path()
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
        d = payload["state"]
        state = GameState(day=max(1, int(d.get("day", 1))), cash=float(d.get("cash", 0.0)))
        state.houses = [_load_house(h) for h in (d.get("houses") or [])]
        state.upgrades = {str(k): int(v) for k, v in (d.get("upgrades") or {}).items()}
        state.daily_capacity = max(1, int(d.get("daily_capacity", state.daily_capacity)))
        state.total_revenue = float(d.get("total_revenue", 0.0))
        state.total_expenses = float(d.get("total_expenses", 0.0))
        state.total_profit = float(d.get("total_profit", 0.0))
        state.houses_serviced = int(d.get("houses_serviced", 0))
        state.houses_missed = int(d.get("houses_missed", 0))
        state.weather = str(d.get("weather", "clear"))
        state.weekly_stats = _load_weekly(d.get("weekly_stats"))
        state.customers = {
            str(cid): _load_customer(str(cid), cd) for cid, cd in (d.get("customers") or {}).items()
        }
        state.milestones_reached = [int(m) for m in (d.get("milestones_reached") or [])]
        state.rng_seed = int(d.get("rng_seed", state.rng_seed))
        state.rng_state = d.get("rng_state")
    except (KeyError, TypeError, AttributeError, json.JSONDecodeError) as e:
        raise ValueError(f"unreadable save file {p}: {e}") from e

    # A saved game is always between days.
    state.is_day_active = False
    state.current_route = None
    state.selected_houses = []
    state.time_left = float((cfg or EngineConfig()).day_time_budget)
    return state


def load_or_new(
    path: Path | None = None,
    seed: Optional[int] = None,
    cfg: Optional[EngineConfig] = None,
    town_cfg: Optional[TownConfig] = None,
) -> GameState:
    """Load the save file, falling back to a fresh game when missing or corrupt."""

    p = path or state_path()
    if p.exists():
        try:
            return load_state(p, cfg=cfg)
        except (OSError, ValueError) as e:
            logger.warning("could not load %s (%s); starting a new game", p, e)
    return new_game(seed=seed, cfg=cfg, town_cfg=town_cfg)


LEDGER_COLUMNS = [
    "day",
    "weather",
    "revenue",
    "expenses",
    "profit",
    "houses_serviced",
    "houses_missed",
    "cost_supplies",
    "cost_fuel",
    "cost_wages",
    "cost_weather",
    "time_used",
    "serviced_ids_json",
    "missed_ids_json",
    "churned_houses_json",
    "new_leads_json",
    "events_json",
]


def append_ledger_csv(day_result: DayResult) -> None:
    p = ledger_path()
    write_header = (not p.exists()) or (p.stat().st_size <= 0)
    with p.open("a", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        if write_header:
            w.writerow(LEDGER_COLUMNS)
        w.writerow(
            [
                day_result.day,
                day_result.weather,
                round(day_result.revenue, 4),
                round(day_result.expenses, 4),
                round(day_result.profit, 4),
                day_result.houses_serviced,
                day_result.houses_missed,
                round(day_result.cost_supplies, 4),
                round(day_result.cost_fuel, 4),
                round(day_result.cost_wages, 4),
                round(day_result.cost_weather, 4),
                round(day_result.time_used, 4),
                json.dumps(day_result.serviced_ids, ensure_ascii=False),
                json.dumps(day_result.missed_ids, ensure_ascii=False),
                json.dumps(day_result.churned_houses, ensure_ascii=False),
                json.dumps([h.house_id for h in day_result.new_leads], ensure_ascii=False),
                json.dumps(day_result.new_events, ensure_ascii=False),
            ]
        )


def read_ledger_rows() -> list[dict]:
    p = ledger_path()
    if not p.exists():
        return []
    with p.open("r", encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))
