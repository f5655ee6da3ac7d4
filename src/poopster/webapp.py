from __future__ import annotations

import threading
from dataclasses import asdict
from typing import Any, Optional

from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

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
from poopster.models import Customer, DayResult, EngineConfig, GameState, House, Route, RouteCosts, TownConfig
from poopster.presets import HOUSE_TIERS, UPGRADES
from poopster.reporting import upgrade_rows
from poopster.route import get_route_stats, get_route_visualization, is_route_valid
from poopster.storage import (
    append_ledger_csv,
    data_dir,
    ledger_path,
    load_or_new,
    read_ledger_rows,
    reset_data_files,
    save_state,
    state_path,
)
from poopster.town import get_road_positions


_lock = threading.Lock()

# Between-request state that is not part of the save file.
_session: dict = {}


def _ensure_state(cfg: EngineConfig, town_cfg: TownConfig) -> GameState:
    state = _session.get("state")
    if state is not None:
        return state
    state = load_or_new(cfg=cfg, town_cfg=town_cfg)
    if not state_path().exists():
        save_state(state)
    _session["state"] = state
    return state


def _error(message: str, code: str) -> dict:
    return {"error": message, "code": code}


def _as_dict(payload: Any) -> Optional[dict]:
    # Missing body reads as empty; anything but a JSON object is rejected.
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


def create_app(cfg: Optional[EngineConfig] = None, town_cfg: Optional[TownConfig] = None) -> FastAPI:
    app = FastAPI(title="Poopster API")

    # Allow Vite dev server or other local frontends.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    data_dir()
    _session.clear()

    c = cfg or EngineConfig()
    tc = town_cfg or TownConfig()

    def _house_to_dto(h: House, selected: set) -> dict:
        tier = HOUSE_TIERS.get(h.tier)
        return {
            "house_id": h.house_id,
            "x": h.x,
            "y": h.y,
            "tier": h.tier,
            "color": tier.color if tier else "",
            "size": tier.size if tier else 1.0,
            "base_price": h.base_price,
            "job_price": round(h.job_price(c), 2),
            "dirtiness": h.dirtiness,
            "frequency": h.frequency,
            "last_serviced": h.last_serviced,
            "satisfaction": h.satisfaction,
            "is_premium": h.is_premium,
            "serviced": h.serviced,
            "selected": h.house_id in selected,
        }

    def _route_to_dto(route: Optional[Route], costs: Optional[RouteCosts] = None) -> Optional[dict]:
        if route is None:
            return None
        out = {
            "points": [asdict(p) for p in route.points],
            "path": [list(xy) for xy in get_route_visualization(route)],
            "stats": get_route_stats(route),
            "valid": is_route_valid(route, c.day_time_budget),
        }
        if costs is not None:
            out["estimate"] = {
                "distance": round(costs.total_distance, 2),
                "time": round(costs.total_time, 2),
                "fuel": round(costs.total_fuel, 2),
                "fits_day": costs.total_time <= c.day_time_budget,
            }
        return out

    def _customer_to_dto(cust: Customer) -> dict:
        return asdict(cust)

    def _result_to_dto(dr: Optional[DayResult]) -> Optional[dict]:
        if dr is None:
            return None
        out = asdict(dr)
        out["new_leads"] = [h.house_id for h in dr.new_leads]
        return out

    def _state_to_dto(state: GameState) -> dict:
        selected = set(state.selected_houses)
        ws = state.weekly_stats
        return {
            "day": state.day,
            "cash": round(state.cash, 2),
            "time_left": round(state.time_left, 2),
            "day_time_budget": c.day_time_budget,
            "is_day_active": state.is_day_active,
            "weather": state.weather,
            "daily_capacity": state.daily_capacity,
            "selected_houses": list(state.selected_houses),
            "houses": [_house_to_dto(h, selected) for h in state.houses],
            "grid": {"width": tc.grid_width, "height": tc.grid_height},
            "current_route": _route_to_dto(state.current_route),
            "upgrades": upgrade_rows(state),
            "customers": [_customer_to_dto(cust) for cust in state.customers.values()],
            "satisfaction": round(state.customer_satisfaction(), 2),
            "totals": {
                "revenue": round(state.total_revenue, 2),
                "expenses": round(state.total_expenses, 2),
                "profit": round(state.total_profit, 2),
                "houses_serviced": state.houses_serviced,
                "houses_missed": state.houses_missed,
            },
            "weekly_stats": {
                **asdict(ws),
                "efficiency": round(ws.efficiency(), 4),
                "retention_rate": round(ws.retention_rate(), 2),
                "average_rating": round(ws.average_rating(), 2),
            },
            "milestones_reached": list(state.milestones_reached),
            "events": list(state.events),
            "last_result": _result_to_dto(state.last_result),
        }

    @app.get("/")
    def root():
        return {
            "name": "poopster",
            "api": "/api/state",
            "downloads": ["/download/state", "/download/ledger"],
        }

    @app.get("/api/state")
    def api_state():
        with _lock:
            state = _ensure_state(c, tc)
            dto = _state_to_dto(state)
        return dto

    @app.get("/api/roads")
    def api_roads():
        return {"roads": [list(p) for p in get_road_positions(tc)]}

    @app.post("/api/houses/{house_id}/select")
    def api_house_select(house_id: str):
        with _lock:
            state = _ensure_state(c, tc)
            if state.is_day_active:
                return _error("route is locked while the day is running", "day_active")
            if state.house_by_id(house_id) is None:
                return _error(f"house not found: {house_id}", "house_not_found")
            if house_id in state.selected_houses:
                return _error("house already selected", "already_selected")
            if not select_house(state, house_id):
                return _error("daily capacity reached", "capacity_reached")
            dto = _state_to_dto(state)
        return dto

    @app.post("/api/houses/{house_id}/deselect")
    def api_house_deselect(house_id: str):
        with _lock:
            state = _ensure_state(c, tc)
            if state.is_day_active:
                return _error("route is locked while the day is running", "day_active")
            if not deselect_house(state, house_id):
                return _error("house is not selected", "not_selected")
            dto = _state_to_dto(state)
        return dto

    @app.post("/api/route/auto-plan")
    def api_route_auto_plan():
        with _lock:
            state = _ensure_state(c, tc)
            if state.is_day_active:
                return _error("route is locked while the day is running", "day_active")
            added = auto_plan_route(state)
            dto = _state_to_dto(state)
        dto["added"] = added
        return dto

    @app.get("/api/route/preview")
    def api_route_preview():
        with _lock:
            state = _ensure_state(c, tc)
            route, costs = preview_route(state, c, tc)
            dto = _route_to_dto(route, costs)
        return dto

    @app.post("/api/day/start")
    def api_day_start():
        with _lock:
            state = _ensure_state(c, tc)
            route = start_day(state, c, tc)
            if route is None:
                return _error("select at least one house first", "no_selection")
            dto = _state_to_dto(state)
        return dto

    @app.post("/api/day/tick")
    def api_day_tick(payload: Any = Body(default=None)):  # {hours:float}
        body = _as_dict(payload)
        if body is None:
            return _error("request body must be a JSON object", "invalid_body")
        try:
            hours = float(body.get("hours", 1.0) or 0.0)
        except (TypeError, ValueError):
            return _error("hours must be a number", "invalid_hours")
        with _lock:
            state = _ensure_state(c, tc)
            if not state.is_day_active:
                return _error("no day is running", "day_inactive")
            tick_day(state, hours)
            dto = _state_to_dto(state)
        return dto

    @app.post("/api/day/end")
    def api_day_end():
        with _lock:
            state = _ensure_state(c, tc)
            if not state.is_day_active:
                return _error("no day is running", "day_inactive")
            dr = end_day(state, c, tc)
            if dr is None:
                return _error("no day is running", "day_inactive")
            append_ledger_csv(dr)
            save_state(state)
            dto = _state_to_dto(state)
        return dto

    @app.post("/api/upgrades/{key}/purchase")
    def api_upgrade_purchase(key: str):
        with _lock:
            state = _ensure_state(c, tc)
            if key not in UPGRADES:
                return _error(f"unknown upgrade: {key}", "upgrade_not_found")
            spent = purchase_upgrade(state, key)
            if spent <= 0:
                return _error("upgrade maxed out or not enough cash", "purchase_rejected")
            save_state(state)
            dto = _state_to_dto(state)
        dto["spent"] = spent
        return dto

    @app.put("/api/customers/{customer_id}")
    def api_customer_update(customer_id: str, payload: Any = Body(default=None)):
        body = _as_dict(payload)
        if body is None:
            return _error("request body must be a JSON object", "invalid_body")
        with _lock:
            state = _ensure_state(c, tc)
            if customer_id not in state.customers:
                return _error(f"customer not found: {customer_id}", "customer_not_found")
            if "next_service" in body:
                try:
                    update_customer_service(state, customer_id, int(body["next_service"]))
                except (TypeError, ValueError):
                    return _error("next_service must be an integer day", "invalid_next_service")
            if "notes" in body:
                add_customer_note(state, customer_id, str(body.get("notes") or ""))
            if str(body.get("status") or "") == "churned":
                churn_customer(state, customer_id)
            save_state(state)
            dto = _customer_to_dto(state.customers[customer_id])
        return dto

    @app.post("/api/reset")
    def api_reset(payload: Any = Body(default=None)):  # {seed:int}
        body = _as_dict(payload)
        if body is None:
            return _error("request body must be a JSON object", "invalid_body")
        seed = body.get("seed")
        try:
            seed_i = int(seed) if seed is not None else None
        except (TypeError, ValueError):
            return _error("seed must be an integer", "invalid_seed")
        with _lock:
            reset_data_files()
            state = new_game(seed=seed_i, cfg=c, town_cfg=tc)
            save_state(state)
            _session["state"] = state
            dto = _state_to_dto(state)
        return dto

    @app.get("/api/ledger")
    def api_ledger(limit: int = 30):
        with _lock:
            rows = read_ledger_rows()
        return {"rows": rows[-max(1, int(limit)):]}

    @app.get("/download/state")
    def download_state():
        with _lock:
            state = _ensure_state(c, tc)
            save_state(state)
        return FileResponse(str(state_path()), filename="poopster_game_state.json")

    @app.get("/download/ledger")
    def download_ledger():
        p = ledger_path()
        if not p.exists():
            p.write_text("", encoding="utf-8")
        return FileResponse(str(p), filename="ledger.csv")

    return app


app = create_app()
