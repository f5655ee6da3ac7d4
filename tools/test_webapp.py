from __future__ import annotations

import os
import tempfile

from fastapi.testclient import TestClient

from poopster.models import EngineConfig, TownConfig
from poopster.webapp import create_app


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def _client(seed: int = 7) -> TestClient:
    os.environ["POOPSTER_DATA_DIR"] = tempfile.mkdtemp(prefix="poopster_web_")
    c = TestClient(create_app())
    c.post("/api/reset", json={"seed": seed})
    return c


def test_state_after_reset() -> None:
    c = _client()
    s = c.get("/api/state").json()
    _assert(s["day"] == 1, "fresh game starts on day 1")
    _assert(len(s["houses"]) == 20, "fresh town has 20 houses")
    _assert(len(s["customers"]) == 20, "one customer per house")
    _assert(s["daily_capacity"] == 8, "base capacity is 8")
    _assert(not s["is_day_active"], "no day is running")
    _assert({u["key"] for u in s["upgrades"]} >= {"worker", "route_planner"}, "upgrade table should be listed")


def test_select_and_deselect() -> None:
    c = _client()
    hid = c.get("/api/state").json()["houses"][0]["house_id"]
    s = c.post(f"/api/houses/{hid}/select").json()
    _assert(s["selected_houses"] == [hid], "house should be selected")
    again = c.post(f"/api/houses/{hid}/select").json()
    _assert(again.get("code") == "already_selected", "duplicate select is rejected")
    missing = c.post("/api/houses/house_999/select").json()
    _assert(missing.get("code") == "house_not_found", "unknown house is rejected")
    s = c.post(f"/api/houses/{hid}/deselect").json()
    _assert(s["selected_houses"] == [], "house should be deselected")
    _assert(c.post(f"/api/houses/{hid}/deselect").json().get("code") == "not_selected", "second deselect fails")


def test_day_flow() -> None:
    c = _client()
    s = c.post("/api/route/auto-plan").json()
    _assert(len(s["selected_houses"]) == 8 and len(s["added"]) == 8, "auto plan fills capacity")

    preview = c.get("/api/route/preview").json()
    _assert(preview["stats"]["houses"] == 8, "preview should cover the selection")
    _assert("estimate" in preview, "preview should include the cost estimate")

    s = c.post("/api/day/start").json()
    _assert(s["is_day_active"] and s["current_route"] is not None, "day should be running with a route")
    _assert(c.post("/api/route/auto-plan").json().get("code") == "day_active", "route is locked during the day")

    s = c.post("/api/day/tick", json={"hours": 2}).json()
    _assert(abs(s["time_left"] - 6.0) < 1e-9, f"expected 6h left, got {s['time_left']}")

    s = c.post("/api/day/end").json()
    _assert(s["day"] == 2 and not s["is_day_active"], "day should advance and stop")
    lr = s["last_result"]
    _assert(lr is not None and lr["houses_serviced"] + lr["houses_missed"] == 8, "result should cover the route")
    _assert(c.post("/api/day/end").json().get("code") == "day_inactive", "ending twice is rejected")
    _assert(c.post("/api/day/tick", json={"hours": 1}).json().get("code") == "day_inactive", "tick needs a running day")

    r = c.get("/download/ledger")
    _assert(r.status_code == 200 and "houses_serviced" in r.text, "ledger should hold the settled day")


def test_start_without_selection() -> None:
    c = _client()
    _assert(c.post("/api/day/start").json().get("code") == "no_selection", "empty selection cannot start")


def test_upgrade_purchase() -> None:
    c = _client()
    s = c.post("/api/upgrades/walking_speed/purchase").json()
    _assert(abs(s["spent"] - 300.0) < 1e-9, "walking speed costs 300 at level 0")
    _assert(abs(s["cash"] - 700.0) < 1e-9, "cash should drop by the price")
    _assert(c.post("/api/upgrades/worker/purchase").json().get("code") == "purchase_rejected", "not enough cash")
    _assert(c.post("/api/upgrades/jetpack/purchase").json().get("code") == "upgrade_not_found", "unknown upgrade")


def test_customer_update() -> None:
    c = _client()
    cid = c.get("/api/state").json()["customers"][0]["customer_id"]
    cust = c.put(f"/api/customers/{cid}", json={"next_service": 9, "notes": "gate code 1234"}).json()
    _assert(cust["next_service"] == 9 and cust["notes"] == "gate code 1234", "customer fields should update")
    cust = c.put(f"/api/customers/{cid}", json={"status": "churned"}).json()
    _assert(cust["status"] == "churned", "customer should be churned")
    _assert(c.put("/api/customers/customer_999", json={}).json().get("code") == "customer_not_found", "unknown customer")


def test_injected_config_drives_first_game() -> None:
    os.environ["POOPSTER_DATA_DIR"] = tempfile.mkdtemp(prefix="poopster_web_")
    cfg = EngineConfig(starting_cash=5000.0, base_daily_capacity=4, day_time_budget=6.0)
    town = TownConfig(grid_width=10, grid_height=10, starting_houses=5)
    c = TestClient(create_app(cfg, town))
    s = c.get("/api/state").json()
    _assert(s["cash"] == 5000.0, f"expected configured cash, got {s['cash']}")
    _assert(s["daily_capacity"] == 4, "capacity should come from the config")
    _assert(s["grid"] == {"width": 10, "height": 10}, "grid should match the config")
    _assert(0 < len(s["houses"]) <= 5, "town should follow the configured size")
    for h in s["houses"]:
        _assert(h["x"] < 10 and h["y"] < 10, "houses should sit inside the configured grid")


def test_bad_request_bodies_are_rejected() -> None:
    c = _client()
    _assert(c.post("/api/reset", json={"seed": "abc"}).json().get("code") == "invalid_seed", "non-numeric seed")
    _assert(c.post("/api/reset", json=[1, 2]).json().get("code") == "invalid_body", "reset needs an object body")
    c.post("/api/route/auto-plan")
    c.post("/api/day/start")
    _assert(c.post("/api/day/tick", json=[3]).json().get("code") == "invalid_body", "tick needs an object body")
    _assert(c.post("/api/day/tick", json={"hours": "soon"}).json().get("code") == "invalid_hours", "hours must be numeric")
    cid = c.get("/api/state").json()["customers"][0]["customer_id"]
    _assert(c.put(f"/api/customers/{cid}", json="x").json().get("code") == "invalid_body", "customer update needs an object")


def test_state_download() -> None:
    c = _client()
    r = c.get("/download/state")
    _assert(r.status_code == 200, "state download should succeed")
    payload = r.json()
    _assert(payload.get("key") == "poopster_game_state", "save should carry the storage key")
    _assert(len(payload["state"]["houses"]) == 20, "save should hold the town")


def main() -> None:
    tests = [
        test_state_after_reset,
        test_select_and_deselect,
        test_day_flow,
        test_start_without_selection,
        test_upgrade_purchase,
        test_customer_update,
        test_injected_config_drives_first_game,
        test_bad_request_bodies_are_rejected,
        test_state_download,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
