import argparse
from pathlib import Path

import sys

# Make `src/` importable when running as a script.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from poopster.engine import auto_plan_route, end_day, new_game, purchase_upgrade, start_day, tick_day
from poopster.models import EngineConfig, GameState
from poopster.presets import UPGRADES
from poopster.storage import save_state


# Cheapest first; the bot buys whatever it can afford after each day.
BUY_ORDER = ["walking_speed", "van_speed", "bag_capacity", "marketing", "route_planner", "premium_addon", "worker"]


def build_state(days: int, seed: int, hours_per_day: float = 6.0) -> GameState:
    """Play `days` days with an auto-planning bot and return the resulting state."""

    cfg = EngineConfig()
    state = new_game(seed=seed, cfg=cfg)
    for _ in range(days):
        auto_plan_route(state)
        if start_day(state, cfg) is None:
            break
        tick_day(state, hours_per_day)
        end_day(state, cfg)
        for key in BUY_ORDER:
            if key in UPGRADES:
                purchase_upgrade(state, key)
    return state


def main() -> int:
    ap = argparse.ArgumentParser(description="Generate a played-in save file for testing")
    ap.add_argument("--days", type=int, default=30)
    ap.add_argument("--seed", type=int, default=20260129)
    ap.add_argument(
        "--out",
        type=str,
        default=str(Path(__file__).resolve().parents[1] / "data" / "state_test_30d.json"),
    )
    args = ap.parse_args()

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)

    state = build_state(days=max(1, int(args.days)), seed=int(args.seed))
    save_state(state, path=out)
    print(f"wrote: {out}")
    print(f"day: {state.day}  cash: {state.cash:.2f}  houses: {len(state.houses)}  upgrades: {state.upgrades}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
