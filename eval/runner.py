"""Eval runner - loads scenarios and runs them through the planning engine."""

import sys
from datetime import date, time
from pathlib import Path
from typing import Any

import yaml

from backend.parkplan.adapters.fixtures import load_reference_data
from backend.parkplan.config import Settings
from backend.parkplan.models import (
    Anchor,
    ParkDaySchedule,
    PlanInput,
    PlanningSnapshot,
    RideInfo,
    TripPlan,
    WaitCurveSnapshot,
    WaitPoint,
)
from backend.parkplan.scheduling.engine import build_trip_plan
from backend.parkplan.scheduling.errors import PlanningError
from backend.parkplan.utils.timeutils import from_minutes, to_minutes

SCENARIOS_PATH = Path(__file__).parent / "scenarios.yaml"


def load_scenarios(path: Path = SCENARIOS_PATH) -> dict[str, Any]:
    """Load scenarios from YAML."""
    with open(path) as f:
        result: dict[str, Any] = yaml.safe_load(f)
        return result


def _hourly_curve(waits: list[int], open_time: time) -> list[WaitPoint]:
    start = to_minutes(open_time)
    return [
        WaitPoint(time_slot=from_minutes(start + 60 * i), wait_minutes=wait)
        for i, wait in enumerate(waits)
    ]


def build_snapshot_from_yaml(scenario: dict[str, Any]) -> PlanningSnapshot:
    """Build a PlanningSnapshot from a scenario's parks, rides and shows."""
    park_days: list[ParkDaySchedule] = []
    for park in scenario["parks"]:
        for day in park["days"]:
            park_days.append(
                ParkDaySchedule(
                    park_id=park["park_id"],
                    date=date.fromisoformat(str(day["date"])),
                    open_time=time.fromisoformat(day["open"]),
                    close_time=time.fromisoformat(day["close"]),
                    extended_close_time=(
                        time.fromisoformat(day["extended_close"]) if "extended_close" in day else None
                    ),
                )
            )

    rides: list[RideInfo] = []
    curves: list[WaitCurveSnapshot] = []
    for ride_data in scenario["rides"]:
        rides.append(
            RideInfo(
                id=ride_data["id"],
                name=ride_data["name"],
                park_id=ride_data["park_id"],
                land=ride_data.get("land", ""),
                category=ride_data.get("category", "other"),
                is_headliner=ride_data.get("headliner", False),
                duration_minutes=ride_data.get("duration", 5),
            )
        )
        if "waits" not in ride_data:
            continue
        for schedule in park_days:
            if schedule.park_id != ride_data["park_id"]:
                continue
            curves.append(
                WaitCurveSnapshot(
                    ride_id=ride_data["id"],
                    date=schedule.date,
                    points=_hourly_curve(ride_data["waits"], schedule.open_time),
                )
            )

    entertainment = [Anchor.model_validate(e) for e in scenario.get("entertainment", [])]
    return PlanningSnapshot(
        rides=rides, park_days=park_days, wait_curves=curves, entertainment=entertainment
    )


def run_scenario(
    scenario: dict[str, Any], settings: Settings
) -> tuple[TripPlan | None, PlanInput, str | None]:
    """Plan one scenario; returns (plan, input, error class name)."""
    plan_input = PlanInput.model_validate(scenario["input"])
    snapshot = build_snapshot_from_yaml(scenario)
    dates = plan_input.requested_dates()
    today = min(dates) if dates else date.today()

    try:
        plan = build_trip_plan(
            plan_input,
            snapshot,
            load_reference_data(settings.reference_data_path),
            settings=settings,
            today=today,
        )
    except PlanningError as e:
        return None, plan_input, type(e).__name__
    return plan, plan_input, None


def evaluate_predicates(
    plan: TripPlan | None,
    plan_input: PlanInput,
    error: str | None,
    predicates: list[dict[str, str]],
) -> tuple[int, int]:
    """Evaluate predicates; return (passed, total)."""
    passed = 0
    total = len(predicates)
    env = {
        "__builtins__": {},
        "plan": plan,
        "input": plan_input,
        "error": error,
        "len": len,
        "all": all,
        "any": any,
        "zip": zip,
        "sorted": sorted,
    }

    for pred_data in predicates:
        predicate = pred_data["predicate"]
        description = pred_data.get("description", predicate)
        try:
            result = eval(predicate, env)
            if result:
                passed += 1
                print(f"  ✓ PASS: {description}")
            else:
                print(f"  ✗ FAIL: {description}")
        except Exception as e:
            print(f"  ✗ ERROR: {description} - {e}")

    return passed, total


def main() -> int:
    """Run eval scenarios."""
    scenarios_data = load_scenarios()
    scenarios = scenarios_data["scenarios"]
    settings = Settings(strict_invariants=True)

    total_passed = 0
    total_predicates = 0

    for scenario in scenarios:
        scenario_id = scenario["scenario_id"]
        description = scenario["description"]
        print(f"\n=== Scenario: {scenario_id} ===")
        print(f"Description: {description}")

        plan, plan_input, error = run_scenario(scenario, settings)

        predicates = scenario["must_satisfy"]
        passed, total = evaluate_predicates(plan, plan_input, error, predicates)
        total_passed += passed
        total_predicates += total

        print(f"Result: {passed}/{total} predicates passed")

    print("\n=== Summary ===")
    print(f"Total: {total_passed}/{total_predicates} predicates passed")

    if total_passed < total_predicates:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
