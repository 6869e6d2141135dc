"""Test packaged reference data and settings loading."""

import json
from datetime import time

import pytest
from pydantic import ValidationError

from backend.parkplan.adapters.fixtures import (
    REFERENCE_FIXTURE,
    load_reference_data,
    load_reference_data_from,
)
from backend.parkplan.config import Settings


def test_packaged_reference_loads() -> None:
    reference = load_reference_data()

    assert reference is load_reference_data()
    assert reference.same_resort(["disneyland", "disney-california-adventure"])
    assert not reference.same_resort(["magic-kingdom", "universal-studios-florida"])
    # A single-park resort cannot be hopped
    assert not reference.same_resort(["universal-studios-hollywood"])
    assert reference.hop_eligibility_time("disneyland") == time(11, 0)


def test_transition_minutes_override_and_default() -> None:
    reference = load_reference_data()

    assert reference.transition_minutes("disneyland", "disney-california-adventure") == 10
    assert reference.transition_minutes("islands-of-adventure", "universal-studios-florida") == 20
    with pytest.raises(KeyError):
        reference.transition_minutes("atlantis", "epcot")


def test_walking_table_lookups() -> None:
    reference = load_reference_data()

    assert reference.walking_minutes("Tomorrowland", "tomorrowland ") == 3
    assert reference.walking_minutes("Main Street", "Adventureland") == 5
    assert reference.walking_minutes("Tomorrowland", "Frontierland") == 12
    assert reference.walking_minutes("", "Frontierland") == 8


def test_land_aliases_resolve() -> None:
    reference = load_reference_data()

    assert reference.walking.canonical("Galaxy's Edge") == "star wars: galaxy's edge"
    assert reference.walking_minutes("Star Wars Land", "Star Wars: Galaxy's Edge") == 3


def test_custom_reference_file(tmp_path) -> None:
    data = json.loads(REFERENCE_FIXTURE.read_text())
    data["walking"]["same_land_minutes"] = 1
    path = tmp_path / "reference.json"
    path.write_text(json.dumps(data))

    assert load_reference_data_from(path).walking.same_land_minutes == 1


def test_malformed_reference_file(tmp_path) -> None:
    path = tmp_path / "reference.json"
    path.write_text(json.dumps({"resorts": [{"resort_id": "x"}]}))

    with pytest.raises(ValidationError):
        load_reference_data_from(path)


def test_settings_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.park_close_buffer_minutes == 20
    assert settings.rope_drop_cutoff_minutes == 90
    assert settings.headliner_cap_per_day == 3
    assert settings.max_rerides_per_day == 3
    assert settings.placement_strategy == "greedy"
    assert (settings.w_wait, settings.w_walk) == (1.0, 1.2)


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("PLACEMENT_STRATEGY", "local-search")
    monkeypatch.setenv("W_WALK", "2.5")

    settings = Settings(_env_file=None)

    assert settings.placement_strategy == "local-search"
    assert settings.w_walk == 2.5


def test_settings_reject_unknown_strategy(monkeypatch) -> None:
    monkeypatch.setenv("PLACEMENT_STRATEGY", "annealing")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
