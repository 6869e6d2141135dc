"""Fixture-based reference data - resort pairings, hop times and walking table."""

import json
from functools import lru_cache
from pathlib import Path

from backend.parkplan.models.reference import ReferenceData, normalize_land

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
REFERENCE_FIXTURE = FIXTURES_DIR / "reference.json"


def parse_reference_data(data: dict) -> ReferenceData:
    """Build ReferenceData from its JSON form.

    Adjacency and alias keys are normalized the same way lands are at
    lookup time, so fixture authors may use any casing or spacing.
    """
    walking = dict(data.get("walking", {}))
    walking["adjacency"] = {
        normalize_land(land): tuple(normalize_land(n) for n in neighbours)
        for land, neighbours in walking.get("adjacency", {}).items()
    }
    walking["aliases"] = {
        normalize_land(alias): normalize_land(canonical)
        for alias, canonical in walking.get("aliases", {}).items()
    }
    return ReferenceData.model_validate({**data, "walking": walking})


def load_reference_data_from(path: Path) -> ReferenceData:
    """Load reference data from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the file content is malformed
    """
    with open(path) as f:
        data = json.load(f)
    return parse_reference_data(data)


@lru_cache
def load_reference_data(path: str | None = None) -> ReferenceData:
    """Load reference data once per process.

    Args:
        path: Alternate fixture path; defaults to the packaged table

    Returns:
        Frozen ReferenceData shared by every request
    """
    return load_reference_data_from(Path(path) if path else REFERENCE_FIXTURE)
