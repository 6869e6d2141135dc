"""Static reference tables - resort pairings and walking times.

Loaded once per process and passed explicitly into every scheduling call.
All models are frozen; nothing in the engine mutates them.
"""

from datetime import time

from pydantic import BaseModel, ConfigDict, Field


class ResortPairing(BaseModel):
    """A resort and the parks guests may hop between."""

    model_config = ConfigDict(frozen=True)

    resort_id: str
    name: str
    park_ids: tuple[str, ...]
    transition_minutes: int = Field(..., ge=0)


class WalkingTable(BaseModel):
    """Coarse land-to-land walking estimates (minutes)."""

    model_config = ConfigDict(frozen=True)

    same_land_minutes: int = 3
    adjacent_minutes: int = 5
    distant_minutes: int = 12
    unknown_minutes: int = 8
    adjacency: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    # Alternate spellings mapped to the canonical adjacency key
    aliases: dict[str, str] = Field(default_factory=dict)

    def canonical(self, land: str | None) -> str:
        normalized = normalize_land(land)
        return self.aliases.get(normalized, normalized)


def normalize_land(land: str | None) -> str:
    """Normalize a land name for comparison."""
    if not land:
        return ""
    return " ".join(land.lower().split())


class ReferenceData(BaseModel):
    """Process-wide read-only configuration tables."""

    model_config = ConfigDict(frozen=True)

    resorts: tuple[ResortPairing, ...] = ()
    park_names: dict[str, str] = Field(default_factory=dict)
    # Earliest time guests may arrive in a park by hopping
    hop_eligibility: dict[str, time] = Field(default_factory=dict)
    # Pair-specific overrides of the resort transition time
    park_transitions: dict[str, dict[str, int]] = Field(default_factory=dict)
    walking: WalkingTable = Field(default_factory=WalkingTable)

    def known_park(self, park_id: str) -> bool:
        return any(park_id in r.park_ids for r in self.resorts) or park_id in self.park_names

    def resort_for(self, park_id: str) -> ResortPairing | None:
        for resort in self.resorts:
            if park_id in resort.park_ids:
                return resort
        return None

    def same_resort(self, park_ids: list[str]) -> bool:
        """True if every park belongs to one multi-park resort."""
        resorts = {self.resort_for(p) for p in park_ids}
        if len(resorts) != 1:
            return False
        resort = resorts.pop()
        return resort is not None and len(resort.park_ids) > 1

    def transition_minutes(self, from_park: str, to_park: str) -> int:
        """Minimum minutes to get from one park's gate to another's."""
        override = self.park_transitions.get(from_park, {}).get(to_park)
        if override is not None:
            return override
        resort = self.resort_for(from_park)
        if resort is None:
            raise KeyError(f"unknown park {from_park}")
        return resort.transition_minutes

    def hop_eligibility_time(self, park_id: str) -> time | None:
        return self.hop_eligibility.get(park_id)

    def walking_minutes(self, from_land: str | None, to_land: str | None) -> int:
        """Walking estimate between two lands of the same park."""
        walking = self.walking
        src = walking.canonical(from_land)
        dst = walking.canonical(to_land)
        if not src or not dst:
            return walking.unknown_minutes
        if src == dst:
            return walking.same_land_minutes
        if dst in walking.adjacency.get(src, ()) or src in walking.adjacency.get(dst, ()):
            return walking.adjacent_minutes
        return walking.distant_minutes
