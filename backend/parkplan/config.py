"""Typed settings configuration - single source of truth."""

from datetime import time
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine tunables loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Timeline discretisation (minutes)
    slot_minutes: int = 15

    # Slot scoring weights
    w_wait: float = 1.0
    w_walk: float = 1.2
    w_priority: float = 1.0
    w_time_of_day: float = 0.5

    # Rope drop
    rope_drop_cutoff_minutes: int = 90
    rope_drop_min_delta: int = 0
    rope_drop_midday_reference: time = time(12, 0)

    # Multi-day distribution
    headliner_cap_per_day: int = 3

    # Timing buffers (minutes)
    park_close_buffer_minutes: int = 20
    meal_duration_minutes: int = 35
    hop_entry_minutes: int = 10

    # Park hopping
    max_hops_per_day: int = 1

    # Re-rides
    max_rerides_per_day: int = 3

    # Fallback wait when no curve data exists at all
    default_wait_minutes: int = 20

    # Placement strategy
    placement_strategy: Literal["greedy", "local-search"] = "greedy"
    local_search_max_passes: int = 3

    # Raise on internal invariant violations instead of log-and-skip
    strict_invariants: bool = False

    # Collaborator snapshot fetch
    collaborator_base_url: str = "http://localhost:8100"
    snapshot_timeout_ms: int = 4000
    snapshot_retry_count: int = 1
    retry_jitter_min_ms: int = 200
    retry_jitter_max_ms: int = 500
    snapshot_retry_after_seconds: int = 30

    # Reference data fixture (defaults to the packaged table)
    reference_data_path: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
