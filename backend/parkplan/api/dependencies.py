"""Shared route dependencies - overridable in tests via dependency_overrides."""

from datetime import date
from typing import Annotated

from fastapi import Depends

from backend.parkplan.adapters.collaborator import SnapshotClient
from backend.parkplan.adapters.fixtures import load_reference_data
from backend.parkplan.config import Settings, get_settings
from backend.parkplan.models.reference import ReferenceData
from backend.parkplan.utils.logging import StructuredSnapshotLogger
from backend.parkplan.utils.metrics import PrometheusSnapshotMetrics


def get_reference_data(settings: Annotated[Settings, Depends(get_settings)]) -> ReferenceData:
    """Process-wide reference tables (loaded once)."""
    return load_reference_data(settings.reference_data_path)


def get_snapshot_client(settings: Annotated[Settings, Depends(get_settings)]) -> SnapshotClient:
    """Collaborator client with Prometheus metrics and structured logs."""
    return SnapshotClient(
        settings,
        metrics=PrometheusSnapshotMetrics(),
        logger=StructuredSnapshotLogger(),
    )


def get_today() -> date:
    """Reference date for rejecting past visit dates."""
    return date.today()
