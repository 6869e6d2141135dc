"""Trip planning endpoint - POST /plans."""

import logging
import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend.parkplan.adapters.collaborator import SnapshotClient
from backend.parkplan.api.dependencies import get_reference_data, get_snapshot_client, get_today
from backend.parkplan.config import Settings, get_settings
from backend.parkplan.models.itinerary import TripPlan
from backend.parkplan.models.reference import ReferenceData
from backend.parkplan.models.request import PlanInput
from backend.parkplan.models.snapshot import PlanningSnapshot
from backend.parkplan.scheduling.engine import build_trip_plan
from backend.parkplan.scheduling.errors import (
    InvariantViolationError,
    ScheduleConflictError,
    SnapshotUnavailableError,
    ValidationError,
)
from backend.parkplan.utils.logging import StructuredPlanLogger
from backend.parkplan.utils.metrics import PrometheusPlanMetrics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plans", tags=["plans"])


class CreatePlanRequest(BaseModel):
    """Request body for POST /plans."""

    input: PlanInput
    snapshot: PlanningSnapshot | None = Field(
        None, description="Pre-fetched planning data; fetched from the collaborator if omitted"
    )


def _dates_for(plan_input: PlanInput) -> list[date]:
    return sorted(set(plan_input.requested_dates()))


@router.post("", response_model=TripPlan, responses={409: {}, 422: {}, 503: {}})
async def create_plan(
    request: CreatePlanRequest,
    settings: Annotated[Settings, Depends(get_settings)],
    reference: Annotated[ReferenceData, Depends(get_reference_data)],
    client: Annotated[SnapshotClient, Depends(get_snapshot_client)],
    today: Annotated[date, Depends(get_today)],
) -> TripPlan | JSONResponse:
    """Build a trip plan.

    Returns:
        200 with the TripPlan
        422 with {"errors": [{field, reason}]} if the request is invalid
        409 if must-see shows conflict
        503 with Retry-After if planning data is unavailable
    """
    request_id = str(uuid.uuid4())

    try:
        snapshot = request.snapshot
        if snapshot is None:
            snapshot = await client.fetch_snapshot(
                request.input.park_ids, _dates_for(request.input)
            )

        # The engine is CPU-bound; keep the event loop free
        return await run_in_threadpool(
            build_trip_plan,
            request.input,
            snapshot,
            reference,
            settings=settings,
            today=today,
            metrics=PrometheusPlanMetrics(),
            plan_logger=StructuredPlanLogger(request_id),
        )
    except ValidationError as exc:
        return JSONResponse(
            status_code=422,
            content={"errors": [{"field": e.field, "reason": e.reason} for e in exc.errors]},
        )
    except SnapshotUnavailableError as exc:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc)},
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )
    except ScheduleConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except InvariantViolationError as exc:
        logger.error(
            "Plan failed invariant checks",
            extra={"structured": {"request_id": request_id, "error": str(exc)}},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="plan failed internal consistency checks",
        ) from exc
