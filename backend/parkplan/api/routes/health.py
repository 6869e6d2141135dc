"""Health check endpoint."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from backend.parkplan.api.dependencies import get_reference_data
from backend.parkplan.models.reference import ReferenceData

router = APIRouter()


@router.get("/health")
async def health(
    reference: Annotated[ReferenceData, Depends(get_reference_data)],
) -> dict[str, Any]:
    """Simple health check for Docker/k8s.

    Returns:
        200 with the number of loaded resort pairings
    """
    return {"status": "ok", "reference_resorts": len(reference.resorts)}
