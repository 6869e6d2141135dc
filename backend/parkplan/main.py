"""FastAPI application."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.parkplan.api.routes.health import router as health_router
from backend.parkplan.api.routes.metrics import router as metrics_router
from backend.parkplan.api.routes.plans import router as plans_router

app = FastAPI(title="Park Planner API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(plans_router, tags=["plans"])


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies in the same {field, reason} shape as planning errors."""
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "reason": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"errors": errors})


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Park Planner API", "version": "0.1.0"}
