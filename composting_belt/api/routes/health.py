"""Health Probes — liveness and database readiness for the belt API.

Invariants:
    - GET /health/ answers 200 whenever the process is up
    - GET /health/ready answers 503 until the registry database is reachable
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from composting_belt.infrastructure import database

SERVICE_NAME = "composting-belt-api"
SERVICE_VERSION = "1.0.0"

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/ready")
async def readiness_check():
    """Readiness includes a SELECT 1 against the registry."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {"status": "ready", "checks": {"database": "healthy"}}
