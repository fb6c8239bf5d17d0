"""Geofence Route — stateless distance/radius check for callers without a batch."""

from fastapi import APIRouter

from composting_belt.config import get_settings
from composting_belt.core.geofence import validate_geofence
from composting_belt.schemas.batch import GeofenceCheck

router = APIRouter(prefix="/api/v1/geofence", tags=["geofence"])


@router.post("/check")
async def check_geofence(body: GeofenceCheck):
    radius = body.radius_m or get_settings().geofence_radius_m
    verdict = validate_geofence(
        body.ref_latitude, body.ref_longitude, body.latitude, body.longitude, radius,
    )
    return verdict.to_dict()
