"""Geofence Validator — great-circle distance and in/out-of-radius verdicts.

Invariants:
    - haversine_distance(A, A) == 0 and is symmetric
    - Missing coordinates mean "cannot assert": valid=False, distance=None, outside=False
    - distance in a verdict is rounded to the nearest meter
"""

import math
from dataclasses import dataclass

from composting_belt.core.domain_types import EARTH_RADIUS_M, GEOFENCE_RADIUS_M


@dataclass(frozen=True)
class GeofenceVerdict:
    valid: bool
    distance: int | None
    outside: bool

    def to_dict(self) -> dict:
        return {"valid": self.valid, "distance": self.distance, "outside": self.outside}


def haversine_distance(
    lat1: float, lon1: float, lat2: float, lon2: float,
) -> float:
    """Distance in meters between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def validate_geofence(
    ref_lat: float | None,
    ref_lon: float | None,
    event_lat: float | None,
    event_lon: float | None,
    radius: float = GEOFENCE_RADIUS_M,
) -> GeofenceVerdict:
    """Check an event coordinate against a facility reference coordinate."""
    if None in (ref_lat, ref_lon, event_lat, event_lon):
        return GeofenceVerdict(valid=False, distance=None, outside=False)

    distance = haversine_distance(ref_lat, ref_lon, event_lat, event_lon)
    return GeofenceVerdict(
        valid=True,
        distance=round(distance),
        outside=distance > radius,
    )
