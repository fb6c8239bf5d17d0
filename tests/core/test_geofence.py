"""Geofence Validator — haversine distance and radius verdicts.

Tests:
    - Zero distance for identical points, symmetry
    - One degree of latitude is ~111.195 km
    - Missing coordinates yield an invalid verdict with no distance
    - Boundary: inside vs outside the configured radius
"""

import pytest

from composting_belt.core.geofence import haversine_distance, validate_geofence

REF_LAT, REF_LON = -23.5505, -46.6333


def test_identical_points_are_zero_distance():
    assert haversine_distance(REF_LAT, REF_LON, REF_LAT, REF_LON) == 0.0


def test_distance_is_symmetric():
    a = haversine_distance(REF_LAT, REF_LON, -22.9068, -43.1729)
    b = haversine_distance(-22.9068, -43.1729, REF_LAT, REF_LON)
    assert a == pytest.approx(b)


def test_one_degree_latitude():
    assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195, abs=1)


def test_point_within_radius():
    verdict = validate_geofence(REF_LAT, REF_LON, REF_LAT + 0.001, REF_LON)
    assert verdict.valid is True
    assert verdict.outside is False
    assert verdict.distance == 111


def test_point_outside_radius():
    verdict = validate_geofence(REF_LAT, REF_LON, REF_LAT + 0.01, REF_LON)
    assert verdict.valid is True
    assert verdict.outside is True
    assert verdict.distance == 1112


def test_custom_radius():
    verdict = validate_geofence(REF_LAT, REF_LON, REF_LAT + 0.01, REF_LON, radius=2000)
    assert verdict.outside is False


@pytest.mark.parametrize("coords", [
    (None, REF_LON, REF_LAT, REF_LON),
    (REF_LAT, None, REF_LAT, REF_LON),
    (REF_LAT, REF_LON, None, REF_LON),
    (REF_LAT, REF_LON, REF_LAT, None),
])
def test_missing_coordinate_cannot_assert(coords):
    verdict = validate_geofence(*coords)
    assert verdict.to_dict() == {"valid": False, "distance": None, "outside": False}
