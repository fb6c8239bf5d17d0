"""Belt State Machine — pure transition planning.

Tests:
    - Advance moves one station and recomputes mass (station == week)
    - Advance from station 7 and from Finalized is rejected
    - Finalize accepts any station, rejects bad masses and Finalized batches
    - Restore depends only on target station, whatever the prior state
"""

import pytest

from composting_belt.core.belt import (
    BeltPosition, plan_advance, plan_finalize, plan_restore, validate_station,
)
from composting_belt.core.domain_types import BatchStatus, DEFAULT_DECAY_RATE
from composting_belt.core.errors import DomainValidationError, InvalidStateError


def _position(station=1, status=BatchStatus.PROCESSING, current_mass=100.0):
    return BeltPosition(
        status=status, station=station, initial_mass=100.0,
        current_mass=current_mass, decay_rate=DEFAULT_DECAY_RATE,
    )


def test_advance_from_station_one():
    move = plan_advance(_position(1))
    assert (move.station_from, move.station, move.week) == (1, 2, 2)
    assert move.mass_before == 100.0
    assert move.mass == 96.34


def test_advance_to_station_seven():
    move = plan_advance(_position(6, current_mass=83.0))
    assert move.station == 7
    assert move.mass == pytest.approx(79.95, abs=0.01)


def test_advance_from_station_seven_is_rejected():
    with pytest.raises(InvalidStateError, match="finalize"):
        plan_advance(_position(7))


def test_advance_finalized_is_rejected():
    with pytest.raises(InvalidStateError):
        plan_advance(_position(3, status=BatchStatus.FINALIZED))


def test_finalize_at_any_station():
    for station in (1, 4, 7):
        plan = plan_finalize(_position(station), 70.0)
        assert plan.final_mass == 70.0
        assert plan.expected_mass == 78.0


@pytest.mark.parametrize("final_mass", [None, 0, -5.0, 100.01])
def test_finalize_rejects_bad_mass(final_mass):
    with pytest.raises(DomainValidationError):
        plan_finalize(_position(7), final_mass)


def test_finalize_twice_is_rejected():
    with pytest.raises(InvalidStateError):
        plan_finalize(_position(7, status=BatchStatus.FINALIZED), 70.0)


def test_restore_ignores_prior_mass_and_status():
    a = plan_restore(_position(5, current_mass=1.0), 3)
    b = plan_restore(_position(2, status=BatchStatus.FINALIZED, current_mass=70.0), 3)
    assert (a.station, a.week, a.mass) == (b.station, b.week, b.mass) == (3, 3, 92.81)


def test_restore_to_station_one_resets_mass():
    move = plan_restore(_position(7, current_mass=79.95), 1)
    assert move.mass == 100.0


@pytest.mark.parametrize("station", [0, 8, -1])
def test_station_out_of_range(station):
    with pytest.raises(DomainValidationError):
        validate_station(station)
    with pytest.raises(DomainValidationError):
        plan_restore(_position(), station)
