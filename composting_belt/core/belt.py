"""Belt State Machine — pure station transitions for a single batch.

States: Processing(station 1..7) and Finalized (terminal).

Invariants:
    - plan_* functions are PURE: they return a transition, never mutate the batch
    - station == week in every transition
    - Advance from station 7 is an InvalidStateError (finalize instead)
    - Finalized rejects every transition except restoration
    - Restoration output depends only on target station, never on prior mass

Design Decisions:
    - BeltPosition decouples transitions from the ORM model: the shell copies
      fields in, applies the returned plan, and persists
"""

from dataclasses import dataclass

from composting_belt.core.decay import (
    expected_final_mass, persisted_weight_at, validate_decay_rate,
)
from composting_belt.core.domain_types import (
    BatchStatus, MIN_STATION, STATION_COUNT,
)
from composting_belt.core.errors import DomainValidationError, InvalidStateError


@dataclass(frozen=True)
class BeltPosition:
    """The fields of a batch the state machine reads."""
    status: BatchStatus
    station: int
    initial_mass: float
    current_mass: float
    decay_rate: float


@dataclass(frozen=True)
class StationMove:
    """Result of an advance or restore: the new station/week/mass triple."""
    station_from: int
    station: int
    week: int
    mass_before: float
    mass: float


@dataclass(frozen=True)
class Finalization:
    mass_before: float
    final_mass: float
    expected_mass: float


def _require_processing(position: BeltPosition, action: str) -> None:
    if position.status != BatchStatus.PROCESSING:
        raise InvalidStateError(
            f"Cannot {action} a batch in status '{position.status.value}'",
            current_state=position.status.value,
        )


def validate_station(station: int) -> int:
    if not MIN_STATION <= station <= STATION_COUNT:
        raise DomainValidationError(
            f"station must be in [{MIN_STATION}, {STATION_COUNT}], got {station}",
            field="station",
        )
    return station


def plan_advance(position: BeltPosition) -> StationMove:
    """Move one station forward, recomputing mass from the decay model."""
    _require_processing(position, "advance")
    if position.station >= STATION_COUNT:
        raise InvalidStateError(
            f"Batch is at station {position.station}; finalize it instead of advancing",
            current_state=f"station_{position.station}",
        )

    new_station = position.station + 1
    return StationMove(
        station_from=position.station,
        station=new_station,
        week=new_station,
        mass_before=position.current_mass,
        mass=persisted_weight_at(
            new_station, position.initial_mass, position.decay_rate,
        ),
    )


def plan_finalize(position: BeltPosition, final_mass: float) -> Finalization:
    """Freeze the batch at final_mass. Any station is accepted."""
    if final_mass is None or final_mass <= 0:
        raise DomainValidationError(
            f"final mass must be > 0, got {final_mass}", field="final_mass",
        )
    if final_mass > position.initial_mass:
        raise DomainValidationError(
            f"final mass {final_mass} exceeds initial mass {position.initial_mass}",
            field="final_mass",
        )
    _require_processing(position, "finalize")
    return Finalization(
        mass_before=position.current_mass,
        final_mass=final_mass,
        expected_mass=expected_final_mass(position.initial_mass),
    )


def plan_restore(position: BeltPosition, target_station: int) -> StationMove:
    """Overwrite station/week/mass for target_station, whatever the prior state."""
    validate_station(target_station)
    validate_decay_rate(position.decay_rate)
    return StationMove(
        station_from=position.station,
        station=target_station,
        week=target_station,
        mass_before=position.current_mass,
        mass=persisted_weight_at(
            target_station, position.initial_mass, position.decay_rate,
        ),
    )
