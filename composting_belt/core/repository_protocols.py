"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - position_of() is the single place a persisted batch becomes a BeltPosition

Design Decisions:
    - Protocol over ABC: structural subtyping, the ORM model satisfies it as-is
"""

from typing import Protocol

from composting_belt.core.belt import BeltPosition
from composting_belt.core.decay import resolve_decay_rate
from composting_belt.core.domain_types import BatchStatus, DEFAULT_DECAY_RATE


class BatchLike(Protocol):
    """Structural contract for Batch objects handed to the state machine."""
    code: str
    status: str
    current_station: int
    initial_mass: float
    current_mass: float
    decay_rate: float | None


def position_of(
    batch: BatchLike, default_rate: float = DEFAULT_DECAY_RATE,
) -> BeltPosition:
    return BeltPosition(
        status=BatchStatus(batch.status),
        station=batch.current_station,
        initial_mass=batch.initial_mass,
        current_mass=batch.current_mass,
        decay_rate=resolve_decay_rate(batch.decay_rate, default_rate),
    )
