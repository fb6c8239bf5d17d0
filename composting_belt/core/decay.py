"""Decay Model — expected remaining mass of a batch at a given week.

Invariants:
    - weight_at(1, W, r) == W for every valid r
    - weight_at is strictly decreasing in week for r in (0, 1), constant for r == 0
    - Full float precision internally; persisted values rounded to MASS_DECIMALS
    - expected_final_mass is advisory only, never a constraint on finalize

Design Decisions:
    - Preconditions raise DomainValidationError: callers reject the operation
      before touching the batch
"""

from composting_belt.core.domain_types import (
    DEFAULT_DECAY_RATE, EXPECTED_FINAL_RATIO, MASS_DECIMALS,
)
from composting_belt.core.errors import DomainValidationError


def validate_decay_rate(rate: float) -> float:
    if not 0.0 <= rate < 1.0:
        raise DomainValidationError(
            f"decay rate must be in [0, 1), got {rate}", field="decay_rate",
        )
    return rate


def resolve_decay_rate(
    rate: float | None, default: float = DEFAULT_DECAY_RATE,
) -> float:
    """Batch rate, or the default when unset. A rate of 0 is kept as-is."""
    if rate is None:
        return default
    return validate_decay_rate(rate)


def weight_at(week: int, initial_mass: float, rate: float) -> float:
    """Unrounded expected mass: initial * (1 - rate) ** (week - 1)."""
    if week < 1:
        raise DomainValidationError(f"week must be >= 1, got {week}", field="week")
    if initial_mass <= 0:
        raise DomainValidationError(
            f"initial mass must be > 0, got {initial_mass}", field="initial_mass",
        )
    validate_decay_rate(rate)

    if week == 1:
        return initial_mass
    return initial_mass * (1 - rate) ** (week - 1)


def persisted_weight_at(week: int, initial_mass: float, rate: float) -> float:
    """weight_at rounded the way it is written to the registry."""
    return round(weight_at(week, initial_mass, rate), MASS_DECIMALS)


def expected_final_mass(initial_mass: float) -> float:
    """Operator guidance for finalization (~22% reduction). Not enforced."""
    return round(initial_mass * EXPECTED_FINAL_RATIO, MASS_DECIMALS)
