"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - BatchId / ContributionId wrap UUIDs; BatchCode / FacilityCode wrap str
    - Station and week share the same bounds: MIN_STATION..STATION_COUNT
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

BatchId = NewType("BatchId", UUID)
ContributionId = NewType("ContributionId", UUID)
BatchCode = NewType("BatchCode", str)
FacilityCode = NewType("FacilityCode", str)


# ─── Belt Constants ──────────────────────────────────────────────

MIN_STATION: int = 1
STATION_COUNT: int = 7
DEFAULT_DECAY_RATE: float = 0.0366
EXPECTED_FINAL_RATIO: float = 0.78      # advisory ~22% reduction over the cycle
MASS_DECIMALS: int = 2

GEOFENCE_RADIUS_M: float = 300.0
EARTH_RADIUS_M: float = 6_371_000.0

GENESIS_HASH: str = "GENESIS"


# ─── Enums ───────────────────────────────────────────────────────

class BatchStatus(str, Enum):
    """Batch lifecycle states — maps to DB `status` column."""
    PROCESSING = "processing"
    FINALIZED = "finalized"


class PhotoCategory(str, Enum):
    CONTENT = "content"
    WEIGHING = "weighing"
    DESTINATION = "destination"


class BatchEventType(str, Enum):
    """Append-only audit trail entries written on every batch mutation."""
    INTAKE = "intake"
    ADVANCE = "advance"
    FINALIZE = "finalize"
    RESTORE = "restore"
    CERTIFY = "certify"
