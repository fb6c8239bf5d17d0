"""Batch Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - Codes are stripped and non-empty
    - Coordinates are bounded to valid WGS84 ranges
    - RestoreRequest.mapping targets are in [1, 7]; anything else is a top-level 400
    - Domain preconditions (final mass, decay rate) are left to core/ so direct
      callers and HTTP callers get the same error
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from composting_belt.core.domain_types import MIN_STATION, PhotoCategory, STATION_COUNT

Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]
TargetStation = Annotated[int, Field(ge=MIN_STATION, le=STATION_COUNT)]


def _strip_code(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("code cannot be empty or whitespace")
    return v


class FacilityCreate(BaseModel):
    code: str = Field(min_length=1, max_length=32)
    name: str = Field(min_length=1, max_length=200)
    latitude: Latitude | None = None
    longitude: Longitude | None = None

    @field_validator("code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        return _strip_code(v)


class BatchCreate(BaseModel):
    """Intake — a new batch enters station 1."""
    code: str = Field(min_length=1, max_length=64)
    facility_code: str = Field(min_length=1, max_length=32)
    initial_mass: float = Field(gt=0)
    created_by: str = Field(min_length=1, max_length=64)
    decay_rate: float | None = None
    latitude: Latitude | None = None
    longitude: Longitude | None = None

    @field_validator("code", "facility_code")
    @classmethod
    def strip_codes(cls, v: str) -> str:
        return _strip_code(v)


class BatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    facility_code: str
    status: str
    current_station: int
    current_week: int
    initial_mass: float
    current_mass: float
    decay_rate: float | None
    created_by: str
    latitude: float | None
    longitude: float | None
    started_at: datetime
    closed_at: datetime | None
    finalized_at: datetime | None
    updated_at: datetime
    fingerprint: str | None
    certified_at: datetime | None
    chain_index: int | None


class FinalizeRequest(BaseModel):
    final_mass: float


class AdvanceCycleRequest(BaseModel):
    cycle_id: str = Field(min_length=1, max_length=64)


class RestoreRequest(BaseModel):
    """Restoration call: batch code -> target station."""
    facility_code: str = Field(min_length=1, max_length=32)
    mapping: dict[str, TargetStation]


class ContributionCreate(BaseModel):
    mass: float = Field(gt=0)
    contributor_id: str = Field(min_length=1, max_length=64)
    latitude: Latitude | None = None
    longitude: Longitude | None = None


class PhotoCreate(BaseModel):
    reference: str = Field(min_length=1, max_length=2000)
    category: PhotoCategory


class GeofenceCheck(BaseModel):
    ref_latitude: Latitude | None = None
    ref_longitude: Longitude | None = None
    latitude: Latitude | None = None
    longitude: Longitude | None = None
    radius_m: float | None = Field(None, gt=0)
