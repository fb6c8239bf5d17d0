"""Contribution ORM — one delivery of material into a batch by a contributor.

Invariants:
    - Always belongs to a Batch (batch_id FK)
    - mass > 0
    - deleted_at tombstone excludes the row from totals and fingerprints
    - geofence_distance_m / outside_facility are recorded, never enforced

Design Decisions:
    - batch_code denormalized: facility reports filter by code without a join
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Float, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from composting_belt.db.base import Base


class Contribution(Base):
    """Contribution event — material delivered into a batch."""
    __tablename__ = "contributions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    batch_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False,
    )
    batch_code: Mapped[str] = mapped_column(String(64), nullable=False)
    mass: Mapped[float] = mapped_column(Float, nullable=False)
    contributor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    geofence_distance_m: Mapped[int | None] = mapped_column(
        Integer, nullable=True,
    )
    outside_facility: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
