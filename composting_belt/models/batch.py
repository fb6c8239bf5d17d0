"""Batch ORM — persists the aggregate root of the composting lifecycle.

Invariants:
    - id is UUID primary key; (facility_code, code) is unique
    - current_station == current_week, both in [1, 7]
    - status transitions: processing -> finalized (restoration may reopen)
    - deleted_at is a tombstone: rows are never physically deleted
    - version is the optimistic-concurrency guard (SQLAlchemy version_id_col):
      every UPDATE carries WHERE version = <read version>

Design Decisions:
    - chain_* columns are separate from fingerprint: the plain fingerprint must
      stay recomputable from the batch alone
    - No ORM relationships: contributions and photos are read through explicit,
      tombstone-filtered registry queries
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Integer, Float, DateTime, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from composting_belt.core.domain_types import BatchStatus, DEFAULT_DECAY_RATE
from composting_belt.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Batch(Base):
    """Batch aggregate root — one tracked quantity of material on the belt."""
    __tablename__ = "batches"
    __table_args__ = (
        UniqueConstraint("facility_code", "code", name="uq_batches_facility_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    facility_code: Mapped[str] = mapped_column(
        String(32), ForeignKey("facilities.code"), nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BatchStatus.PROCESSING.value,
    )
    current_station: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1,
    )
    current_week: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1,
    )
    initial_mass: Mapped[float] = mapped_column(Float, nullable=False)
    current_mass: Mapped[float] = mapped_column(Float, nullable=False)
    decay_rate: Mapped[float | None] = mapped_column(
        Float, nullable=True, default=DEFAULT_DECAY_RATE,
    )
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    finalized_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    # Certification
    fingerprint: Mapped[str | None] = mapped_column(String(64), nullable=True)
    certified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    chain_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    chain_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    previous_chain_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
