"""BatchEvent ORM — append-only audit trail of batch mutations.

Invariants:
    - Every intake, advance, finalize, restore and certify writes exactly one row
    - Rows are never updated or deleted
    - cycle_id is set only for weekly bulk advances; it makes a cycle re-run detectable

Design Decisions:
    - Logging table: no lifecycle rule depends on it except the cycle re-run skip
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Float, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from composting_belt.db.base import Base


class BatchEvent(Base):
    __tablename__ = "batch_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    batch_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True,
    )
    event_type: Mapped[str] = mapped_column(String(20), nullable=False)
    station_from: Mapped[int | None] = mapped_column(Integer, nullable=True)
    station_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mass_before: Mapped[float | None] = mapped_column(Float, nullable=True)
    mass_after: Mapped[float | None] = mapped_column(Float, nullable=True)
    cycle_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
