"""Initial schema — facilities, batches, contributions, photos, batch_events.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "facilities",
        sa.Column("code", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "batches",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("facility_code", sa.String(32), sa.ForeignKey("facilities.code"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="processing"),
        sa.Column("current_station", sa.Integer, nullable=False, server_default="1"),
        sa.Column("current_week", sa.Integer, nullable=False, server_default="1"),
        sa.Column("initial_mass", sa.Float, nullable=False),
        sa.Column("current_mass", sa.Float, nullable=False),
        sa.Column("decay_rate", sa.Float, nullable=True),
        sa.Column("created_by", sa.String(64), nullable=False),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finalized_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fingerprint", sa.String(64), nullable=True),
        sa.Column("certified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("chain_index", sa.Integer, nullable=True),
        sa.Column("chain_hash", sa.String(64), nullable=True),
        sa.Column("previous_chain_hash", sa.String(64), nullable=True),
        sa.Column("version", sa.Integer, nullable=False),
        sa.UniqueConstraint("facility_code", "code", name="uq_batches_facility_code"),
    )
    op.create_index("ix_batches_code", "batches", ["code"])

    op.create_table(
        "contributions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("batch_id", UUID(as_uuid=True), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("batch_code", sa.String(64), nullable=False),
        sa.Column("mass", sa.Float, nullable=False),
        sa.Column("contributor_id", sa.String(64), nullable=False),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("geofence_distance_m", sa.Integer, nullable=True),
        sa.Column("outside_facility", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "photos",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("batch_id", UUID(as_uuid=True), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("contribution_id", UUID(as_uuid=True), sa.ForeignKey("contributions.id"), nullable=True),
        sa.Column("reference", sa.String(2000), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "batch_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("batch_id", UUID(as_uuid=True), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("event_type", sa.String(20), nullable=False),
        sa.Column("station_from", sa.Integer, nullable=True),
        sa.Column("station_to", sa.Integer, nullable=True),
        sa.Column("mass_before", sa.Float, nullable=True),
        sa.Column("mass_after", sa.Float, nullable=True),
        sa.Column("cycle_id", sa.String(64), nullable=True),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_batch_events_batch_id", "batch_events", ["batch_id"])


def downgrade() -> None:
    op.drop_index("ix_batch_events_batch_id", table_name="batch_events")
    op.drop_table("batch_events")
    op.drop_table("photos")
    op.drop_table("contributions")
    op.drop_index("ix_batches_code", table_name="batches")
    op.drop_table("batches")
    op.drop_table("facilities")
