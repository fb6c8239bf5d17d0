"""Batch Routes — intake, single-batch transitions and certification.

Invariants:
    - Routes never contain business logic (delegate to services)
    - Tombstoned batches answer 404 on every route
    - Domain errors propagate to the global CompostingError handler
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from composting_belt.api.dependencies import get_operation_context
from composting_belt.config import get_settings
from composting_belt.core.decay import expected_final_mass
from composting_belt.core.operation_context import OperationContext
from composting_belt.infrastructure.database import get_db
from composting_belt.schemas.batch import (
    BatchCreate, BatchResponse, ContributionCreate, FinalizeRequest, PhotoCreate,
)
from composting_belt.services.batch_registry import BatchRegistry
from composting_belt.services.belt_service import BeltService
from composting_belt.services.integrity_service import IntegrityService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/batches", tags=["batches"])


def _belt(db: AsyncSession, ctx: OperationContext) -> BeltService:
    return BeltService(db, ctx, default_rate=get_settings().default_decay_rate)


@router.post(
    "", response_model=BatchResponse, status_code=status.HTTP_201_CREATED,
)
async def create_batch(
    body: BatchCreate,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    """Intake a new batch at station 1."""
    batch = await _belt(db, ctx).intake(**body.model_dump())
    return BatchResponse.model_validate(batch)


@router.get("/{batch_id}", response_model=BatchResponse)
async def get_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    batch = await BatchRegistry(db, ctx).get_batch(batch_id)
    return BatchResponse.model_validate(batch)


@router.delete("/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    """Tombstone the batch. It disappears from every read."""
    registry = BatchRegistry(db, ctx)
    batch = await registry.get_batch(batch_id)
    await registry.tombstone_batch(batch)


@router.get("/{batch_id}/events")
async def list_batch_events(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    registry = BatchRegistry(db, ctx)
    batch = await registry.get_batch(batch_id)
    return {
        "batch_code": batch.code,
        "events": [
            {
                "event_type": e.event_type,
                "station_from": e.station_from,
                "station_to": e.station_to,
                "mass_before": e.mass_before,
                "mass_after": e.mass_after,
                "cycle_id": e.cycle_id,
                "created_at": e.created_at.isoformat(),
            }
            for e in await registry.list_events(batch.id)
        ],
    }


@router.post("/{batch_id}/advance")
async def advance_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    """Move the batch one station forward."""
    move = await _belt(db, ctx).advance(batch_id)
    return {
        "station": move.station,
        "week": move.week,
        "mass_before": move.mass_before,
        "mass": move.mass,
    }


@router.post("/{batch_id}/finalize")
async def finalize_batch(
    batch_id: UUID,
    body: FinalizeRequest,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    plan = await _belt(db, ctx).finalize(batch_id, body.final_mass)
    return {
        "status": "finalized",
        "final_mass": plan.final_mass,
        "expected_mass": plan.expected_mass,
    }


@router.get("/{batch_id}/expected-final-mass")
async def get_expected_final_mass(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    """Advisory guidance for the operator weighing the finished batch."""
    batch = await BatchRegistry(db, ctx).get_batch(batch_id)
    return {
        "batch_code": batch.code,
        "expected_final_mass": expected_final_mass(batch.initial_mass),
    }


@router.get("/{batch_id}/snapshot")
async def get_snapshot(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    """Canonical snapshot, so an auditor can recompute the fingerprint."""
    snapshot = await IntegrityService(db, ctx).build_snapshot(batch_id)
    return snapshot.to_payload()


@router.post("/{batch_id}/fingerprint")
async def certify_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    digest = await IntegrityService(db, ctx).certify(batch_id)
    return {"fingerprint": digest}


@router.get("/{batch_id}/fingerprint/verify")
async def verify_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    return await IntegrityService(db, ctx).verify(batch_id)


@router.post("/{batch_id}/contributions", status_code=status.HTTP_201_CREATED)
async def add_contribution(
    batch_id: UUID,
    body: ContributionCreate,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    """Record a delivery; the geofence verdict is stored, not enforced."""
    registry = BatchRegistry(db, ctx)
    batch = await registry.get_batch(batch_id)
    contribution = await registry.add_contribution(
        batch, radius=get_settings().geofence_radius_m, **body.model_dump(),
    )
    return {
        "id": str(contribution.id),
        "batch_code": contribution.batch_code,
        "mass": contribution.mass,
        "contributor_id": contribution.contributor_id,
        "geofence_distance_m": contribution.geofence_distance_m,
        "outside_facility": contribution.outside_facility,
    }


@router.post("/{batch_id}/photos", status_code=status.HTTP_201_CREATED)
async def add_batch_photo(
    batch_id: UUID,
    body: PhotoCreate,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    registry = BatchRegistry(db, ctx)
    batch = await registry.get_batch(batch_id)
    photo = await registry.add_photo(
        batch, reference=body.reference, category=body.category,
    )
    return {"id": str(photo.id), "reference": photo.reference, "category": photo.category}
