"""Contribution Routes — tombstoning and photo attachment for single deliveries."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from composting_belt.api.dependencies import get_operation_context
from composting_belt.core.operation_context import OperationContext
from composting_belt.infrastructure.database import get_db
from composting_belt.schemas.batch import PhotoCreate
from composting_belt.services.batch_registry import BatchRegistry

router = APIRouter(prefix="/api/v1/contributions", tags=["contributions"])


@router.delete("/{contribution_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contribution(
    contribution_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    registry = BatchRegistry(db, ctx)
    contribution = await registry.get_contribution(contribution_id)
    await registry.tombstone_contribution(contribution)


@router.post("/{contribution_id}/photos", status_code=status.HTTP_201_CREATED)
async def add_contribution_photo(
    contribution_id: UUID,
    body: PhotoCreate,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    registry = BatchRegistry(db, ctx)
    contribution = await registry.get_contribution(contribution_id)
    batch = await registry.get_batch(contribution.batch_id)
    photo = await registry.add_photo(
        batch, reference=body.reference, category=body.category,
        contribution=contribution,
    )
    return {"id": str(photo.id), "reference": photo.reference, "category": photo.category}
