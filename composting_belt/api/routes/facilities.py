"""Facility Routes — registration, weekly bulk advance, restoration and the certification chain.

Invariants:
    - Bulk endpoints answer 200 with per-entry failures; callers inspect the lists
    - A malformed restoration request is a top-level 400 failure envelope
    - Unknown facility on a bulk endpoint is a top-level 404
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from composting_belt.api.dependencies import get_operation_context
from composting_belt.config import get_settings
from composting_belt.core.operation_context import OperationContext
from composting_belt.infrastructure.database import get_db
from composting_belt.schemas.batch import (
    AdvanceCycleRequest, FacilityCreate, RestoreRequest,
)
from composting_belt.services.batch_registry import BatchRegistry
from composting_belt.services.belt_service import BeltService
from composting_belt.services.integrity_service import IntegrityService
from composting_belt.services.restoration_service import RestorationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/facilities", tags=["facilities"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_facility(
    body: FacilityCreate,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    facility = await BatchRegistry(db, ctx).create_facility(**body.model_dump())
    return {
        "code": facility.code,
        "name": facility.name,
        "latitude": facility.latitude,
        "longitude": facility.longitude,
    }


@router.post("/restore")
async def restore_belt_state(
    body: RestoreRequest,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    """Repair batch state from an explicit batch-code -> station mapping."""
    service = RestorationService(
        db, ctx, default_rate=get_settings().default_decay_rate,
    )
    report = await service.restore(body.facility_code, body.mapping)
    return report.to_dict()


@router.post("/{facility_code}/advance")
async def advance_facility(
    facility_code: str,
    body: AdvanceCycleRequest,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    """Weekly job: advance every processing batch of the facility once per cycle."""
    service = BeltService(db, ctx, default_rate=get_settings().default_decay_rate)
    report = await service.advance_facility(facility_code, body.cycle_id)
    return report.to_dict()


@router.post("/{facility_code}/chain/seal")
async def seal_chain(
    facility_code: str,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    sealed = await IntegrityService(db, ctx).seal_chain(facility_code)
    return {"facility": facility_code, "sealed": sealed}


@router.get("/{facility_code}/chain/validate")
async def validate_chain(
    facility_code: str,
    db: AsyncSession = Depends(get_db),
    ctx: OperationContext = Depends(get_operation_context),
):
    result = await IntegrityService(db, ctx).validate_chain(facility_code)
    return {"facility": facility_code, **result.to_dict()}
