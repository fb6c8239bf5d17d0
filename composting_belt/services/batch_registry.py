"""Batch Registry — persisted batches, contributions, photos and the event trail.

Invariants:
    - Every read filters deleted_at IS NULL explicitly (batches, contributions, photos)
    - Photos of a tombstoned contribution are excluded with it
    - Any write that changes a batch's fingerprint inputs bumps the batch version
      (touch), so the version guard sees contribution/photo changes too
    - Reads and commits map StaleDataError -> ConcurrencyError and other
      SQLAlchemy failures -> PersistenceError after a rollback, so bulk callers
      can record them per entry
    - No caching: the database is the only source of truth

Design Decisions:
    - One registry per AsyncSession, constructed by each service
    - Lookups return None (find_*) or raise ResourceNotFoundError (get_*);
      bulk callers use find_* and record the miss themselves
"""

import logging
import uuid
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from composting_belt.core.domain_types import (
    BatchCode, BatchEventType, BatchId, BatchStatus, ContributionId,
    FacilityCode, PhotoCategory, GEOFENCE_RADIUS_M,
)
from composting_belt.core.errors import (
    ConcurrencyError, DomainValidationError, ErrorContext, InvalidStateError,
    PersistenceError, ResourceNotFoundError,
)
from composting_belt.core.geofence import validate_geofence
from composting_belt.core.operation_context import OperationContext
from composting_belt.models.batch import Batch
from composting_belt.models.batch_event import BatchEvent
from composting_belt.models.contribution import Contribution
from composting_belt.models.facility import Facility
from composting_belt.models.photo import Photo

logger = logging.getLogger(__name__)


class BatchRegistry:
    """Read/write access to the batch aggregate. Shared by all services."""

    def __init__(self, db: AsyncSession, ctx: OperationContext):
        self.db = db
        self.ctx = ctx

    # ─── Facilities ──────────────────────────────────────────────

    async def find_facility(self, code: str) -> Facility | None:
        result = await self._execute(
            select(Facility).where(Facility.code == code),
        )
        return result.scalar_one_or_none()

    async def get_facility(self, code: str) -> Facility:
        facility = await self.find_facility(code)
        if not facility:
            raise ResourceNotFoundError(
                "Facility", code, ErrorContext(facility_code=code),
            )
        return facility

    async def create_facility(
        self, code: str, name: str,
        latitude: float | None = None, longitude: float | None = None,
    ) -> Facility:
        if await self.find_facility(code):
            raise DomainValidationError(
                f"Facility '{code}' already exists", field="code",
            )
        facility = Facility(
            code=code, name=name, latitude=latitude, longitude=longitude,
        )
        self.db.add(facility)
        await self._commit(facility_code=code)
        return facility

    # ─── Batches ─────────────────────────────────────────────────

    async def find_batch(self, batch_id: BatchId) -> Batch | None:
        result = await self._execute(
            select(Batch)
            .where(Batch.id == batch_id)
            .where(Batch.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def get_batch(self, batch_id: BatchId) -> Batch:
        batch = await self.find_batch(batch_id)
        if not batch:
            raise ResourceNotFoundError(
                "Batch", str(batch_id), ErrorContext(request_id=self.ctx.request_id),
            )
        return batch

    async def find_batch_by_code(
        self, facility_code: FacilityCode, code: BatchCode,
    ) -> Batch | None:
        result = await self._execute(
            select(Batch)
            .where(Batch.facility_code == facility_code)
            .where(Batch.code == code)
            .where(Batch.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def list_processing_refs(
        self, facility_code: FacilityCode,
    ) -> list[tuple[BatchId, BatchCode]]:
        """(id, code) of live processing batches, station 7 first, then by code."""
        result = await self._execute(
            select(Batch.id, Batch.code)
            .where(Batch.facility_code == facility_code)
            .where(Batch.status == BatchStatus.PROCESSING.value)
            .where(Batch.deleted_at.is_(None))
            .order_by(Batch.current_station.desc(), Batch.code)
        )
        return [(BatchId(row.id), BatchCode(row.code)) for row in result.all()]

    async def list_finalized_unchained(self, facility_code: str) -> list[Batch]:
        result = await self._execute(
            select(Batch)
            .where(Batch.facility_code == facility_code)
            .where(Batch.status == BatchStatus.FINALIZED.value)
            .where(Batch.deleted_at.is_(None))
            .where(Batch.chain_index.is_(None))
            .order_by(Batch.finalized_at, Batch.code)
        )
        return list(result.scalars().all())

    async def list_chained(self, facility_code: str) -> list[Batch]:
        result = await self._execute(
            select(Batch)
            .where(Batch.facility_code == facility_code)
            .where(Batch.deleted_at.is_(None))
            .where(Batch.chain_index.isnot(None))
            .order_by(Batch.chain_index)
        )
        return list(result.scalars().all())

    async def create_batch(
        self,
        *,
        code: str,
        facility_code: str,
        initial_mass: float,
        created_by: str,
        decay_rate: float,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> Batch:
        """Intake: station 1, week 1, processing, current mass = initial mass."""
        await self.get_facility(facility_code)
        if await self._code_taken(facility_code, code):
            raise DomainValidationError(
                f"Batch code '{code}' already exists in facility '{facility_code}'",
                field="code",
            )
        now = self.ctx.now()
        batch = Batch(
            id=uuid.uuid4(),
            code=code,
            facility_code=facility_code,
            status=BatchStatus.PROCESSING.value,
            current_station=1,
            current_week=1,
            initial_mass=initial_mass,
            current_mass=initial_mass,
            decay_rate=decay_rate,
            created_by=created_by,
            latitude=latitude,
            longitude=longitude,
            started_at=now,
            updated_at=now,
        )
        self.db.add(batch)
        self.record_event(
            batch, BatchEventType.INTAKE,
            station_to=1, mass_after=initial_mass,
        )
        await self.commit(batch.code)
        return batch

    async def _code_taken(self, facility_code: str, code: str) -> bool:
        """Tombstoned rows keep their code: (facility_code, code) is unique."""
        result = await self._execute(
            select(func.count(Batch.id))
            .where(Batch.facility_code == facility_code)
            .where(Batch.code == code)
        )
        return result.scalar_one() > 0

    async def tombstone_batch(self, batch: Batch) -> None:
        now = self.ctx.now()
        batch.deleted_at = now
        batch.updated_at = now
        await self.commit(batch.code)

    def touch(self, batch: Batch) -> None:
        """Stamp updated_at and force the UPDATE, so the version always bumps."""
        batch.updated_at = self.ctx.now()
        flag_modified(batch, "updated_at")

    # ─── Contributions & photos ──────────────────────────────────

    async def find_contribution(self, contribution_id: ContributionId) -> Contribution | None:
        result = await self._execute(
            select(Contribution)
            .where(Contribution.id == contribution_id)
            .where(Contribution.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def get_contribution(self, contribution_id: ContributionId) -> Contribution:
        contribution = await self.find_contribution(contribution_id)
        if not contribution:
            raise ResourceNotFoundError("Contribution", str(contribution_id))
        return contribution

    async def add_contribution(
        self,
        batch: Batch,
        *,
        mass: float,
        contributor_id: str,
        latitude: float | None = None,
        longitude: float | None = None,
        radius: float = GEOFENCE_RADIUS_M,
    ) -> Contribution:
        """Record a delivery. Coordinates are checked against the facility, not enforced."""
        if mass <= 0:
            raise DomainValidationError(
                f"contribution mass must be > 0, got {mass}", field="mass",
            )
        _require_open(batch, "add a contribution to")

        facility = await self.get_facility(batch.facility_code)
        verdict = validate_geofence(
            facility.latitude, facility.longitude, latitude, longitude, radius,
        )
        if verdict.outside:
            self.ctx.log(
                logging.WARNING,
                f"Contribution to {batch.code} is {verdict.distance}m from facility",
                batch_code=batch.code, facility_code=batch.facility_code,
            )

        contribution = Contribution(
            batch_id=batch.id,
            batch_code=batch.code,
            mass=mass,
            contributor_id=contributor_id,
            latitude=latitude,
            longitude=longitude,
            geofence_distance_m=verdict.distance,
            outside_facility=verdict.outside,
            created_at=self.ctx.now(),
        )
        self.db.add(contribution)
        self.touch(batch)
        await self.commit(batch.code)
        return contribution

    async def tombstone_contribution(self, contribution: Contribution) -> Batch:
        batch = await self.get_batch(contribution.batch_id)
        _require_open(batch, "remove a contribution from")
        contribution.deleted_at = self.ctx.now()
        self.touch(batch)
        await self.commit(batch.code)
        return batch

    async def add_photo(
        self,
        batch: Batch,
        *,
        reference: str,
        category: PhotoCategory,
        contribution: Contribution | None = None,
    ) -> Photo:
        if contribution is not None and contribution.batch_id != batch.id:
            raise DomainValidationError(
                "contribution does not belong to this batch", field="contribution_id",
            )
        photo = Photo(
            batch_id=batch.id,
            contribution_id=contribution.id if contribution else None,
            reference=reference,
            category=category.value,
            created_at=self.ctx.now(),
        )
        self.db.add(photo)
        self.touch(batch)
        await self.commit(batch.code)
        return photo

    # ─── Aggregate reads (tombstones excluded) ───────────────────

    async def contribution_rows(self, batch_id: BatchId) -> list[tuple[UUID, str]]:
        """(contribution id, contributor id) for live contributions."""
        result = await self._execute(
            select(Contribution.id, Contribution.contributor_id)
            .where(Contribution.batch_id == batch_id)
            .where(Contribution.deleted_at.is_(None))
        )
        return [(row.id, row.contributor_id) for row in result.all()]

    async def photo_refs(self, batch_id: BatchId) -> list[str]:
        result = await self._execute(
            select(Photo.reference)
            .outerjoin(Contribution, Photo.contribution_id == Contribution.id)
            .where(Photo.batch_id == batch_id)
            .where(Photo.deleted_at.is_(None))
            .where(Contribution.deleted_at.is_(None))
        )
        return list(result.scalars().all())

    async def total_contributed_mass(self, batch_id: BatchId) -> float:
        result = await self._execute(
            select(func.coalesce(func.sum(Contribution.mass), 0.0))
            .where(Contribution.batch_id == batch_id)
            .where(Contribution.deleted_at.is_(None))
        )
        return float(result.scalar_one())

    # ─── Event trail ─────────────────────────────────────────────

    def record_event(
        self, batch: Batch, event_type: BatchEventType, **fields: object,
    ) -> BatchEvent:
        event = BatchEvent(
            batch_id=batch.id,
            event_type=event_type.value,
            request_id=self.ctx.request_id,
            created_at=self.ctx.now(),
            **fields,
        )
        self.db.add(event)
        return event

    async def has_cycle_advance(self, batch_id: BatchId, cycle_id: str) -> bool:
        result = await self._execute(
            select(func.count(BatchEvent.id))
            .where(BatchEvent.batch_id == batch_id)
            .where(BatchEvent.event_type == BatchEventType.ADVANCE.value)
            .where(BatchEvent.cycle_id == cycle_id)
        )
        return result.scalar_one() > 0

    async def list_events(self, batch_id: BatchId) -> list[BatchEvent]:
        result = await self._execute(
            select(BatchEvent)
            .where(BatchEvent.batch_id == batch_id)
            .order_by(BatchEvent.created_at)
        )
        return list(result.scalars().all())

    # ─── Transactions ────────────────────────────────────────────

    async def commit(self, batch_code: str | None = None) -> None:
        await self._commit(batch_code=batch_code)

    async def _commit(
        self, batch_code: str | None = None, facility_code: str | None = None,
    ) -> None:
        context = ErrorContext(
            request_id=self.ctx.request_id,
            batch_code=batch_code,
            facility_code=facility_code,
        )
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._failure(e, "commit", context)

    async def _execute(self, statement):
        """Run a read. Autoflush and driver failures surface like commit failures."""
        try:
            return await self.db.execute(statement)
        except SQLAlchemyError as e:
            raise await self._failure(
                e, "query", ErrorContext(request_id=self.ctx.request_id),
            )

    async def _failure(
        self, exc: SQLAlchemyError, operation: str, context: ErrorContext,
    ) -> ConcurrencyError | PersistenceError:
        """Roll back and translate exc; the caller raises the result."""
        await self.db.rollback()
        subject = context.batch_code or context.facility_code or "registry"
        if isinstance(exc, StaleDataError):
            return ConcurrencyError(
                f"Batch '{subject}' was modified concurrently", context,
            )
        logger.error(
            f"{operation.capitalize()} failed for {subject}: {exc}",
            extra={"request_id": self.ctx.request_id, "batch_code": context.batch_code},
        )
        return PersistenceError(str(exc.__class__.__name__), operation, context)


def _require_open(batch: Batch, action: str) -> None:
    if batch.status == BatchStatus.FINALIZED.value:
        raise InvalidStateError(
            f"Cannot {action} finalized batch '{batch.code}'",
            current_state=batch.status,
        )
