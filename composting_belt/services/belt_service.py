"""Belt Service — intake, weekly advance, finalization and the bulk weekly job.

Invariants:
    - Every transition goes through core/belt.py plan_*; a rejected plan mutates nothing
    - Each batch commits on its own: a bulk run never rolls back batches already committed
    - Bulk advance never aborts on one batch; failures become ItemFailure entries
    - A batch already advanced under the same cycle_id is skipped, not advanced twice

Design Decisions:
    - Bulk order: station 7 first, then by code (deterministic logs, matches the
      physical unloading order of the belt)
    - Batches are re-read one at a time inside the bulk loop: a rollback on one
      batch cannot leave the next one with expired state
"""

import logging
from dataclasses import dataclass, field
from sqlalchemy.ext.asyncio import AsyncSession

from composting_belt.core.belt import Finalization, StationMove, plan_advance, plan_finalize
from composting_belt.core.decay import resolve_decay_rate
from composting_belt.core.domain_types import (
    BatchEventType, BatchId, BatchStatus, DEFAULT_DECAY_RATE, FacilityCode,
)
from composting_belt.core.errors import CompostingError, ItemFailure, ResourceNotFoundError
from composting_belt.core.operation_context import OperationContext
from composting_belt.core.repository_protocols import position_of
from composting_belt.models.batch import Batch
from composting_belt.services.batch_registry import BatchRegistry

logger = logging.getLogger(__name__)


@dataclass
class BulkAdvanceReport:
    facility: str
    cycle_id: str
    advanced: list[dict] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "facility": self.facility,
            "cycle_id": self.cycle_id,
            "counts": {
                "advanced": len(self.advanced),
                "skipped": len(self.skipped),
                "failed": len(self.failures),
            },
            "advanced": self.advanced,
            "skipped": self.skipped,
            "failures": [f.to_dict() for f in self.failures],
        }


class BeltService:
    """Normal weekly operation of the belt."""

    def __init__(
        self, db: AsyncSession, ctx: OperationContext,
        default_rate: float = DEFAULT_DECAY_RATE,
    ):
        self.registry = BatchRegistry(db, ctx)
        self.ctx = ctx
        self.default_rate = default_rate

    async def intake(
        self,
        *,
        code: str,
        facility_code: str,
        initial_mass: float,
        created_by: str,
        decay_rate: float | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> Batch:
        rate = resolve_decay_rate(decay_rate, self.default_rate)
        batch = await self.registry.create_batch(
            code=code,
            facility_code=facility_code,
            initial_mass=initial_mass,
            created_by=created_by,
            decay_rate=rate,
            latitude=latitude,
            longitude=longitude,
        )
        self.ctx.count("intake")
        self.ctx.log(
            logging.INFO, f"Batch {code} received at station 1",
            batch_code=code, facility_code=facility_code,
        )
        return batch

    async def advance(self, batch_id: BatchId, cycle_id: str | None = None) -> StationMove:
        batch = await self.registry.get_batch(batch_id)
        return await self._advance_batch(batch, cycle_id)

    async def _advance_batch(self, batch: Batch, cycle_id: str | None) -> StationMove:
        move = plan_advance(position_of(batch, self.default_rate))

        batch.current_station = move.station
        batch.current_week = move.week
        batch.current_mass = move.mass
        self.registry.touch(batch)
        self.registry.record_event(
            batch, BatchEventType.ADVANCE,
            station_from=move.station_from, station_to=move.station,
            mass_before=move.mass_before, mass_after=move.mass,
            cycle_id=cycle_id,
        )
        await self.registry.commit(batch.code)

        self.ctx.count("advanced")
        self.ctx.log(
            logging.INFO,
            f"Batch {batch.code} advanced {move.station_from} -> {move.station} "
            f"({move.mass_before}kg -> {move.mass}kg)",
            batch_code=batch.code, station=move.station, cycle_id=cycle_id,
        )
        return move

    async def finalize(self, batch_id: BatchId, final_mass: float) -> Finalization:
        batch = await self.registry.get_batch(batch_id)
        plan = plan_finalize(position_of(batch, self.default_rate), final_mass)

        now = self.ctx.now()
        batch.status = BatchStatus.FINALIZED.value
        batch.current_mass = plan.final_mass
        batch.closed_at = now
        batch.finalized_at = now
        self.registry.touch(batch)
        self.registry.record_event(
            batch, BatchEventType.FINALIZE,
            station_from=batch.current_station, station_to=batch.current_station,
            mass_before=plan.mass_before, mass_after=plan.final_mass,
        )
        await self.registry.commit(batch.code)

        self.ctx.count("finalized")
        self.ctx.log(
            logging.INFO,
            f"Batch {batch.code} finalized at {plan.final_mass}kg "
            f"(expected ~{plan.expected_mass}kg)",
            batch_code=batch.code, station=batch.current_station,
        )
        return plan

    async def advance_facility(
        self, facility_code: FacilityCode, cycle_id: str,
    ) -> BulkAdvanceReport:
        """Weekly job: advance every live processing batch of the facility."""
        await self.registry.get_facility(facility_code)
        report = BulkAdvanceReport(facility=facility_code, cycle_id=cycle_id)

        for batch_id, code in await self.registry.list_processing_refs(facility_code):
            try:
                if await self.registry.has_cycle_advance(batch_id, cycle_id):
                    report.skipped.append(code)
                    self.ctx.count("skipped")
                    continue
                batch = await self.registry.find_batch(batch_id)
                if batch is None:
                    raise ResourceNotFoundError("Batch", code)
                move = await self._advance_batch(batch, cycle_id)
                report.advanced.append({
                    "batch_code": code,
                    "station": move.station,
                    "week": move.week,
                    "mass": move.mass,
                })
            except CompostingError as exc:
                report.failures.append(ItemFailure.from_error(code, exc))
                self.ctx.count("failed")
                self.ctx.log(
                    logging.WARNING, f"Advance failed for {code}: {exc.message}",
                    batch_code=code, facility_code=facility_code,
                    error_code=exc.code, cycle_id=cycle_id,
                )

        self.ctx.log(
            logging.INFO,
            f"Weekly advance {cycle_id} for {facility_code}: "
            f"{len(report.advanced)} advanced, {len(report.skipped)} skipped, "
            f"{len(report.failures)} failed",
            facility_code=facility_code, cycle_id=cycle_id,
        )
        return report
