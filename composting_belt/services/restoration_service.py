"""Restoration Service — repair batch state from an explicit station-target mapping.

Invariants:
    - Entries are processed in sorted batch-code order
    - One entry's failure (not found, bad target, persistence, version conflict)
      is recorded in errors and never aborts the rest of the mapping
    - Restored mass depends only on target station and decay rate, so applying the
      same mapping again converges to the same state
    - The report is a structural success even when every entry failed

Design Decisions:
    - week = target station (station/week 1:1 is a domain assumption, not re-derived)
    - Restoration reopens finalized batches: status, closure and finalization
      timestamps are reset along with station/week/mass
    - A restored batch loses its certification: fingerprint and certified_at are
      cleared, since the certified state no longer describes the batch
    - Batches sealed into the facility chain are rejected per entry; the chain
      is append-only and re-linking would rewrite every later link
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from composting_belt.core.belt import plan_restore
from composting_belt.core.domain_types import (
    BatchEventType, BatchStatus, DEFAULT_DECAY_RATE,
)
from composting_belt.core.errors import (
    CompostingError, ErrorContext, InvalidStateError, ItemFailure,
)
from composting_belt.core.operation_context import OperationContext
from composting_belt.core.repository_protocols import position_of
from composting_belt.models.batch import Batch
from composting_belt.services.batch_registry import BatchRegistry

logger = logging.getLogger(__name__)

BATCH_NOT_FOUND = "batch not found"


@dataclass
class RestorationReport:
    facility: str
    timestamp: datetime
    restored: list[dict] = field(default_factory=list)
    errors: list[ItemFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "facility": self.facility,
            "restored": self.restored,
            "errors": [
                {"batch_code": e.batch_code, "error": e.error} for e in self.errors
            ],
            "timestamp": self.timestamp.isoformat(),
        }


class RestorationService:
    """Idempotent bulk recovery after an incorrect automated advance."""

    def __init__(
        self, db: AsyncSession, ctx: OperationContext,
        default_rate: float = DEFAULT_DECAY_RATE,
    ):
        self.registry = BatchRegistry(db, ctx)
        self.ctx = ctx
        self.default_rate = default_rate

    async def restore(
        self, facility_code: str, mapping: dict[str, int],
    ) -> RestorationReport:
        self.ctx.log(
            logging.INFO,
            f"Restoring {len(mapping)} batch(es) for facility {facility_code}",
            facility_code=facility_code,
        )
        report = RestorationReport(facility=facility_code, timestamp=self.ctx.now())

        for code in sorted(mapping):
            try:
                batch = await self.registry.find_batch_by_code(facility_code, code)
                if batch is None:
                    self._record_failure(
                        report, ItemFailure(code, BATCH_NOT_FOUND, "RESOURCE_NOT_FOUND"),
                    )
                    continue
                report.restored.append(await self._restore_one(batch, mapping[code]))
            except CompostingError as exc:
                self._record_failure(report, ItemFailure.from_error(code, exc))

        self.ctx.log(
            logging.INFO,
            f"Restoration complete for {facility_code}: "
            f"{len(report.restored)} restored, {len(report.errors)} errors",
            facility_code=facility_code,
        )
        return report

    def _record_failure(self, report: RestorationReport, failure: ItemFailure) -> None:
        report.errors.append(failure)
        self.ctx.count("restore_failed")
        self.ctx.log(
            logging.WARNING, f"Restore failed for {failure.batch_code}: {failure.error}",
            batch_code=failure.batch_code, facility_code=report.facility,
            error_code=failure.code,
        )

    async def _restore_one(self, batch: Batch, target_station: int) -> dict:
        code = batch.code
        if batch.chain_index is not None:
            raise InvalidStateError(
                f"Cannot restore batch '{code}' sealed at chain index {batch.chain_index}",
                current_state="sealed",
                context=ErrorContext(
                    request_id=self.ctx.request_id, batch_code=code,
                    facility_code=batch.facility_code,
                ),
            )
        move = plan_restore(position_of(batch, self.default_rate), target_station)

        batch.status = BatchStatus.PROCESSING.value
        batch.current_station = move.station
        batch.current_week = move.week
        batch.current_mass = move.mass
        batch.closed_at = None
        batch.finalized_at = None
        batch.fingerprint = None
        batch.certified_at = None
        self.registry.touch(batch)
        self.registry.record_event(
            batch, BatchEventType.RESTORE,
            station_from=move.station_from, station_to=move.station,
            mass_before=move.mass_before, mass_after=move.mass,
        )
        await self.registry.commit(code)

        self.ctx.count("restored")
        self.ctx.log(
            logging.INFO,
            f"Restored {code} to station {move.station} ({move.mass}kg)",
            batch_code=code, facility_code=batch.facility_code, station=move.station,
        )
        return {
            "batch_code": code,
            "station": move.station,
            "week": move.week,
            "mass": move.mass,
        }
