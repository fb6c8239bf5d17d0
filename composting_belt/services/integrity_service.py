"""Integrity Service — assemble, certify and verify batch fingerprints.

Invariants:
    - Snapshot inputs come only from live rows (tombstoned contributions/photos excluded)
    - certify() reads the batch, assembles, computes and writes within one session;
      the batch version guard turns a concurrent change in between into
      ConcurrencyError and nothing is stored
    - A missing fingerprint verifies as invalid, never as an error
    - Chain links are appended in finalized_at order and never rewritten

Design Decisions:
    - The guard relies on the registry bumping the batch version on every
      contribution/photo change, so no row lock is taken
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession

from composting_belt.core.domain_types import BatchEventType, BatchId, FacilityCode
from composting_belt.core.fingerprint import (
    BatchSnapshot, ChainLink, ChainValidationResult, build_snapshot,
    compute_chained_fingerprint, compute_fingerprint, validate_chain,
    verify_fingerprint,
)
from composting_belt.core.operation_context import OperationContext
from composting_belt.models.batch import Batch
from composting_belt.services.batch_registry import BatchRegistry

logger = logging.getLogger(__name__)


class IntegrityService:
    """Fingerprint certification for single batches and facility chains."""

    def __init__(self, db: AsyncSession, ctx: OperationContext):
        self.registry = BatchRegistry(db, ctx)
        self.ctx = ctx

    async def snapshot_of(self, batch: Batch) -> BatchSnapshot:
        rows = await self.registry.contribution_rows(batch.id)
        photos = await self.registry.photo_refs(batch.id)
        return build_snapshot(
            code=batch.code,
            facility_code=batch.facility_code,
            started_at=batch.started_at,
            closed_at=batch.closed_at,
            initial_mass=batch.initial_mass,
            current_mass=batch.current_mass,
            latitude=batch.latitude,
            longitude=batch.longitude,
            created_by=batch.created_by,
            contributor_ids=[contributor for _, contributor in rows],
            contribution_ids=[contribution_id for contribution_id, _ in rows],
            photo_refs=photos,
        )

    async def build_snapshot(self, batch_id: BatchId) -> BatchSnapshot:
        batch = await self.registry.get_batch(batch_id)
        return await self.snapshot_of(batch)

    async def certify(self, batch_id: BatchId) -> str:
        """Compute and store the fingerprint of the batch's current state."""
        batch = await self.registry.get_batch(batch_id)
        snapshot = await self.snapshot_of(batch)
        digest = compute_fingerprint(snapshot)

        batch.fingerprint = digest
        batch.certified_at = self.ctx.now()
        self.registry.record_event(
            batch, BatchEventType.CERTIFY,
            station_from=batch.current_station, station_to=batch.current_station,
            mass_before=batch.current_mass, mass_after=batch.current_mass,
        )
        await self.registry.commit(batch.code)

        self.ctx.count("certified")
        self.ctx.log(
            logging.INFO, f"Batch {batch.code} certified: {digest[:16]}...",
            batch_code=batch.code, facility_code=batch.facility_code,
        )
        return digest

    async def verify(self, batch_id: BatchId) -> dict:
        batch = await self.registry.get_batch(batch_id)
        snapshot = await self.snapshot_of(batch)
        computed = compute_fingerprint(snapshot)
        valid = verify_fingerprint(snapshot, batch.fingerprint)
        if batch.fingerprint and not valid:
            self.ctx.log(
                logging.WARNING, f"Fingerprint mismatch for batch {batch.code}",
                batch_code=batch.code, facility_code=batch.facility_code,
            )
        return {
            "batch_code": batch.code,
            "valid": valid,
            "stored": batch.fingerprint,
            "computed": computed,
        }

    # ─── Facility chain ──────────────────────────────────────────

    async def seal_chain(self, facility_code: FacilityCode) -> list[dict]:
        """Append every finalized, unchained batch to the facility chain."""
        await self.registry.get_facility(facility_code)
        chained = await self.registry.list_chained(facility_code)
        previous_hash = chained[-1].chain_hash if chained else None
        next_index = (chained[-1].chain_index + 1) if chained else 1

        sealed = []
        for batch in await self.registry.list_finalized_unchained(facility_code):
            snapshot = await self.snapshot_of(batch)
            chain_hash = compute_chained_fingerprint(snapshot, previous_hash, next_index)
            batch.chain_index = next_index
            batch.chain_hash = chain_hash
            batch.previous_chain_hash = previous_hash
            await self.registry.commit(batch.code)

            sealed.append({
                "batch_code": batch.code,
                "chain_index": next_index,
                "chain_hash": chain_hash,
                "previous_hash": previous_hash,
            })
            previous_hash = chain_hash
            next_index += 1

        self.ctx.log(
            logging.INFO, f"Sealed {len(sealed)} batch(es) into {facility_code} chain",
            facility_code=facility_code,
        )
        return sealed

    async def validate_chain(self, facility_code: FacilityCode) -> ChainValidationResult:
        await self.registry.get_facility(facility_code)
        links = [
            ChainLink(
                batch_code=batch.code,
                chain_index=batch.chain_index,
                chain_hash=batch.chain_hash,
                previous_hash=batch.previous_chain_hash,
                snapshot=await self.snapshot_of(batch),
            )
            for batch in await self.registry.list_chained(facility_code)
        ]
        result = validate_chain(links)
        if not result.is_valid:
            self.ctx.log(
                logging.WARNING,
                f"Chain for {facility_code} broken at index {result.broken_at_index}",
                facility_code=facility_code, batch_code=result.broken_batch_code,
            )
        return result
