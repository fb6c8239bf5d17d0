"""Batch Registry — tombstones, geofenced contributions, photos and events.

Tests:
    - Tombstoned batches vanish from every read
    - Duplicate codes are rejected per facility
    - Contributions store the geofence verdict; outside is recorded, not rejected
    - Finalized batches reject contribution changes
    - Photo of a tombstoned contribution is excluded from photo refs
"""

import pytest

from composting_belt.core.domain_types import PhotoCategory
from composting_belt.core.errors import (
    DomainValidationError, InvalidStateError, ResourceNotFoundError,
)
from composting_belt.services.batch_registry import BatchRegistry
from composting_belt.services.belt_service import BeltService

from tests.services.seed import FACILITY_CODE, FACILITY_LAT, FACILITY_LON


async def test_duplicate_facility_rejected(test_db, ctx, facility):
    with pytest.raises(DomainValidationError):
        await BatchRegistry(test_db, ctx).create_facility(code=FACILITY_CODE, name="Again")


async def test_duplicate_batch_code_rejected(make_batch):
    await make_batch("A-001")
    with pytest.raises(DomainValidationError):
        await make_batch("A-001")


async def test_tombstoned_batch_is_invisible(test_db, ctx, make_batch):
    batch = await make_batch("A-001")
    registry = BatchRegistry(test_db, ctx)
    await registry.tombstone_batch(batch)

    assert batch.is_deleted
    assert await registry.find_batch(batch.id) is None
    assert await registry.find_batch_by_code(FACILITY_CODE, "A-001") is None
    assert await registry.list_processing_refs(FACILITY_CODE) == []
    with pytest.raises(ResourceNotFoundError):
        await registry.get_batch(batch.id)


async def test_tombstoned_code_is_not_reused(make_batch, test_db, ctx):
    batch = await make_batch("A-001")
    await BatchRegistry(test_db, ctx).tombstone_batch(batch)
    with pytest.raises(DomainValidationError):
        await make_batch("A-001")


async def test_processing_refs_order(make_batch, test_db, ctx):
    await make_batch("B-001", station=2)
    await make_batch("A-001", station=2)
    await make_batch("C-001", station=6)
    refs = await BatchRegistry(test_db, ctx).list_processing_refs(FACILITY_CODE)
    assert [code for _, code in refs] == ["C-001", "A-001", "B-001"]


async def test_contribution_inside_geofence(test_db, ctx, make_batch):
    batch = await make_batch("A-001")
    contribution = await BatchRegistry(test_db, ctx).add_contribution(
        batch, mass=2.5, contributor_id="c-1",
        latitude=FACILITY_LAT + 0.001, longitude=FACILITY_LON,
    )
    assert contribution.geofence_distance_m == 111
    assert contribution.outside_facility is False


async def test_contribution_outside_geofence_is_recorded(test_db, ctx, make_batch, caplog):
    batch = await make_batch("A-001")
    contribution = await BatchRegistry(test_db, ctx).add_contribution(
        batch, mass=2.5, contributor_id="c-1",
        latitude=FACILITY_LAT + 0.01, longitude=FACILITY_LON,
    )
    assert contribution.geofence_distance_m == 1112
    assert contribution.outside_facility is True
    assert any("from facility" in r.getMessage() for r in caplog.records)


async def test_contribution_without_coordinates(test_db, ctx, make_batch):
    batch = await make_batch("A-001")
    contribution = await BatchRegistry(test_db, ctx).add_contribution(
        batch, mass=1.0, contributor_id="c-1",
    )
    assert contribution.geofence_distance_m is None
    assert contribution.outside_facility is False


async def test_contribution_rejects_non_positive_mass(test_db, ctx, make_batch):
    batch = await make_batch("A-001")
    with pytest.raises(DomainValidationError):
        await BatchRegistry(test_db, ctx).add_contribution(
            batch, mass=0.0, contributor_id="c-1",
        )


async def test_finalized_batch_rejects_contribution_changes(test_db, ctx, make_batch):
    batch = await make_batch("A-001", station=7)
    registry = BatchRegistry(test_db, ctx)
    contribution = await registry.add_contribution(batch, mass=1.0, contributor_id="c-1")
    await BeltService(test_db, ctx).finalize(batch.id, 78.0)

    with pytest.raises(InvalidStateError):
        await registry.add_contribution(batch, mass=1.0, contributor_id="c-2")
    with pytest.raises(InvalidStateError):
        await registry.tombstone_contribution(contribution)


async def test_photo_of_tombstoned_contribution_excluded(test_db, ctx, make_batch):
    batch = await make_batch("A-001")
    registry = BatchRegistry(test_db, ctx)
    contribution = await registry.add_contribution(batch, mass=1.0, contributor_id="c-1")
    await registry.add_photo(batch, reference="s3://b/batch.jpg", category=PhotoCategory.DESTINATION)
    await registry.add_photo(
        batch, reference="s3://b/delivery.jpg", category=PhotoCategory.CONTENT,
        contribution=contribution,
    )
    assert sorted(await registry.photo_refs(batch.id)) == [
        "s3://b/batch.jpg", "s3://b/delivery.jpg",
    ]

    await registry.tombstone_contribution(contribution)
    assert await registry.photo_refs(batch.id) == ["s3://b/batch.jpg"]
    assert await registry.total_contributed_mass(batch.id) == 0.0
    with pytest.raises(ResourceNotFoundError):
        await registry.get_contribution(contribution.id)


async def test_photo_contribution_must_belong_to_batch(test_db, ctx, make_batch):
    a = await make_batch("A-001")
    b = await make_batch("A-002")
    registry = BatchRegistry(test_db, ctx)
    contribution = await registry.add_contribution(a, mass=1.0, contributor_id="c-1")
    with pytest.raises(DomainValidationError):
        await registry.add_photo(
            b, reference="s3://x.jpg", category=PhotoCategory.CONTENT,
            contribution=contribution,
        )


async def test_contribution_bumps_batch_version(test_db, ctx, make_batch):
    batch = await make_batch("A-001")
    version = batch.version
    await BatchRegistry(test_db, ctx).add_contribution(batch, mass=1.0, contributor_id="c-1")
    assert batch.version == version + 1
