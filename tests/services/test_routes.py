"""HTTP routes — status codes and envelopes through the FastAPI app.

Tests:
    - Health probes
    - Intake, advance, finalize round trip over HTTP
    - Domain errors map to 400/404/409 failure envelopes with "success": false
    - Restoration: partial failure is 200, malformed request is 400
    - X-Request-ID is echoed into the error context
"""

from tests.services.seed import FACILITY_CODE, FACILITY_LAT, FACILITY_LON


async def _facility(client):
    resp = await client.post("/api/v1/facilities", json={
        "code": FACILITY_CODE, "name": "Pinheiros Hub",
        "latitude": FACILITY_LAT, "longitude": FACILITY_LON,
    })
    assert resp.status_code == 201
    return resp.json()


async def _batch(client, code="A-001", mass=100.0):
    resp = await client.post("/api/v1/batches", json={
        "code": code, "facility_code": FACILITY_CODE,
        "initial_mass": mass, "created_by": "operator-1",
    })
    assert resp.status_code == 201
    return resp.json()


async def test_health(client):
    resp = await client.get("/api/v1/health/")
    assert resp.status_code == 200
    assert resp.json()["service"] == "composting-belt-api"


async def test_readiness(client):
    resp = await client.get("/api/v1/health/ready")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ready"


async def test_intake_and_read(client):
    await _facility(client)
    batch = await _batch(client)
    assert batch["current_station"] == 1
    assert batch["current_mass"] == 100.0
    assert batch["status"] == "processing"

    resp = await client.get(f"/api/v1/batches/{batch['id']}")
    assert resp.status_code == 200
    assert resp.json()["code"] == "A-001"


async def test_intake_rejects_non_positive_mass(client):
    await _facility(client)
    resp = await client.post("/api/v1/batches", json={
        "code": "A-001", "facility_code": FACILITY_CODE,
        "initial_mass": 0, "created_by": "operator-1",
    })
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_advance_and_finalize(client):
    await _facility(client)
    batch = await _batch(client)

    resp = await client.post(f"/api/v1/batches/{batch['id']}/advance")
    assert resp.status_code == 200
    assert resp.json() == {"station": 2, "week": 2, "mass_before": 100.0, "mass": 96.34}

    resp = await client.post(
        f"/api/v1/batches/{batch['id']}/finalize", json={"final_mass": 80.0},
    )
    assert resp.status_code == 200
    assert resp.json()["expected_mass"] == 78.0

    resp = await client.post(f"/api/v1/batches/{batch['id']}/advance")
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_STATE"


async def test_finalize_bad_mass_is_400(client):
    await _facility(client)
    batch = await _batch(client)
    resp = await client.post(
        f"/api/v1/batches/{batch['id']}/finalize", json={"final_mass": -1},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert "final mass" in body["error"]["message"]


async def test_tombstoned_batch_is_404_with_request_id(client):
    await _facility(client)
    batch = await _batch(client)
    resp = await client.delete(f"/api/v1/batches/{batch['id']}")
    assert resp.status_code == 204

    resp = await client.get(
        f"/api/v1/batches/{batch['id']}", headers={"X-Request-ID": "req-abc"},
    )
    assert resp.status_code == 404
    error = resp.json()["error"]
    assert error["code"] == "RESOURCE_NOT_FOUND"
    assert error["context"]["request_id"] == "req-abc"


async def test_bulk_advance_route(client):
    await _facility(client)
    await _batch(client, "A-001")
    await _batch(client, "A-002")

    resp = await client.post(
        f"/api/v1/facilities/{FACILITY_CODE}/advance", json={"cycle_id": "2025-W11"},
    )
    assert resp.status_code == 200
    assert resp.json()["counts"] == {"advanced": 2, "skipped": 0, "failed": 0}

    resp = await client.post(
        f"/api/v1/facilities/{FACILITY_CODE}/advance", json={"cycle_id": "2025-W11"},
    )
    assert resp.json()["counts"] == {"advanced": 0, "skipped": 2, "failed": 0}


async def test_bulk_advance_unknown_facility_is_404(client):
    resp = await client.post(
        "/api/v1/facilities/NOPE/advance", json={"cycle_id": "2025-W11"},
    )
    assert resp.status_code == 404


async def test_restore_partial_failure_is_200(client):
    await _facility(client)
    await _batch(client, "A-001")
    await _batch(client, "A-002")

    resp = await client.post("/api/v1/facilities/restore", json={
        "facility_code": FACILITY_CODE,
        "mapping": {"A-001": 7, "A-002": 1, "Z-404": 3},
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert [r["batch_code"] for r in body["restored"]] == ["A-001", "A-002"]
    assert body["restored"][0]["mass"] == 79.95
    assert body["errors"] == [{"batch_code": "Z-404", "error": "batch not found"}]
    assert body["timestamp"]


async def test_restore_malformed_request_is_400(client):
    resp = await client.post("/api/v1/facilities/restore", json={
        "facility_code": FACILITY_CODE, "mapping": {"A-001": 9},
    })
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["message"]

    resp = await client.post("/api/v1/facilities/restore", json={"mapping": "nope"})
    assert resp.status_code == 400


async def test_contribution_geofence_and_fingerprint(client):
    await _facility(client)
    batch = await _batch(client)

    resp = await client.post(f"/api/v1/batches/{batch['id']}/contributions", json={
        "mass": 4.2, "contributor_id": "c-1",
        "latitude": FACILITY_LAT + 0.01, "longitude": FACILITY_LON,
    })
    assert resp.status_code == 201
    contribution = resp.json()
    assert contribution["outside_facility"] is True

    resp = await client.post(
        f"/api/v1/contributions/{contribution['id']}/photos",
        json={"reference": "s3://b/c1.jpg", "category": "content"},
    )
    assert resp.status_code == 201

    resp = await client.post(f"/api/v1/batches/{batch['id']}/fingerprint")
    digest = resp.json()["fingerprint"]

    resp = await client.get(f"/api/v1/batches/{batch['id']}/fingerprint/verify")
    assert resp.json()["valid"] is True
    assert resp.json()["stored"] == digest

    snapshot = (await client.get(f"/api/v1/batches/{batch['id']}/snapshot")).json()
    assert snapshot["contributor_ids"] == ["c-1"]
    assert snapshot["photo_refs"] == ["s3://b/c1.jpg"]

    resp = await client.delete(f"/api/v1/contributions/{contribution['id']}")
    assert resp.status_code == 204
    resp = await client.get(f"/api/v1/batches/{batch['id']}/fingerprint/verify")
    assert resp.json()["valid"] is False


async def test_chain_routes(client):
    await _facility(client)
    batch = await _batch(client)
    await client.post(f"/api/v1/batches/{batch['id']}/finalize", json={"final_mass": 90.0})

    resp = await client.post(f"/api/v1/facilities/{FACILITY_CODE}/chain/seal")
    assert [s["chain_index"] for s in resp.json()["sealed"]] == [1]

    resp = await client.get(f"/api/v1/facilities/{FACILITY_CODE}/chain/validate")
    assert resp.json()["is_valid"] is True


async def test_geofence_check(client):
    resp = await client.post("/api/v1/geofence/check", json={
        "ref_latitude": FACILITY_LAT, "ref_longitude": FACILITY_LON,
        "latitude": FACILITY_LAT + 0.001, "longitude": FACILITY_LON,
    })
    assert resp.json() == {"valid": True, "distance": 111, "outside": False}

    resp = await client.post("/api/v1/geofence/check", json={
        "ref_latitude": FACILITY_LAT, "ref_longitude": FACILITY_LON,
    })
    assert resp.json() == {"valid": False, "distance": None, "outside": False}


async def test_events_and_expected_final_mass(client):
    await _facility(client)
    batch = await _batch(client, mass=50.0)
    await client.post(f"/api/v1/batches/{batch['id']}/advance")

    resp = await client.get(f"/api/v1/batches/{batch['id']}/events")
    assert sorted(e["event_type"] for e in resp.json()["events"]) == ["advance", "intake"]

    resp = await client.get(f"/api/v1/batches/{batch['id']}/expected-final-mass")
    assert resp.json() == {"batch_code": "A-001", "expected_final_mass": 39.0}
