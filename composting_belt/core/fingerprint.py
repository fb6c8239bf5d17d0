"""Integrity Fingerprint — canonical batch snapshot and its SHA-256 digest.

Invariants:
    - Exactly twelve fields participate (see BatchSnapshot); nothing else can move the digest
    - List fields are sorted (contributors also de-duplicated) before serialization,
      so insertion order never affects the digest
    - Payload: JSON, sorted keys, compact separators, UTF-8
    - Timestamps render as UTC ISO-8601 with milliseconds and a "Z" suffix
    - Integral floats render as integers (100.0 -> 100)
    - verify_* is plain equality: an integrity check, not a secret comparison

Design Decisions:
    - Timestamp and number normalization make the digest independent of the
      storage driver (aware vs naive datetimes, 100 vs 100.0)
    - Chained fingerprints reuse the same payload plus previous_hash/chain_index
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from composting_belt.core.domain_types import GENESIS_HASH


@dataclass(frozen=True)
class BatchSnapshot:
    """Canonical, order-independent view of a batch for certification."""
    code: str
    facility_code: str
    started_at: datetime | None
    closed_at: datetime | None
    initial_mass: float
    current_mass: float
    latitude: float | None
    longitude: float | None
    created_by: str
    contributor_ids: tuple[str, ...] = ()
    contribution_ids: tuple[str, ...] = ()
    photo_refs: tuple[str, ...] = ()

    def to_payload(self) -> dict:
        return {
            "code": self.code,
            "facility_code": self.facility_code,
            "started_at": format_timestamp(self.started_at),
            "closed_at": format_timestamp(self.closed_at),
            "initial_mass": _number(self.initial_mass),
            "current_mass": _number(self.current_mass),
            "latitude": _number(self.latitude),
            "longitude": _number(self.longitude),
            "created_by": self.created_by,
            "contributor_ids": sorted(set(self.contributor_ids)),
            "contribution_ids": sorted(self.contribution_ids),
            "photo_refs": sorted(self.photo_refs),
        }


@dataclass(frozen=True)
class ChainLink:
    """One stored link of a facility certification chain."""
    batch_code: str
    chain_index: int
    chain_hash: str
    previous_hash: str | None
    snapshot: BatchSnapshot


@dataclass(frozen=True)
class ChainValidationResult:
    is_valid: bool
    total: int
    validated_length: int
    broken_at_index: int | None = None
    broken_batch_code: str | None = None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "total": self.total,
            "validated_length": self.validated_length,
            "broken_at_index": self.broken_at_index,
            "broken_batch_code": self.broken_batch_code,
        }


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _number(value: float | None) -> float | int | None:
    if value is None:
        return None
    value = float(value)
    return int(value) if value.is_integer() else value


def build_snapshot(
    *,
    code: str,
    facility_code: str,
    started_at: datetime | None,
    closed_at: datetime | None,
    initial_mass: float,
    current_mass: float,
    latitude: float | None,
    longitude: float | None,
    created_by: str,
    contributor_ids: Iterable[object] = (),
    contribution_ids: Iterable[object] = (),
    photo_refs: Iterable[str] = (),
) -> BatchSnapshot:
    """Normalize raw registry values (UUIDs, unsorted lists) into a snapshot."""
    return BatchSnapshot(
        code=code,
        facility_code=facility_code,
        started_at=started_at,
        closed_at=closed_at,
        initial_mass=initial_mass,
        current_mass=current_mass,
        latitude=latitude,
        longitude=longitude,
        created_by=str(created_by),
        contributor_ids=tuple(sorted({str(c) for c in contributor_ids})),
        contribution_ids=tuple(sorted(str(c) for c in contribution_ids)),
        photo_refs=tuple(sorted(str(p) for p in photo_refs)),
    )


def _serialize(payload: dict) -> str:
    return json.dumps(
        payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False,
    )


def _sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def canonical_payload(snapshot: BatchSnapshot) -> str:
    return _serialize(snapshot.to_payload())


def compute_fingerprint(snapshot: BatchSnapshot) -> str:
    """SHA-256 lowercase hex digest of the canonical payload."""
    return _sha256_hex(canonical_payload(snapshot))


def verify_fingerprint(snapshot: BatchSnapshot, stored_digest: str | None) -> bool:
    if not stored_digest:
        return False
    return compute_fingerprint(snapshot) == stored_digest


def compute_chained_fingerprint(
    snapshot: BatchSnapshot, previous_hash: str | None, chain_index: int,
) -> str:
    """Digest of the snapshot linked to its predecessor in the facility chain."""
    payload = snapshot.to_payload()
    payload["previous_hash"] = previous_hash or GENESIS_HASH
    payload["chain_index"] = chain_index
    return _sha256_hex(_serialize(payload))


def validate_chain(links: list[ChainLink]) -> ChainValidationResult:
    """Recompute every link in chain order; stop at the first broken one."""
    ordered = sorted(links, key=lambda link: link.chain_index)
    previous_hash: str | None = None
    validated = 0

    for link in ordered:
        expected = compute_chained_fingerprint(
            link.snapshot, previous_hash, link.chain_index,
        )
        linked_ok = (link.previous_hash or None) == previous_hash
        if expected != link.chain_hash or not linked_ok:
            return ChainValidationResult(
                is_valid=False,
                total=len(ordered),
                validated_length=validated,
                broken_at_index=link.chain_index,
                broken_batch_code=link.batch_code,
            )
        previous_hash = link.chain_hash
        validated += 1

    return ChainValidationResult(
        is_valid=True, total=len(ordered), validated_length=validated,
    )
