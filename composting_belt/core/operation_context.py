"""Operation Context — per-request logging and counter state, owned by the caller.

Invariants:
    - One context per request, job run, or test; never shared module-wide
    - clock() always returns an aware UTC datetime
    - Every log line written through log() carries the request_id

Design Decisions:
    - Dataclass with an injectable clock: tests pin time without patching datetime
    - counters is a plain Counter: callers read it after the operation for summaries
"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

logger = logging.getLogger("composting_belt.operations")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OperationContext:
    """Explicit context passed to every service operation."""

    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    clock: Callable[[], datetime] = utc_now
    counters: Counter = field(default_factory=Counter)

    def now(self) -> datetime:
        return self.clock()

    def count(self, key: str, amount: int = 1) -> None:
        self.counters[key] += amount

    def log(self, level: int, message: str, **extra: object) -> None:
        """Log through the shared logger with request_id attached."""
        logger.log(level, message, extra={"request_id": self.request_id, **extra})
