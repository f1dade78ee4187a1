"""
Domain event models.

These events represent immutable facts observed while mutating the cache.
They are consumed by loggers, recorders, and monitoring sinks.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field


def _now_ns() -> int:
    return time.time_ns()


@dataclass(slots=True)
class OptimisticPatchAppliedEvent:
    signature: str
    label: str
    version: int
    cancelled_reads: int
    ts_ns: int = field(default_factory=_now_ns)


@dataclass(slots=True)
class MutationCommittedEvent:
    signature: str
    label: str

    # "write" when authoritative data replaced the optimistic value,
    # "invalidate" when a background refetch was requested instead.
    reconciliation: str
    ts_ns: int = field(default_factory=_now_ns)


@dataclass(slots=True)
class MutationRolledBackEvent:
    signature: str
    label: str

    error_kind: str
    message: str
    ts_ns: int = field(default_factory=_now_ns)


@dataclass(slots=True)
class StaleReadDiscardedEvent:
    signature: str

    ticket_version: int
    current_version: int
    ts_ns: int = field(default_factory=_now_ns)


@dataclass(slots=True)
class TransitionRejectedEvent:
    record_id: str
    from_status: str | None
    to_status: str

    reason: str
    ts_ns: int = field(default_factory=_now_ns)


@dataclass(slots=True)
class BulkDecisionEvent:
    action: str
    signature: str

    selected: int
    eligible: int
    rejected: int
    succeeded: int

    failure_kind: str | None
    reject_reasons: dict[str, int]
    ts_ns: int = field(default_factory=_now_ns)
