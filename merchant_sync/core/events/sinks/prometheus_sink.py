from __future__ import annotations

import json
import logging
import os
from typing import Any

from prometheus_client import CollectorRegistry, Counter, push_to_gateway

from merchant_sync.core.events.events import (
    BulkDecisionEvent,
    MutationCommittedEvent,
    MutationRolledBackEvent,
    StaleReadDiscardedEvent,
    TransitionRejectedEvent,
)

LOGGER = logging.getLogger(__name__)


class PrometheusEventSink:
    """Counts domain events into a Prometheus registry.

    Optional environment for batch-style pushes:
    - PROMETHEUS_PUSHGATEWAY_URL: URL to the Pushgateway.
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object used as grouping key.

    Pushing is best-effort: callers should treat it as a side-effect and
    never fail a mutation because of metrics delivery.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry if registry is not None else CollectorRegistry()
        self._pushgateway_url = os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._grouping_key = self._load_grouping_key()

        self._mutations = Counter(
            "merchant_sync_mutations",
            "Settled optimistic mutations by outcome.",
            labelnames=["outcome"],
            registry=self._registry,
        )
        self._rollbacks = Counter(
            "merchant_sync_rollbacks",
            "Optimistic mutations rolled back, by error kind.",
            labelnames=["error_kind"],
            registry=self._registry,
        )
        self._stale_reads = Counter(
            "merchant_sync_stale_reads_discarded",
            "Completed reads discarded because a newer patch was applied.",
            registry=self._registry,
        )
        self._bulk_rejections = Counter(
            "merchant_sync_bulk_rejections",
            "Records rejected client-side by bulk actions, by reason.",
            labelnames=["reason"],
            registry=self._registry,
        )
        self._transition_rejections = Counter(
            "merchant_sync_transition_rejections",
            "Single-order status changes refused by the status guard.",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def is_push_enabled(self) -> bool:
        return self._pushgateway_url is not None

    @staticmethod
    def _load_grouping_key() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning(
                "Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring"
            )
            return {}

        if not isinstance(data, dict):
            return {}

        grouping: dict[str, str] = {}
        for key, value in data.items():
            if isinstance(key, str) and isinstance(value, str):
                grouping[key] = value
        return grouping

    def on_event(self, event: Any) -> None:
        if isinstance(event, MutationCommittedEvent):
            self._mutations.labels(outcome="committed").inc()
        elif isinstance(event, MutationRolledBackEvent):
            self._mutations.labels(outcome="rolled_back").inc()
            self._rollbacks.labels(error_kind=event.error_kind).inc()
        elif isinstance(event, StaleReadDiscardedEvent):
            self._stale_reads.inc()
        elif isinstance(event, TransitionRejectedEvent):
            self._transition_rejections.inc()
        elif isinstance(event, BulkDecisionEvent):
            for reason, count in event.reject_reasons.items():
                self._bulk_rejections.labels(reason=reason).inc(count)

    def push_all(self, *, job: str) -> None:
        if not self._pushgateway_url:
            return

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=job,
            registry=self._registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )

    def close(self) -> None:
        if not self._pushgateway_url:
            return
        try:
            self.push_all(job="merchant_sync")
        except OSError:
            LOGGER.exception("Prometheus push failed")
