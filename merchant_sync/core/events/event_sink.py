"""
Event sink interfaces.

Sinks consume domain events emitted by the cache, orchestrator and
bulk coordinator. Sinks holding resources (files, metric pushers) also
implement close().
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


class EventSink(Protocol):
    def on_event(self, event: Any) -> None:
        """Consume a domain event."""


@runtime_checkable
class ClosableEventSink(EventSink, Protocol):
    def close(self) -> None:
        """Flush and release the sink's resources."""
