"""
Simple synchronous event bus.

Events are delivered to every sink in registration order, on the caller's
thread, before ``emit`` returns.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from merchant_sync.core.events.event_sink import ClosableEventSink, EventSink

LOGGER = logging.getLogger(__name__)


class EventBus:
    """Dispatches cache and mutation events to registered sinks."""

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else []
        self._closed = False

    @property
    def sinks(self) -> tuple[EventSink, ...]:
        return tuple(self._sinks)

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, sink: EventSink) -> None:
        """Register a new sink."""
        self._sinks.append(sink)

    def emit(self, event: Any) -> None:
        """Emit an event to all sinks.

        Events emitted after close() are dropped: recorder sinks have
        released their files by then.
        """
        if self._closed:
            LOGGER.debug(
                "Event dropped after close",
                extra={"event_type": type(event).__name__},
            )
            return
        for sink in self._sinks:
            sink.on_event(event)

    def close(self) -> None:
        """
        Finalize all sinks that expose a close() method.
        """
        if self._closed:
            return

        for sink in self._sinks:
            if isinstance(sink, ClosableEventSink):
                sink.close()

        self._closed = True
