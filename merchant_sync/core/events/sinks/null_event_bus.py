from __future__ import annotations

from typing import Any

from merchant_sync.core.events.event_bus import EventBus


class NullEventBus(EventBus):
    """EventBus without sinks.

    Default bus for a CacheStore or MutationOrchestrator built without one;
    events are discarded before any sink is consulted.
    """

    def __init__(self) -> None:
        super().__init__(sinks=())

    def register(self, sink: Any) -> None:
        raise TypeError("NullEventBus does not accept sinks; use EventBus instead")

    def emit(self, event: Any) -> None:
        return
