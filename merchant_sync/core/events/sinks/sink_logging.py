"""
Logging event sink.
"""
from __future__ import annotations

import logging
from typing import Any

from merchant_sync.core.events.events import (
    MutationRolledBackEvent,
    StaleReadDiscardedEvent,
)


class LoggingEventSink:
    """Logs domain events using the standard logging module.

    Rollbacks are logged at WARNING, discarded reads at DEBUG, everything
    else at INFO.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def on_event(self, event: Any) -> None:
        if isinstance(event, MutationRolledBackEvent):
            level = logging.WARNING
        elif isinstance(event, StaleReadDiscardedEvent):
            level = logging.DEBUG
        else:
            level = logging.INFO
        self._logger.log(
            level,
            "domain_event",
            extra={"event": event, "event_type": type(event).__name__},
        )
