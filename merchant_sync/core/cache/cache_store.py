"""Keyed snapshot storage for query results.

This module holds one ``CacheEntry`` per ``QuerySignature``. All writes to a
signature are serialized through a per-signature re-entrant lock and bump a
monotonically increasing version counter. Reads in flight are tracked with
tickets: a completed read is discarded when its ticket was cancelled, when
the version moved since the read began, or while a mutation holds the
signature.
"""

# pylint: disable=too-many-instance-attributes
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Iterator

from merchant_sync.core.domain.errors import CacheInvariantError
from merchant_sync.core.events.events import StaleReadDiscardedEvent
from merchant_sync.core.events.sinks.null_event_bus import NullEventBus

if TYPE_CHECKING:
    from merchant_sync.core.domain.signature import QuerySignature
    from merchant_sync.core.domain.types import PageInfo, Record
    from merchant_sync.core.events.event_bus import EventBus

LOGGER = logging.getLogger(__name__)

RecordData = tuple["Record", ...]
PatchFn = Callable[[RecordData], Iterable["Record"]]
PagePatchFn = Callable[["PageInfo", RecordData, RecordData], "PageInfo"]


@dataclass(slots=True)
class CacheEntry:
    """Cached collection for one signature.

    - data: ordered records, unique by id
    - page_info: pagination returned with the last authoritative read
    - last_known_good: last data written from an authoritative source
    - stale: set by invalidate(); the next observer should refetch
    - version: value of the signature's version counter at the last change
    """

    data: RecordData
    page_info: PageInfo | None = None
    last_known_good: RecordData | None = None
    stale: bool = False
    version: int = 0

    def ids(self) -> tuple[str, ...]:
        return tuple(r.id for r in self.data)

    def find(self, record_id: str) -> Record | None:
        for record in self.data:
            if record.id == record_id:
                return record
        return None


@dataclass(frozen=True, slots=True)
class CacheSnapshot:
    """Data and page info of an entry, captured before an optimistic patch."""

    data: RecordData
    page_info: PageInfo | None = None


@dataclass(slots=True, eq=False)
class ReadTicket:
    """Token for one in-flight read of a signature."""

    signature: QuerySignature
    version: int
    cancelled: bool = False


@dataclass(slots=True)
class _SignatureState:
    lock: threading.RLock = field(default_factory=threading.RLock)
    version: int = 0
    holds: int = 0
    tickets: list[ReadTicket] = field(default_factory=list)


def ensure_unique_ids(data: Iterable[Record]) -> RecordData:
    """Return data as a tuple, raising if two records share an id."""
    records = tuple(data)
    seen: set[str] = set()
    for record in records:
        if record.id in seen:
            raise CacheInvariantError(f"duplicate record id in cache entry: {record.id}")
        seen.add(record.id)
    return records


class CacheStore:
    """Per-signature cache with serialized writes and stale-read detection."""

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._event_bus = event_bus if event_bus is not None else NullEventBus()
        self._entries: dict[QuerySignature, CacheEntry] = {}
        self._states: dict[QuerySignature, _SignatureState] = {}
        self._observers: defaultdict[QuerySignature, int] = defaultdict(int)
        self._registry_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _state(self, signature: QuerySignature) -> _SignatureState:
        with self._registry_lock:
            state = self._states.get(signature)
            if state is None:
                state = _SignatureState()
                self._states[signature] = state
            return state

    @contextmanager
    def lock(self, signature: QuerySignature) -> Iterator[None]:
        """Hold the per-signature lock (re-entrant) for a compound operation."""
        state = self._state(signature)
        with state.lock:
            yield

    def version(self, signature: QuerySignature) -> int:
        return self._state(signature).version

    def _bump(self, signature: QuerySignature) -> int:
        state = self._state(signature)
        state.version += 1
        return state.version

    # ------------------------------------------------------------------
    # Core contract
    # ------------------------------------------------------------------

    def read(self, signature: QuerySignature) -> CacheEntry | None:
        return self._entries.get(signature)

    def write(
        self,
        signature: QuerySignature,
        data: Iterable[Record],
        page_info: PageInfo | None = None,
    ) -> CacheEntry:
        """Replace the entry for signature with authoritative data."""
        with self.lock(signature):
            records = ensure_unique_ids(data)
            previous = self._entries.get(signature)
            if page_info is None and previous is not None:
                page_info = previous.page_info
            entry = CacheEntry(
                data=records,
                page_info=page_info,
                last_known_good=records,
                stale=False,
                version=self._bump(signature),
            )
            self._entries[signature] = entry
            return entry

    def snapshot(self, signature: QuerySignature) -> CacheSnapshot | None:
        """Capture data and page_info, or None when no entry exists."""
        with self.lock(signature):
            entry = self._entries.get(signature)
            if entry is None:
                return None
            return CacheSnapshot(data=entry.data, page_info=entry.page_info)

    def restore(self, signature: QuerySignature, snapshot: CacheSnapshot | None) -> None:
        """Put a snapshot back verbatim, keeping last_known_good.

        A ``None`` snapshot means the entry did not exist when it was taken.
        """
        with self.lock(signature):
            version = self._bump(signature)
            if snapshot is None:
                self._entries.pop(signature, None)
                return
            entry = self._entries.get(signature)
            if entry is None:
                self._entries[signature] = CacheEntry(
                    data=snapshot.data,
                    page_info=snapshot.page_info,
                    version=version,
                )
                return
            entry.data = snapshot.data
            entry.page_info = snapshot.page_info
            entry.version = version

    def patch(
        self,
        signature: QuerySignature,
        fn: PatchFn,
        page_fn: PagePatchFn | None = None,
    ) -> RecordData | None:
        """Apply a pure transform to the entry's data.

        page_fn, when given, derives the new page_info from
        (page_info, previous data, patched data); it is skipped for entries
        without page_info.

        Returns the previous data, or None (and does nothing) when no entry
        exists for the signature.
        """
        with self.lock(signature):
            entry = self._entries.get(signature)
            if entry is None:
                return None
            previous = entry.data
            patched = ensure_unique_ids(fn(previous))
            if page_fn is not None and entry.page_info is not None:
                entry.page_info = page_fn(entry.page_info, previous, patched)
            entry.data = patched
            entry.version = self._bump(signature)
            return previous

    def invalidate(self, signature: QuerySignature) -> None:
        """Mark the entry stale without dropping its data."""
        with self.lock(signature):
            entry = self._entries.get(signature)
            if entry is not None:
                entry.stale = True

    def invalidate_resource(self, resource: str) -> list[QuerySignature]:
        """Mark every entry of a resource stale; returns the affected signatures."""
        affected = [sig for sig in list(self._entries) if sig.resource == resource]
        for sig in affected:
            self.invalidate(sig)
        return affected

    # ------------------------------------------------------------------
    # In-flight reads and mutation holds
    # ------------------------------------------------------------------

    def begin_read(self, signature: QuerySignature) -> ReadTicket:
        with self.lock(signature):
            state = self._state(signature)
            ticket = ReadTicket(signature=signature, version=state.version)
            state.tickets.append(ticket)
            return ticket

    def cancel_reads(self, signature: QuerySignature) -> int:
        """Cancel every in-flight read of signature; returns how many."""
        with self.lock(signature):
            state = self._state(signature)
            cancelled = 0
            for ticket in state.tickets:
                if not ticket.cancelled:
                    ticket.cancelled = True
                    cancelled += 1
            state.tickets.clear()
            return cancelled

    def abandon_read(self, ticket: ReadTicket) -> None:
        """Forget a read that failed before producing data."""
        with self.lock(ticket.signature):
            state = self._state(ticket.signature)
            if ticket in state.tickets:
                state.tickets.remove(ticket)

    def inflight_reads(self, signature: QuerySignature) -> int:
        return len(self._state(signature).tickets)

    def complete_read(
        self,
        ticket: ReadTicket,
        data: Iterable[Record],
        page_info: PageInfo | None = None,
    ) -> bool:
        """Write the result of a read unless it has gone stale.

        Returns True when the data was written.
        """
        signature = ticket.signature
        with self.lock(signature):
            state = self._state(signature)
            if ticket in state.tickets:
                state.tickets.remove(ticket)

            if ticket.cancelled or state.holds > 0 or ticket.version != state.version:
                self._event_bus.emit(
                    StaleReadDiscardedEvent(
                        signature=signature.key,
                        ticket_version=ticket.version,
                        current_version=state.version,
                    )
                )
                LOGGER.debug(
                    "Discarded stale read",
                    extra={"signature": signature.key, "ticket_version": ticket.version},
                )
                return False

            self.write(signature, data, page_info)
            return True

    def hold(self, signature: QuerySignature) -> None:
        with self.lock(signature):
            self._state(signature).holds += 1

    def release_hold(self, signature: QuerySignature) -> None:
        with self.lock(signature):
            state = self._state(signature)
            if state.holds > 0:
                state.holds -= 1

    def is_held(self, signature: QuerySignature) -> bool:
        return self._state(signature).holds > 0

    # ------------------------------------------------------------------
    # Observers and lookups
    # ------------------------------------------------------------------

    def observe(self, signature: QuerySignature) -> int:
        """Register one observing view; returns the observer count."""
        with self._registry_lock:
            self._observers[signature] += 1
            return self._observers[signature]

    def release(self, signature: QuerySignature) -> int:
        """Unregister one observer; evicts the entry at zero observers."""
        with self._registry_lock:
            count = max(0, self._observers[signature] - 1)
            if count:
                self._observers[signature] = count
                return count
            self._observers.pop(signature, None)

        with self.lock(signature):
            # A pending mutation still needs the entry for its rollback.
            if not self.is_held(signature):
                self._entries.pop(signature, None)
        return 0

    def observer_count(self, signature: QuerySignature) -> int:
        return self._observers.get(signature, 0)

    def signatures(self, resource: str | None = None) -> list[QuerySignature]:
        return [sig for sig in self._entries if resource is None or sig.resource == resource]

    def stale_signatures(self) -> list[QuerySignature]:
        return [sig for sig, entry in self._entries.items() if entry.stale]

    def locate(
        self,
        resource: str,
        record_id: str,
        prefer: QuerySignature | None = None,
    ) -> tuple[QuerySignature, Record] | None:
        """Return (signature, record) of the first entry holding record_id.

        prefer is searched first when given.
        """
        candidates = list(self._entries.items())
        if prefer is not None:
            candidates.sort(key=lambda item: item[0] != prefer)
        for sig, entry in candidates:
            if sig.resource != resource:
                continue
            record = entry.find(record_id)
            if record is not None:
                return sig, record
        return None

    def find_record(self, resource: str, record_id: str) -> Record | None:
        """Find a record of resource in any cached entry.

        Selections are independent of pagination, so a selected id may live
        in an entry other than the one currently displayed.
        """
        found = self.locate(resource, record_id)
        return None if found is None else found[1]
