"""Mutation orchestrator implementing optimistic apply, rollback and reconcile."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Callable, Literal, Mapping, TypeVar

from merchant_sync.core.domain.errors import (
    ConflictRejection,
    MappingError,
    MutationError,
    MutationResult,
    TransportFailure,
)
from merchant_sync.core.domain.signature import new_provisional_id
from merchant_sync.core.domain.types import Record
from merchant_sync.core.events.events import (
    MutationCommittedEvent,
    MutationRolledBackEvent,
    OptimisticPatchAppliedEvent,
)
from merchant_sync.core.events.sinks.null_event_bus import NullEventBus
from merchant_sync.core.mutation.patches import (
    insert_record,
    remove_ids,
    replace_record,
    track_total,
    update_ids,
)

if TYPE_CHECKING:
    from merchant_sync.core.cache.cache_store import (
        CacheSnapshot,
        CacheStore,
        PagePatchFn,
        PatchFn,
        RecordData,
    )
    from merchant_sync.core.domain.signature import QuerySignature
    from merchant_sync.core.events.event_bus import EventBus
    from merchant_sync.core.selection.selection_set import SelectionSet

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Reconcile = Callable[["RecordData", Any], "RecordData | None"]


def replace_by_id(data: RecordData, response: Any) -> RecordData | None:
    """Default reconciliation: swap in the confirmed record with the same id.

    Returns None (invalidate) when the entry does not hold that id.
    """
    if not isinstance(response, Record):
        return None
    if not any(r.id == response.id for r in data):
        return None
    return replace_record(response.id, response)(data)


class MutationOrchestrator:
    """Runs one mutation against the remote service while coordinating the cache.

    Protocol per ``execute``:
    1. cancel in-flight reads and hold the signature
    2. snapshot the current data and page info
    3. apply the optimistic patch (1-3 atomic under the signature lock)
    4. invoke the remote call (lock released)
    5. success: write authoritative data, or invalidate for a refetch
    6. failure: write the snapshot back verbatim
    7. settle: release the hold in both outcomes

    The orchestrator never lets an optimistic value outlive a failed call.
    """

    def __init__(self, cache: CacheStore, event_bus: EventBus | None = None) -> None:
        self._cache = cache
        self._event_bus = event_bus if event_bus is not None else NullEventBus()
        self._pending: defaultdict[QuerySignature, int] = defaultdict(int)

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    # ------------------------------------------------------------------
    # Pending state (drives disabled UI affordances)
    # ------------------------------------------------------------------

    def is_pending(self, signature: QuerySignature) -> bool:
        return self._pending.get(signature, 0) > 0

    def pending_count(self, signature: QuerySignature) -> int:
        return self._pending.get(signature, 0)

    # ------------------------------------------------------------------
    # Core protocol
    # ------------------------------------------------------------------

    # pylint: disable=too-many-arguments
    def execute(
        self,
        signature: QuerySignature,
        optimistic_patch: PatchFn | None,
        remote_call: Callable[[], T],
        *,
        reconcile: Reconcile | None = None,
        page_patch: PagePatchFn | None = None,
        label: str = "mutation",
    ) -> MutationResult[T]:
        """Execute remote_call with an optimistic patch on signature.

        page_patch adjusts the entry's page_info alongside the data; the
        snapshot covers both.
        """

        with self._cache.lock(signature):
            cancelled = self._cache.cancel_reads(signature)
            self._cache.hold(signature)
            self._pending[signature] += 1
            try:
                snapshot = self._cache.snapshot(signature)
                if optimistic_patch is not None:
                    self._cache.patch(signature, optimistic_patch, page_patch)
            except Exception:
                self._settle(signature)
                raise

        self._event_bus.emit(
            OptimisticPatchAppliedEvent(
                signature=signature.key,
                label=label,
                version=self._cache.version(signature),
                cancelled_reads=cancelled,
            )
        )

        try:
            try:
                response = remote_call()
            except MutationError as exc:
                return self._fail(signature, snapshot, exc, label)
            except (ConnectionError, TimeoutError) as exc:
                failure = TransportFailure(str(exc) or type(exc).__name__)
                failure.__cause__ = exc
                return self._fail(signature, snapshot, failure, label)
            except Exception:
                self._rollback(signature, snapshot)
                LOGGER.exception(
                    "Unexpected error in remote call; rolled back",
                    extra={"signature": signature.key, "label": label},
                )
                raise

            self._commit(signature, response, reconcile or replace_by_id, label)
            return MutationResult(value=response)
        finally:
            self._settle(signature)

    # ------------------------------------------------------------------
    # Convenience operations
    # ------------------------------------------------------------------

    def create(
        self,
        signature: QuerySignature,
        draft: Record,
        remote_call: Callable[[], Record],
        *,
        position: Literal["start", "end"] = "start",
        label: str = "create",
    ) -> MutationResult[Record]:
        """Insert a provisional copy of draft, then swap in the confirmed record.

        On failure the provisional record disappears with the rollback.
        """
        provisional = draft.model_copy(
            update={"id": new_provisional_id(), "is_provisional": True}
        )

        def _reconcile(data: RecordData, response: Any) -> RecordData | None:
            if not isinstance(response, Record):
                return None
            return replace_record(provisional.id, response)(data)

        return self.execute(
            signature,
            insert_record(provisional, position),
            remote_call,
            reconcile=_reconcile,
            page_patch=track_total,
            label=label,
        )

    def update(
        self,
        signature: QuerySignature,
        record_id: str,
        changes: Mapping[str, Any],
        remote_call: Callable[[], T],
        *,
        label: str = "update",
    ) -> MutationResult[T]:
        return self.execute(
            signature,
            update_ids([record_id], changes),
            remote_call,
            label=label,
        )

    def delete(
        self,
        signature: QuerySignature,
        record_id: str,
        remote_call: Callable[[], T],
        *,
        selection: SelectionSet | None = None,
        label: str = "delete",
    ) -> MutationResult[T]:
        """Remove record_id optimistically; pagination.total follows.

        A successful delete also drops the id from selection.
        """
        result = self.execute(
            signature,
            remove_ids([record_id]),
            remote_call,
            page_patch=track_total,
            label=label,
        )
        if result.ok and selection is not None:
            selection.discard(record_id)
        return result

    # ------------------------------------------------------------------
    # Internal steps
    # ------------------------------------------------------------------

    def _commit(
        self,
        signature: QuerySignature,
        response: Any,
        reconcile: Reconcile,
        label: str,
    ) -> None:
        with self._cache.lock(signature):
            entry = self._cache.read(signature)
            reconciled = None if entry is None else reconcile(entry.data, response)
            if reconciled is not None:
                self._cache.write(signature, reconciled)
                mode = "write"
            else:
                self._cache.invalidate(signature)
                mode = "invalidate"

        self._event_bus.emit(
            MutationCommittedEvent(signature=signature.key, label=label, reconciliation=mode)
        )

    def _rollback(self, signature: QuerySignature, snapshot: CacheSnapshot | None) -> None:
        with self._cache.lock(signature):
            if snapshot is None:
                # Nothing was cached when the mutation started; let the next
                # observer refetch instead of resurrecting an empty entry.
                self._cache.invalidate(signature)
                return
            self._cache.restore(signature, snapshot)

    def _fail(
        self,
        signature: QuerySignature,
        snapshot: CacheSnapshot | None,
        error: MutationError,
        label: str,
    ) -> MutationResult[Any]:
        self._rollback(signature, snapshot)

        if isinstance(error, (ConflictRejection, MappingError)):
            # The server's state is not what we believed; refetch it.
            self._cache.invalidate(signature)

        self._event_bus.emit(
            MutationRolledBackEvent(
                signature=signature.key,
                label=label,
                error_kind=error.kind,
                message=str(error),
            )
        )
        LOGGER.info(
            "Mutation rolled back",
            extra={"signature": signature.key, "label": label, "error_kind": error.kind},
        )
        return MutationResult(error=error, rolled_back=snapshot is not None)

    def _settle(self, signature: QuerySignature) -> None:
        with self._cache.lock(signature):
            self._cache.release_hold(signature)
            count = self._pending.get(signature, 0) - 1
            if count > 0:
                self._pending[signature] = count
            else:
                self._pending.pop(signature, None)
