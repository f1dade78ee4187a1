"""Bulk operation coordinator: fan one user action out over a selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from merchant_sync.core.config.engine_config import BulkConfig
from merchant_sync.core.domain.errors import (
    MutationError,
    PartialBulkFailure,
    TransportFailure,
    ValidationRejection,
)
from merchant_sync.core.domain.order_status import (
    DEFAULT_TRANSITION_POLICY,
    OrderStatus,
    TransitionPolicy,
)
from merchant_sync.core.domain.reject_reasons import RejectReason
from merchant_sync.core.domain.types import BatchCount
from merchant_sync.core.events.events import BulkDecisionEvent
from merchant_sync.core.mutation.patches import remove_ids, set_status, track_total
from merchant_sync.core.mutation.status_change import check_status_change

if TYPE_CHECKING:
    from merchant_sync.core.domain.signature import QuerySignature
    from merchant_sync.core.domain.types import ExportPayload
    from merchant_sync.core.mutation.orchestrator import MutationOrchestrator
    from merchant_sync.core.ports.remote_service import RemoteGateway
    from merchant_sync.core.selection.selection_set import SelectionSet

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DeleteAction:
    name: str = "delete"


@dataclass(frozen=True, slots=True)
class StatusChangeAction:
    to_status: OrderStatus | str
    name: str = "status_change"


@dataclass(frozen=True, slots=True)
class ExportAction:
    name: str = "export"


BulkAction = Union[DeleteAction, StatusChangeAction, ExportAction]


# ---------------------------------------------------------------------------
# Result model
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class BulkResult:
    """Outcome of one bulk action.

    Two independent failure channels are reported separately:
    - rejected / partial_failure: ids refused locally before dispatch
    - failure: the remote call (or a whole-batch validation) failed

    - eligible_ids: ids that were dispatched
    - succeeded_count: ids the server reports as changed
    - server_skipped_count: eligible ids the server itself declined
    - export: CSV payload for export actions
    """

    action: str
    eligible_ids: tuple[str, ...] = ()
    rejected: dict[str, str] = field(default_factory=dict)
    succeeded_count: int = 0
    server_skipped_count: int = 0
    failure: MutationError | None = None
    rolled_back: bool = False
    export: ExportPayload | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def rejected_ids(self) -> tuple[str, ...]:
        return tuple(self.rejected)

    @property
    def partial_failure(self) -> PartialBulkFailure | None:
        if not self.rejected:
            return None
        return PartialBulkFailure(rejected=dict(self.rejected))

    def messages(self) -> list[str]:
        """User-facing messages, one per failure channel, never conflated."""
        out: list[str] = []
        if self.failure is None:
            noun = "record" if self.succeeded_count == 1 else "records"
            out.append(f"{self.succeeded_count} {noun} updated.")
        else:
            out.append(self.failure.user_message())
        if self.server_skipped_count:
            out.append(
                f"{self.server_skipped_count} could not be changed because their state changed elsewhere."
            )
        partial = self.partial_failure
        if partial is not None:
            out.append(partial.user_message())
        return out


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class BulkOperationCoordinator:
    """Partition a selection, then dispatch one orchestrated mutation.

    The whole eligible batch shares one snapshot: a remote failure rolls back
    every record of the batch, and the selection stays intact for a retry.
    On success the dispatched ids are removed from the selection.
    """

    def __init__(
        self,
        orchestrator: MutationOrchestrator,
        gateway: RemoteGateway,
        *,
        policy: TransitionPolicy = DEFAULT_TRANSITION_POLICY,
        bulk_cfg: BulkConfig | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._gateway = gateway
        self._policy = policy
        self._bulk_cfg = bulk_cfg if bulk_cfg is not None else BulkConfig()

    def run(
        self,
        action: BulkAction,
        selection: SelectionSet,
        signature: QuerySignature,
    ) -> BulkResult:
        ids = selection.ids()

        refusal = self._refuse_batch(ids)
        if refusal is not None:
            result = BulkResult(action=action.name, failure=refusal)
            self._emit(action, signature, selected=len(ids), result=result)
            return result

        if isinstance(action, ExportAction):
            result = self._run_export(signature, ids, selection)
            self._emit(action, signature, selected=len(ids), result=result)
            return result

        eligible, rejected = self.partition(action, ids, signature.resource)
        if not eligible:
            result = BulkResult(
                action=action.name,
                rejected=rejected,
                failure=ValidationRejection(RejectReason.NOTHING_ELIGIBLE, ids=ids),
            )
            self._emit(action, signature, selected=len(ids), result=result)
            return result

        if isinstance(action, StatusChangeAction):
            patch = set_status(eligible, action.to_status)
            page_patch = None
        else:
            patch = remove_ids(eligible)
            page_patch = track_total

        outcome = self._orchestrator.execute(
            signature,
            patch,
            lambda: self._dispatch(action, signature.resource, eligible),
            page_patch=page_patch,
            label=f"bulk_{action.name}",
        )

        result = BulkResult(
            action=action.name,
            eligible_ids=eligible,
            rejected=rejected,
            failure=outcome.error,
            rolled_back=outcome.rolled_back,
        )

        if outcome.ok:
            count = outcome.value.count if isinstance(outcome.value, BatchCount) else len(eligible)
            result.succeeded_count = min(count, len(eligible))
            result.server_skipped_count = max(0, len(eligible) - count)
            selection.discard_many(eligible)
            # Batch responses carry only a count; every view of the resource
            # must refetch.
            self._orchestrator.cache.invalidate_resource(signature.resource)

        self._emit(action, signature, selected=len(ids), result=result)
        return result

    # ------------------------------------------------------------------
    # Partitioning
    # ------------------------------------------------------------------

    def partition(
        self,
        action: BulkAction,
        ids: tuple[str, ...],
        resource: str,
    ) -> tuple[tuple[str, ...], dict[str, str]]:
        """Split ids into (eligible, rejected id -> reason)."""
        cache = self._orchestrator.cache
        eligible: list[str] = []
        rejected: dict[str, str] = {}

        for record_id in ids:
            record = cache.find_record(resource, record_id)

            if isinstance(action, StatusChangeAction):
                reason = check_status_change(record, action.to_status, self._policy)
            elif record is None:
                reason = RejectReason.RECORD_NOT_FOUND
            elif record.is_provisional:
                reason = RejectReason.PROVISIONAL_RECORD
            else:
                reason = None

            if reason is None:
                eligible.append(record_id)
            else:
                rejected[record_id] = reason

        return tuple(eligible), rejected

    def _refuse_batch(self, ids: tuple[str, ...]) -> ValidationRejection | None:
        if not ids:
            return ValidationRejection(RejectReason.EMPTY_SELECTION)
        if len(ids) > self._bulk_cfg.max_batch_size:
            return ValidationRejection(
                RejectReason.BATCH_TOO_LARGE,
                ids=ids,
                message=f"{len(ids)} selected, at most {self._bulk_cfg.max_batch_size} allowed",
            )
        return None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, action: BulkAction, resource: str, eligible: tuple[str, ...]) -> BatchCount:
        if self._bulk_cfg.dispatch_mode == "sequential":
            return self._dispatch_sequential(action, resource, eligible)

        if isinstance(action, StatusChangeAction):
            return self._gateway.bulk_update_status(eligible, action.to_status)
        return self._gateway.bulk_delete(resource, eligible)

    def _dispatch_sequential(
        self,
        action: BulkAction,
        resource: str,
        eligible: tuple[str, ...],
    ) -> BatchCount:
        # Any failure aborts the sequence; the orchestrator then rolls back
        # the whole batch from its single snapshot.
        for record_id in eligible:
            if isinstance(action, StatusChangeAction):
                self._gateway.update_status(record_id, action.to_status)
            else:
                self._gateway.delete(resource, record_id)
        return BatchCount(count=len(eligible))

    def _run_export(
        self,
        signature: QuerySignature,
        ids: tuple[str, ...],
        selection: SelectionSet,
    ) -> BulkResult:
        try:
            payload = self._gateway.export(signature.resource, ids)
        except MutationError as exc:
            return BulkResult(action="export", eligible_ids=ids, failure=exc)
        except (ConnectionError, TimeoutError) as exc:
            failure = TransportFailure(str(exc) or type(exc).__name__)
            failure.__cause__ = exc
            return BulkResult(action="export", eligible_ids=ids, failure=failure)

        if self._bulk_cfg.clear_selection_on_export:
            selection.discard_many(ids)
        return BulkResult(
            action="export",
            eligible_ids=ids,
            succeeded_count=payload.count,
            export=payload,
        )

    def _emit(
        self,
        action: BulkAction,
        signature: QuerySignature,
        *,
        selected: int,
        result: BulkResult,
    ) -> None:
        reasons: dict[str, int] = {}
        for reason in result.rejected.values():
            reasons[reason] = reasons.get(reason, 0) + 1

        self._orchestrator.event_bus.emit(
            BulkDecisionEvent(
                action=action.name,
                signature=signature.key,
                selected=selected,
                eligible=len(result.eligible_ids),
                rejected=len(result.rejected),
                succeeded=result.succeeded_count,
                failure_kind=None if result.failure is None else result.failure.kind,
                reject_reasons=reasons,
            )
        )
        LOGGER.info(
            "Bulk action finished",
            extra={
                "action": action.name,
                "signature": signature.key,
                "eligible": len(result.eligible_ids),
                "rejected": len(result.rejected),
                "failure_kind": None if result.failure is None else result.failure.kind,
            },
        )
