"""Single-order status change: guard first, then orchestrate."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from merchant_sync.core.domain.errors import MutationResult, ValidationRejection
from merchant_sync.core.domain.order_status import (
    DEFAULT_TRANSITION_POLICY,
    OrderStatus,
    TransitionPolicy,
    coerce_status,
    direct_completion_for,
    is_transition_legal,
)
from merchant_sync.core.domain.reject_reasons import RejectReason
from merchant_sync.core.domain.types import OrderRecord
from merchant_sync.core.events.events import TransitionRejectedEvent
from merchant_sync.core.mutation.patches import set_status

if TYPE_CHECKING:
    from merchant_sync.core.domain.signature import QuerySignature
    from merchant_sync.core.domain.types import Record
    from merchant_sync.core.mutation.orchestrator import MutationOrchestrator
    from merchant_sync.core.ports.remote_service import RemoteGateway

LOGGER = logging.getLogger(__name__)


def check_status_change(
    order: Record | None,
    new_status: OrderStatus | str,
    policy: TransitionPolicy = DEFAULT_TRANSITION_POLICY,
) -> str | None:
    """Return a RejectReason when the change must not be dispatched, else None.

    Unknown target statuses are illegal transitions.
    """
    if order is None:
        return RejectReason.RECORD_NOT_FOUND
    if not isinstance(order, OrderRecord):
        return RejectReason.NOT_AN_ORDER
    if order.is_provisional:
        return RejectReason.PROVISIONAL_RECORD
    target = coerce_status(new_status)
    if target is None:
        return RejectReason.ILLEGAL_TRANSITION
    if order.status == target:
        return RejectReason.STATUS_UNCHANGED
    if not is_transition_legal(
        order.status,
        target,
        direct_completion_for(order, policy),
        policy=policy,
    ):
        return RejectReason.ILLEGAL_TRANSITION
    return None


# pylint: disable=too-many-arguments
def change_order_status(
    orchestrator: MutationOrchestrator,
    gateway: RemoteGateway,
    signature: QuerySignature,
    order_id: str,
    new_status: OrderStatus | str,
    *,
    policy: TransitionPolicy = DEFAULT_TRANSITION_POLICY,
    notes: str | None = None,
) -> MutationResult[Record]:
    """Change one order's status optimistically.

    Illegal changes are refused synchronously with a ValidationRejection;
    nothing is applied and no network call is made.

    The patch lands on the entry that holds the order, which need not be
    signature (selections span pages). Once the server confirms, every
    cached orders view is marked stale: filtered views may no longer
    contain the order.
    """
    cache = orchestrator.cache
    found = cache.locate("orders", order_id, prefer=signature)
    target_signature, order = found if found is not None else (signature, None)

    reason = check_status_change(order, new_status, policy)
    if reason is not None:
        target = coerce_status(new_status)
        to_status = target.value if target is not None else str(new_status)
        orchestrator.event_bus.emit(
            TransitionRejectedEvent(
                record_id=order_id,
                from_status=order.status.value if isinstance(order, OrderRecord) else None,
                to_status=to_status,
                reason=reason,
            )
        )
        LOGGER.info(
            "Status change refused",
            extra={"order_id": order_id, "to_status": to_status, "reason": reason},
        )
        return MutationResult(error=ValidationRejection(reason, ids=[order_id]))

    status = OrderStatus(new_status)
    result = orchestrator.execute(
        target_signature,
        set_status([order_id], status),
        lambda: gateway.update_status(order_id, status, notes),
        label="update_status",
    )
    if result.ok:
        cache.invalidate_resource("orders")
    return result
