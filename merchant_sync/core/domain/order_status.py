"""
Order lifecycle status guard.

This module defines the canonical order statuses and the legal transitions
between them. It is pure and validation-only: illegal transitions never
raise, they return False and the caller refuses to dispatch the mutation.

The client-side guard is a UX gate, not the authority. The server runs its
own guard on every status change and its rejection always wins.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from merchant_sync.core.domain.types import OrderRecord


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    OUT_FOR_FULFILLMENT = "OUT_FOR_FULFILLMENT"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class FulfillmentMethod(str, Enum):
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"


# Terminal statuses: no outgoing transitions.
TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    }
)


# Forward progression. Only single-stage steps are listed here; the
# READY -> COMPLETED shortcut and cancellation edges are flag/policy driven.
#
# Key   : current status
# Value : the next forward status
FORWARD_PROGRESSION: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.OUT_FOR_FULFILLMENT,
    OrderStatus.OUT_FOR_FULFILLMENT: OrderStatus.COMPLETED,
}

NON_TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(FORWARD_PROGRESSION)


class TransitionPolicy(BaseModel):
    """Configurable edges of the order lifecycle.

    - cancellable_from: non-terminal statuses that may move to CANCELLED
    - direct_completion_methods: fulfillment methods allowed to go
      READY -> COMPLETED without an explicit OUT_FOR_FULFILLMENT step
    """

    cancellable_from: frozenset[OrderStatus] = Field(
        default=NON_TERMINAL_STATUSES,
        description="Statuses from which an order may be cancelled.",
    )
    direct_completion_methods: frozenset[FulfillmentMethod] = Field(
        default=frozenset({FulfillmentMethod.PICKUP}),
        description="Fulfillment methods that may complete straight from READY.",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)

    def allows_cancellation_from(self, status: OrderStatus) -> bool:
        return status in self.cancellable_from and status not in TERMINAL_STATUSES

    def allows_direct_completion(self, method: FulfillmentMethod | str) -> bool:
        try:
            return FulfillmentMethod(method) in self.direct_completion_methods
        except ValueError:
            return False


DEFAULT_TRANSITION_POLICY = TransitionPolicy()


class TransitionRequest(BaseModel):
    from_status: OrderStatus
    to_status: OrderStatus
    direct_completion_allowed: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)


def coerce_status(status: OrderStatus | str) -> OrderStatus | None:
    """Return the OrderStatus for status, or None for unknown values."""
    try:
        return OrderStatus(status)
    except ValueError:
        return None


def is_terminal_status(status: OrderStatus | str) -> bool:
    """Return True if the given status is terminal."""
    coerced = coerce_status(status)
    return coerced is not None and coerced in TERMINAL_STATUSES


def is_transition_legal(
    from_status: OrderStatus | str,
    to_status: OrderStatus | str,
    direct_completion_allowed: bool,
    *,
    policy: TransitionPolicy = DEFAULT_TRANSITION_POLICY,
) -> bool:
    """Return True if from_status -> to_status may be attempted.

    Total over its inputs: unknown status values are illegal, not errors.
    """
    src = coerce_status(from_status)
    dst = coerce_status(to_status)
    if src is None or dst is None:
        return False

    if src == dst:
        return False

    if src in TERMINAL_STATUSES:
        return False

    if dst == OrderStatus.CANCELLED:
        return policy.allows_cancellation_from(src)

    if FORWARD_PROGRESSION.get(src) == dst:
        return True

    if src == OrderStatus.READY and dst == OrderStatus.COMPLETED:
        return bool(direct_completion_allowed)

    # Backwards moves, multi-stage skips and REFUNDED are never attempted
    # from the dashboard.
    return False


def is_request_legal(
    request: TransitionRequest,
    *,
    policy: TransitionPolicy = DEFAULT_TRANSITION_POLICY,
) -> bool:
    return is_transition_legal(
        request.from_status,
        request.to_status,
        request.direct_completion_allowed,
        policy=policy,
    )


def allowed_next_statuses(
    from_status: OrderStatus | str,
    direct_completion_allowed: bool,
    *,
    policy: TransitionPolicy = DEFAULT_TRANSITION_POLICY,
) -> tuple[OrderStatus, ...]:
    """Return every legal target for from_status, in lifecycle order."""
    return tuple(
        status
        for status in OrderStatus
        if is_transition_legal(
            from_status,
            status,
            direct_completion_allowed,
            policy=policy,
        )
    )


def direct_completion_for(
    order: OrderRecord,
    policy: TransitionPolicy = DEFAULT_TRANSITION_POLICY,
) -> bool:
    """Derive the direct-completion flag from an order's fulfillment method."""
    return policy.allows_direct_completion(order.fulfillment_method)
