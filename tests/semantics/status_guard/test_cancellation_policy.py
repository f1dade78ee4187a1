"""
Semantic test: cancellation boundary is a policy, not a constant.

Invariant:
By default every non-terminal status may be cancelled. A policy that
excludes OUT_FOR_FULFILLMENT forbids that edge only.
"""

from __future__ import annotations

from merchant_sync.core.domain.order_status import (
    OrderStatus,
    TransitionPolicy,
    is_transition_legal,
)

S = OrderStatus


def test_default_policy_allows_cancel_from_every_non_terminal_status() -> None:
    for status in (S.PENDING, S.CONFIRMED, S.PREPARING, S.READY, S.OUT_FOR_FULFILLMENT):
        assert is_transition_legal(status, S.CANCELLED, False)


def test_policy_can_forbid_cancel_after_dispatch() -> None:
    policy = TransitionPolicy(
        cancellable_from=frozenset({S.PENDING, S.CONFIRMED, S.PREPARING, S.READY}),
    )

    assert not is_transition_legal(S.OUT_FOR_FULFILLMENT, S.CANCELLED, False, policy=policy)
    assert is_transition_legal(S.READY, S.CANCELLED, False, policy=policy)
    # Other edges are unaffected.
    assert is_transition_legal(S.OUT_FOR_FULFILLMENT, S.COMPLETED, False, policy=policy)


def test_direct_completion_methods_are_configurable() -> None:
    policy = TransitionPolicy(direct_completion_methods=frozenset())
    assert not policy.allows_direct_completion("PICKUP")
    assert TransitionPolicy().allows_direct_completion("PICKUP")
    assert not TransitionPolicy().allows_direct_completion("DRONE")
