"""
Semantic test: terminal-state closure.

Invariant:
COMPLETED, CANCELLED and REFUNDED have no legal outgoing transition,
whatever the flag or cancellation policy.
"""

from __future__ import annotations

import pytest

from merchant_sync.core.domain.order_status import (
    OrderStatus,
    TransitionPolicy,
    allowed_next_statuses,
    is_terminal_status,
    is_transition_legal,
)

TERMINALS = [OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED]


@pytest.mark.parametrize("terminal", TERMINALS)
def test_terminal_status_has_no_outgoing_edge(terminal: OrderStatus) -> None:
    permissive = TransitionPolicy(cancellable_from=frozenset(OrderStatus))

    assert is_terminal_status(terminal)
    for dst in OrderStatus:
        for flag in (False, True):
            assert not is_transition_legal(terminal, dst, flag)
            assert not is_transition_legal(terminal, dst, flag, policy=permissive)

    assert allowed_next_statuses(terminal, True) == ()


def test_non_terminal_statuses_are_not_terminal() -> None:
    for status in OrderStatus:
        if status not in TERMINALS:
            assert not is_terminal_status(status)
