"""
Semantic test: a deleted record leaves the selection.

Invariant:
A successful single delete discards its id from the selection passed
along; a failed delete keeps it selected.
"""

from __future__ import annotations

from merchant_sync.core.cache.cache_store import CacheStore
from merchant_sync.core.domain.errors import TransportFailure
from merchant_sync.core.domain.signature import QuerySignature
from merchant_sync.core.mutation.orchestrator import MutationOrchestrator
from merchant_sync.core.ports.remote_service import RemoteGateway
from merchant_sync.core.selection.selection_set import SelectionSet
from tests.support.fakes import FakeRemoteService, make_order, order_row


def test_successful_delete_discards_id(
    cache: CacheStore,
    orchestrator: MutationOrchestrator,
    gateway: RemoteGateway,
    remote: FakeRemoteService,
    orders_sig: QuerySignature,
) -> None:
    cache.write(orders_sig, [make_order("a"), make_order("b")])
    remote.rows["orders"] = [order_row("a"), order_row("b")]
    selection = SelectionSet()
    selection.select_all(["a", "b"])

    result = orchestrator.delete(
        orders_sig, "a", lambda: gateway.delete("orders", "a"), selection=selection
    )

    assert result.ok
    assert selection.ids() == ("b",)


def test_failed_delete_keeps_id_selected(
    cache: CacheStore,
    orchestrator: MutationOrchestrator,
    gateway: RemoteGateway,
    remote: FakeRemoteService,
    orders_sig: QuerySignature,
) -> None:
    cache.write(orders_sig, [make_order("a")])
    remote.fail_next = TransportFailure("down")
    selection = SelectionSet()
    selection.toggle("a")

    result = orchestrator.delete(
        orders_sig, "a", lambda: gateway.delete("orders", "a"), selection=selection
    )

    assert not result.ok
    assert selection.ids() == ("a",)
    assert cache.read(orders_sig).ids() == ("a",)
