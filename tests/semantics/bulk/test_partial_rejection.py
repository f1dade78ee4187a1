"""
Semantic test: bulk status change with a partially ineligible selection.

Scenario:
Selection {A, B, C}; B cannot move to the target status.

Invariants:
- Only A and C are dispatched and updated; B keeps its status.
- The selection ends as {B}.
- Local rejections and remote outcome are reported on separate channels.
"""

from __future__ import annotations

import pytest

from merchant_sync.core.bulk.coordinator import BulkOperationCoordinator, StatusChangeAction
from merchant_sync.core.cache.cache_store import CacheStore
from merchant_sync.core.domain.order_status import OrderStatus
from merchant_sync.core.domain.reject_reasons import RejectReason
from merchant_sync.core.domain.signature import QuerySignature
from merchant_sync.core.events.events import BulkDecisionEvent
from merchant_sync.core.mutation.orchestrator import MutationOrchestrator
from merchant_sync.core.ports.remote_service import RemoteGateway
from merchant_sync.core.selection.selection_set import SelectionSet
from tests.support.fakes import FakeRemoteService, RecordingSink, make_order, order_row


@pytest.fixture
def coordinator(orchestrator: MutationOrchestrator, gateway: RemoteGateway) -> BulkOperationCoordinator:
    return BulkOperationCoordinator(orchestrator, gateway)


@pytest.fixture
def seeded(cache: CacheStore, remote: FakeRemoteService, orders_sig: QuerySignature) -> SelectionSet:
    cache.write(
        orders_sig,
        [
            make_order("A", OrderStatus.PENDING),
            make_order("B", OrderStatus.COMPLETED),
            make_order("C", OrderStatus.PENDING),
        ],
    )
    remote.rows["orders"] = [
        order_row("A", "PENDING"),
        order_row("B", "COMPLETED"),
        order_row("C", "PENDING"),
    ]
    selection = SelectionSet(scope="orders")
    selection.select_all(["A", "B", "C"])
    return selection


def test_ineligible_record_is_skipped_and_stays_selected(
    seeded: SelectionSet,
    coordinator: BulkOperationCoordinator,
    cache: CacheStore,
    remote: FakeRemoteService,
    orders_sig: QuerySignature,
    sink: RecordingSink,
) -> None:
    result = coordinator.run(StatusChangeAction(OrderStatus.CONFIRMED), seeded, orders_sig)

    assert result.ok
    assert result.eligible_ids == ("A", "C")
    assert result.rejected == {"B": RejectReason.ILLEGAL_TRANSITION}
    assert result.succeeded_count == 2
    assert seeded.ids() == ("B",)

    assert len(remote.calls) == 1
    (_, op, payload) = remote.calls[0]
    assert op == "bulk_update_status"
    assert payload == {"ids": ["A", "C"], "status": "CONFIRMED"}

    entry = cache.read(orders_sig)
    assert entry.find("A").status == OrderStatus.CONFIRMED
    assert entry.find("B").status == OrderStatus.COMPLETED
    assert entry.find("C").status == OrderStatus.CONFIRMED
    assert entry.stale

    (event,) = sink.of_type(BulkDecisionEvent)
    assert (event.selected, event.eligible, event.rejected, event.succeeded) == (3, 2, 1, 2)
    assert event.reject_reasons == {RejectReason.ILLEGAL_TRANSITION: 1}
    assert event.failure_kind is None


def test_messages_keep_channels_apart(
    seeded: SelectionSet,
    coordinator: BulkOperationCoordinator,
    orders_sig: QuerySignature,
) -> None:
    result = coordinator.run(StatusChangeAction(OrderStatus.CONFIRMED), seeded, orders_sig)

    assert result.partial_failure.count == 1
    assert result.messages() == [
        "2 records updated.",
        "1 selected record was skipped because the action does not apply to them.",
    ]


def test_server_skipped_records_are_counted_separately(
    seeded: SelectionSet,
    coordinator: BulkOperationCoordinator,
    remote: FakeRemoteService,
    orders_sig: QuerySignature,
) -> None:
    # C was removed server-side after the page was loaded.
    remote.rows["orders"] = [row for row in remote.rows["orders"] if row["id"] != "C"]

    result = coordinator.run(StatusChangeAction(OrderStatus.CONFIRMED), seeded, orders_sig)

    assert result.ok
    assert result.succeeded_count == 1
    assert result.server_skipped_count == 1
    assert len(result.messages()) == 3
    assert "changed elsewhere" in result.messages()[1]
