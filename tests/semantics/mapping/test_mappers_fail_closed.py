"""
Semantic test: remote payload mapping fails closed.

Invariant:
An unexpected payload shape raises MappingError; fields are never silently
defaulted or dropped.
"""

from __future__ import annotations

import pytest

from merchant_sync.core.domain.errors import MappingError
from merchant_sync.core.domain.order_status import OrderStatus
from merchant_sync.core.domain.types import OrderRecord
from merchant_sync.core.mapping.mappers import (
    map_export,
    map_list_response,
    map_record,
    model_for,
)
from tests.support.fakes import order_row


def test_valid_order_maps_to_record() -> None:
    record = map_record("orders", order_row("a", "READY", "PICKUP"))

    assert isinstance(record, OrderRecord)
    assert record.status == OrderStatus.READY
    assert not record.is_provisional


@pytest.mark.parametrize(
    "payload",
    [
        None,
        ["not", "an", "object"],
        {"id": "a"},
        dict(order_row("a"), status="DELIVERED"),
        dict(order_row("a"), extra_field=1),
        dict(order_row("a"), is_provisional=True),
        dict(order_row("a"), id="tmp-abc"),
    ],
)
def test_bad_record_payloads_raise(payload) -> None:
    with pytest.raises(MappingError):
        map_record("orders", payload)


def test_unknown_resource_raises() -> None:
    with pytest.raises(MappingError) as exc_info:
        model_for("customers")
    assert exc_info.value.resource == "customers"


@pytest.mark.parametrize(
    "payload",
    [
        {"items": []},
        {"pagination": {}},
        {"items": {}, "pagination": {}},
        {"items": [], "pagination": {"page": 0}},
        {"items": [], "pagination": {}, "meta": {}},
    ],
)
def test_bad_list_envelopes_raise(payload) -> None:
    with pytest.raises(MappingError):
        map_list_response("orders", payload)


def test_one_bad_item_fails_the_whole_page() -> None:
    payload = {"items": [order_row("a"), {"id": "b"}], "pagination": {"total": 2}}
    with pytest.raises(MappingError):
        map_list_response("orders", payload)


def test_export_payload_shape() -> None:
    assert map_export("orders", {"csv": "id\na", "count": 1}).count == 1
    with pytest.raises(MappingError):
        map_export("orders", {"csv": "id\na"})
