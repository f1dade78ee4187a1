"""Remote data service boundary.

This module defines the abstract remote-procedure boundary used by the
consistency engine, and a gateway that maps its raw payloads onto records.
Rendering, payments, delivery routing and recipe costing all live behind
this boundary; only the request/response shapes matter here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Protocol, Sequence

from merchant_sync.core.domain.types import BulkPayload, StatusChangePayload
from merchant_sync.core.mapping.mappers import (
    map_batch_count,
    map_export,
    map_list_response,
    map_record,
)

if TYPE_CHECKING:
    from merchant_sync.core.domain.order_status import OrderStatus
    from merchant_sync.core.domain.signature import QuerySignature
    from merchant_sync.core.domain.types import BatchCount, ExportPayload, PageInfo, Record


class RemoteService(Protocol):
    """Raw remote-procedure boundary.

    Implementations raise ``TransportFailure`` for network/5xx problems and
    ``ConflictRejection`` when the server's own guard refuses a write.
    ``ConnectionError`` and ``TimeoutError`` are accepted as transport
    failures as well.
    """

    def list(
        self,
        resource: str,
        filters: Mapping[str, Any],
        page: int | str | None,
    ) -> Mapping[str, Any]:
        """Return ``{"items": [...], "pagination": {...}}``."""

    def mutate(
        self,
        resource: str,
        op: str,
        payload: Mapping[str, Any],
    ) -> Mapping[str, Any]:
        """Return a record payload, ``{"count": n}`` or ``{"csv", "count"}``."""


class RemoteGateway:
    """Typed facade over a RemoteService.

    Every response is mapped through the fail-closed mappers, so callers
    only ever see records or raise ``MappingError``.
    """

    def __init__(self, service: RemoteService) -> None:
        self._service = service

    def list_page(self, signature: QuerySignature) -> tuple[tuple[Record, ...], PageInfo]:
        raw = self._service.list(signature.resource, signature.filter_dict(), signature.page)
        return map_list_response(signature.resource, raw)

    def mutate_record(self, resource: str, op: str, payload: Mapping[str, Any]) -> Record:
        raw = self._service.mutate(resource, op, payload)
        return map_record(resource, raw)

    def mutate_batch(self, resource: str, op: str, payload: Mapping[str, Any]) -> BatchCount:
        raw = self._service.mutate(resource, op, payload)
        return map_batch_count(resource, raw)

    def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        notes: str | None = None,
    ) -> Record:
        payload = StatusChangePayload(id=order_id, status=status, notes=notes)
        return self.mutate_record(
            "orders",
            "update_status",
            payload.model_dump(mode="json", exclude_none=True),
        )

    def bulk_update_status(self, ids: Sequence[str], status: OrderStatus) -> BatchCount:
        payload = BulkPayload(ids=list(ids), status=status)
        return self.mutate_batch(
            "orders",
            "bulk_update_status",
            payload.model_dump(mode="json", exclude_none=True),
        )

    def bulk_delete(self, resource: str, ids: Sequence[str]) -> BatchCount:
        payload = BulkPayload(ids=list(ids))
        return self.mutate_batch(
            resource,
            "bulk_delete",
            payload.model_dump(mode="json", exclude_none=True),
        )

    def delete(self, resource: str, record_id: str) -> BatchCount:
        return self.mutate_batch(resource, "delete", {"id": record_id})

    def export(self, resource: str, ids: Sequence[str]) -> ExportPayload:
        raw = self._service.mutate(resource, "export", {"ids": list(ids)})
        return map_export(resource, raw)
