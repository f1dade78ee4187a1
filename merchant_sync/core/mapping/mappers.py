"""Explicit mapping between remote payloads and cached records.

Each resource has one total mapping function. Mapping fails closed: an
unexpected shape raises ``MappingError`` instead of silently defaulting
fields. Payload validation is delegated to the Pydantic record models,
which forbid unknown keys.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from merchant_sync.core.domain.errors import MappingError
from merchant_sync.core.domain.signature import is_provisional_id
from merchant_sync.core.domain.types import (
    BatchCount,
    ExportPayload,
    IngredientRecord,
    OrderRecord,
    PageInfo,
    ProductRecord,
    Record,
)

LOGGER = logging.getLogger(__name__)

RECORD_MODELS: dict[str, type[Record]] = {
    "orders": OrderRecord,
    "products": ProductRecord,
    "ingredients": IngredientRecord,
}


def model_for(resource: str) -> type[Record]:
    try:
        return RECORD_MODELS[resource]
    except KeyError:
        raise MappingError(resource, "unknown resource") from None


def _require_mapping(resource: str, payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise MappingError(resource, f"{what} must be an object, got {type(payload).__name__}")
    return payload


def map_record(resource: str, payload: Any) -> Record:
    """Map one server payload onto the resource's record model.

    Server payloads never carry provisional ids or the provisional flag.
    """
    data = _require_mapping(resource, payload, "record")
    if "is_provisional" in data:
        raise MappingError(resource, "server payload must not set is_provisional")

    model = model_for(resource)
    try:
        record = model.model_validate(dict(data))
    except ValidationError as exc:
        LOGGER.warning(
            "Record payload rejected",
            extra={"resource": resource, "errors": exc.error_count()},
        )
        raise MappingError(resource, f"invalid record payload: {exc.errors()[0]['msg']}") from exc

    if is_provisional_id(record.id):
        raise MappingError(resource, f"server returned a provisional id: {record.id}")
    return record


def map_list_response(resource: str, payload: Any) -> tuple[tuple[Record, ...], PageInfo]:
    """Map a ``list`` response ``{items, pagination}``."""
    data = _require_mapping(resource, payload, "list response")

    missing = {"items", "pagination"} - set(data)
    if missing:
        raise MappingError(resource, f"list response missing {sorted(missing)}")
    extra = set(data) - {"items", "pagination"}
    if extra:
        raise MappingError(resource, f"list response has unexpected keys {sorted(extra)}")

    items = data["items"]
    if not isinstance(items, list):
        raise MappingError(resource, "items must be a list")

    records = tuple(map_record(resource, item) for item in items)

    try:
        page_info = PageInfo.model_validate(data["pagination"])
    except ValidationError as exc:
        raise MappingError(resource, "invalid pagination") from exc

    return records, page_info


def map_batch_count(resource: str, payload: Any) -> BatchCount:
    data = _require_mapping(resource, payload, "batch response")
    try:
        return BatchCount.model_validate(dict(data))
    except ValidationError as exc:
        raise MappingError(resource, "batch response must be exactly {count}") from exc


def map_export(resource: str, payload: Any) -> ExportPayload:
    data = _require_mapping(resource, payload, "export response")
    try:
        return ExportPayload.model_validate(dict(data))
    except ValidationError as exc:
        raise MappingError(resource, "export response must be {csv, count}") from exc
