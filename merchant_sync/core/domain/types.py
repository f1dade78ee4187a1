"""Core shared record and payload models.

This module defines the canonical Pydantic models for cached records and for
the payloads exchanged with the remote data service. Records are frozen so an
optimistic patch can never mutate a snapshot in place; every edit goes through
``model_copy(update=...)``.
"""

# pylint: disable=missing-class-docstring,missing-function-docstring
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from merchant_sync.core.domain.order_status import FulfillmentMethod, OrderStatus

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class Record(BaseModel):
    """Base for every cached domain entity.

    Records created locally before server confirmation carry a provisional
    id (see ``signature.new_provisional_id``) and ``is_provisional=True``.
    """

    id: str = Field(..., min_length=1)
    is_provisional: bool = Field(
        default=False,
        description="True for locally created placeholders awaiting confirmation.",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)


class OrderRecord(Record):
    order_number: str = Field(..., min_length=1)
    status: OrderStatus
    fulfillment_method: FulfillmentMethod
    customer_name: str | None = None
    total: float = Field(default=0.0, ge=0)
    created_at: datetime | None = None


ProductStatus = Literal["DRAFT", "ACTIVE", "SOLD_OUT", "DISCONTINUED"]


class ProductRecord(Record):
    name: str = Field(..., min_length=1)
    status: ProductStatus = "DRAFT"
    price: float = Field(..., ge=0)
    featured: bool = False
    created_at: datetime | None = None


class IngredientRecord(Record):
    name: str = Field(..., min_length=1)
    unit: str = Field(..., min_length=1)  # e.g. "g", "ml", "pcs"
    cost_per_unit: float = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Remote payloads
# ---------------------------------------------------------------------------


class PageInfo(BaseModel):
    page: int | None = Field(default=None, ge=1)
    page_size: int | None = Field(default=None, ge=1)
    total: int = Field(default=0, ge=0)
    has_more: bool = False
    next_cursor: str | None = Field(default=None, min_length=1)

    model_config = ConfigDict(extra="forbid", frozen=True)


class BatchCount(BaseModel):
    """Batch mutation response: only a count, never the updated records."""

    count: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class ExportPayload(BaseModel):
    csv: str
    count: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class StatusChangePayload(BaseModel):
    id: str = Field(..., min_length=1)
    status: OrderStatus
    notes: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class BulkPayload(BaseModel):
    ids: list[str] = Field(..., min_length=1)
    status: OrderStatus | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)
