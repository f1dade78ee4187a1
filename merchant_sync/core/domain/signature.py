"""Query signatures and provisional record identifiers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

PROVISIONAL_ID_PREFIX = "tmp-"


@dataclass(frozen=True, slots=True)
class QuerySignature:
    """Canonical key addressing one cached collection view.

    The signature is defined by (resource, filters, page). Filters are
    canonicalised to a sorted tuple so two signatures built from equal
    mappings compare and hash equal regardless of key order.
    """

    resource: str
    filters: tuple[tuple[str, Any], ...] = field(default=())
    page: int | str | None = None

    @classmethod
    def of(
        cls,
        resource: str,
        filters: Mapping[str, Any] | None = None,
        page: int | str | None = None,
    ) -> QuerySignature:
        if not resource:
            raise ValueError("resource must be non-empty")
        items = {} if filters is None else filters
        canonical = tuple(
            sorted(
                ((str(k), _freeze(v)) for k, v in items.items() if v is not None),
                key=lambda kv: kv[0],
            )
        )
        return cls(resource=resource, filters=canonical, page=page)

    def filter_dict(self) -> dict[str, Any]:
        return {k: _thaw(v) for k, v in self.filters}

    def with_page(self, page: int | str | None) -> QuerySignature:
        return QuerySignature(resource=self.resource, filters=self.filters, page=page)

    @property
    def key(self) -> str:
        """Stable string form, used in events and logs."""
        parts = [f"{k}={_render(v)}" for k, v in self.filters]
        if self.page is not None:
            parts.append(f"page={self.page}")
        if not parts:
            return self.resource
        return f"{self.resource}?{'&'.join(parts)}"


def _freeze(value: Any) -> Any:
    # Enums collapse to their wire value.
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return tuple(sorted((str(k), _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple, set, frozenset)):
        frozen = [_freeze(v) for v in value]
        if isinstance(value, (set, frozenset)):
            frozen.sort(key=repr)
        return tuple(frozen)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def _render(value: Any) -> str:
    if isinstance(value, tuple):
        return ",".join(_render(v) for v in value)
    return str(value)


def new_provisional_id() -> str:
    """Return a fresh locally-generated id that no server id can equal."""
    return f"{PROVISIONAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_provisional_id(record_id: str) -> bool:
    return record_id.startswith(PROVISIONAL_ID_PREFIX)
