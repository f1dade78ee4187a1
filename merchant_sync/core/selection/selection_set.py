"""Selection of records for bulk actions, scoped to one collection view."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator

from merchant_sync.core.domain.signature import is_provisional_id

if TYPE_CHECKING:
    from merchant_sync.core.domain.types import Record


def _selectable_id(item: str | Record) -> str | None:
    """Return the id to select, or None for not-yet-confirmed records."""
    if isinstance(item, str):
        return None if is_provisional_id(item) else item
    if item.is_provisional or is_provisional_id(item.id):
        return None
    return item.id


class SelectionSet:
    """Ordered set of selected record ids.

    Owned by one collection view and passed explicitly to the bulk
    coordinator. Membership is independent of pagination. Provisional ids
    are never admitted: a bulk action against them would target a server id
    that does not exist yet.
    """

    def __init__(self, scope: str = "default") -> None:
        self.scope = scope
        self._ids: dict[str, None] = {}

    def toggle(self, item: str | Record) -> bool:
        """Flip membership; returns True when the id is selected afterwards."""
        record_id = _selectable_id(item)
        if record_id is None:
            return False
        if record_id in self._ids:
            del self._ids[record_id]
            return False
        self._ids[record_id] = None
        return True

    def select_all(self, items: Iterable[str | Record]) -> int:
        """Add every selectable id; returns how many were newly added."""
        added = 0
        for item in items:
            record_id = _selectable_id(item)
            if record_id is None or record_id in self._ids:
                continue
            self._ids[record_id] = None
            added += 1
        return added

    def discard(self, record_id: str) -> None:
        self._ids.pop(record_id, None)

    def discard_many(self, record_ids: Iterable[str]) -> None:
        for record_id in record_ids:
            self._ids.pop(record_id, None)

    def clear(self) -> None:
        self._ids.clear()

    def contains(self, record_id: str) -> bool:
        return record_id in self._ids

    def size(self) -> int:
        return len(self._ids)

    def ids(self) -> tuple[str, ...]:
        return tuple(self._ids)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._ids))

    def __repr__(self) -> str:
        return f"SelectionSet(scope={self.scope!r}, ids={list(self._ids)!r})"
