"""Pure optimistic patch builders.

Each builder returns a function ``data -> data`` suitable for
``CacheStore.patch``. The functions never mutate their input.
``track_total`` is the matching ``page_fn`` for patches that add or
remove records.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Collection, Iterable, Literal, Mapping

if TYPE_CHECKING:
    from merchant_sync.core.domain.order_status import OrderStatus
    from merchant_sync.core.domain.types import PageInfo, Record

Patch = Callable[[tuple["Record", ...]], Iterable["Record"]]


def remove_ids(ids: Collection[str]) -> Patch:
    targets = frozenset(ids)

    def _apply(data: tuple[Record, ...]) -> tuple[Record, ...]:
        return tuple(r for r in data if r.id not in targets)

    return _apply


def update_ids(ids: Collection[str], changes: Mapping[str, Any]) -> Patch:
    targets = frozenset(ids)
    update = dict(changes)

    def _apply(data: tuple[Record, ...]) -> tuple[Record, ...]:
        return tuple(
            r.model_copy(update=update) if r.id in targets else r
            for r in data
        )

    return _apply


def set_status(ids: Collection[str], status: OrderStatus) -> Patch:
    return update_ids(ids, {"status": status})


def insert_record(record: Record, position: Literal["start", "end"] = "start") -> Patch:
    def _apply(data: tuple[Record, ...]) -> tuple[Record, ...]:
        if position == "start":
            return (record, *data)
        return (*data, record)

    return _apply


def replace_record(old_id: str, new_record: Record) -> Callable[[tuple[Record, ...]], tuple[Record, ...]]:
    """Swap the record with old_id for new_record, keeping its position.

    Any other copy of new_record's id is dropped so the entry stays unique.
    When old_id is absent the data is returned unchanged.
    """

    def _apply(data: tuple[Record, ...]) -> tuple[Record, ...]:
        if not any(r.id == old_id for r in data):
            return data
        out: list[Record] = []
        for r in data:
            if r.id == old_id:
                out.append(new_record)
            elif r.id != new_record.id:
                out.append(r)
        return tuple(out)

    return _apply


def track_total(
    page_info: PageInfo,
    before: tuple[Record, ...],
    after: tuple[Record, ...],
) -> PageInfo:
    """Shift pagination.total by the number of records added or removed."""
    delta = len(after) - len(before)
    if delta == 0:
        return page_info
    return page_info.model_copy(update={"total": max(0, page_info.total + delta)})
