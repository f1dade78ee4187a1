"""
Semantic test: patches on one signature apply in call order.

Invariant:
patch(f) then patch(g) yields g(f(D)), never f(g(D)). patch returns the
data it replaced, so callers can snapshot.
"""

from __future__ import annotations

from merchant_sync.core.cache.cache_store import CacheStore
from merchant_sync.core.domain.order_status import OrderStatus
from merchant_sync.core.domain.signature import QuerySignature
from merchant_sync.core.mutation.patches import insert_record, set_status
from tests.support.fakes import make_order


def test_sequential_patches_compose_in_call_order(
    cache: CacheStore,
    orders_sig: QuerySignature,
) -> None:
    a = make_order("a")
    cache.write(orders_sig, [a])

    f = set_status(["a"], OrderStatus.CONFIRMED)
    g = insert_record(make_order("b"))

    before_f = cache.patch(orders_sig, f)
    before_g = cache.patch(orders_sig, g)

    entry = cache.read(orders_sig)
    assert entry is not None
    assert entry.data == tuple(g(tuple(f((a,)))))
    assert entry.ids() == ("b", "a")
    assert entry.find("a").status == OrderStatus.CONFIRMED

    assert before_f == (a,)
    assert before_g == tuple(f((a,)))


def test_non_commuting_patches_keep_order(cache: CacheStore, orders_sig: QuerySignature) -> None:
    cache.write(orders_sig, [make_order("a")])

    cache.patch(orders_sig, set_status(["a"], OrderStatus.CONFIRMED))
    cache.patch(orders_sig, set_status(["a"], OrderStatus.PREPARING))

    assert cache.read(orders_sig).find("a").status == OrderStatus.PREPARING


def test_patch_on_absent_entry_is_a_noop(cache: CacheStore, orders_sig: QuerySignature) -> None:
    assert cache.patch(orders_sig, insert_record(make_order("a"))) is None
    assert cache.read(orders_sig) is None


def test_every_change_bumps_the_version(cache: CacheStore, orders_sig: QuerySignature) -> None:
    v0 = cache.version(orders_sig)
    cache.write(orders_sig, [make_order("a")])
    v1 = cache.version(orders_sig)
    cache.patch(orders_sig, set_status(["a"], OrderStatus.CONFIRMED))
    v2 = cache.version(orders_sig)

    assert v0 < v1 < v2
    assert cache.read(orders_sig).version == v2
