"""Read path: fetch collections into the cache store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from merchant_sync.core.cache.cache_store import CacheEntry, CacheStore
    from merchant_sync.core.domain.signature import QuerySignature
    from merchant_sync.core.ports.remote_service import RemoteGateway

LOGGER = logging.getLogger(__name__)


class QueryClient:
    """Fetches collections through the gateway and writes them to the cache.

    A fetch takes a read ticket before calling the remote service. If a
    mutation patches the same signature while the fetch is in flight, the
    fetched page is discarded and the optimistic state is kept.
    """

    def __init__(self, cache: CacheStore, gateway: RemoteGateway) -> None:
        self._cache = cache
        self._gateway = gateway

    def fetch(self, signature: QuerySignature) -> CacheEntry | None:
        """Fetch signature from the remote service.

        Returns the entry as it stands afterwards (the fetched data, or the
        newer local state when the fetch was discarded).
        """
        ticket = self._cache.begin_read(signature)
        try:
            records, page_info = self._gateway.list_page(signature)
        except Exception:
            self._cache.abandon_read(ticket)
            raise

        written = self._cache.complete_read(ticket, records, page_info)
        LOGGER.debug(
            "Fetched collection",
            extra={"signature": signature.key, "records": len(records), "written": written},
        )
        return self._cache.read(signature)

    def ensure(self, signature: QuerySignature) -> CacheEntry | None:
        """Return the cached entry, fetching when absent or stale."""
        entry = self._cache.read(signature)
        if entry is None or entry.stale:
            return self.fetch(signature)
        return entry

    def subscribe(self, signature: QuerySignature) -> CacheEntry | None:
        """Register an observing view and make sure its data is loaded."""
        self._cache.observe(signature)
        return self.ensure(signature)

    def unsubscribe(self, signature: QuerySignature) -> None:
        self._cache.release(signature)

    def refresh_stale(self) -> int:
        """Refetch every stale entry that still has observers."""
        refreshed = 0
        for signature in self._cache.stale_signatures():
            if self._cache.observer_count(signature) == 0:
                continue
            self.fetch(signature)
            refreshed += 1
        return refreshed
