"""Shared fixtures: an in-memory remote service and a wired-up engine."""

from __future__ import annotations

import pytest

from merchant_sync.core.cache.cache_store import CacheStore
from merchant_sync.core.cache.query_client import QueryClient
from merchant_sync.core.domain.signature import QuerySignature
from merchant_sync.core.events.event_bus import EventBus
from merchant_sync.core.mutation.orchestrator import MutationOrchestrator
from merchant_sync.core.ports.remote_service import RemoteGateway
from tests.support.fakes import FakeRemoteService, RecordingSink


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def event_bus(sink: RecordingSink) -> EventBus:
    return EventBus(sinks=[sink])


@pytest.fixture
def cache(event_bus: EventBus) -> CacheStore:
    return CacheStore(event_bus=event_bus)


@pytest.fixture
def remote() -> FakeRemoteService:
    return FakeRemoteService()


@pytest.fixture
def gateway(remote: FakeRemoteService) -> RemoteGateway:
    return RemoteGateway(remote)


@pytest.fixture
def orchestrator(cache: CacheStore, event_bus: EventBus) -> MutationOrchestrator:
    return MutationOrchestrator(cache=cache, event_bus=event_bus)


@pytest.fixture
def query_client(cache: CacheStore, gateway: RemoteGateway) -> QueryClient:
    return QueryClient(cache=cache, gateway=gateway)


@pytest.fixture
def orders_sig() -> QuerySignature:
    return QuerySignature.of("orders", page=1)
