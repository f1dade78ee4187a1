"""Public API for the merchant_sync package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Engine API
# ----------------------------------------------------------------------
from merchant_sync.core.bulk.coordinator import (
    BulkOperationCoordinator,
    BulkResult,
    DeleteAction,
    ExportAction,
    StatusChangeAction,
)
from merchant_sync.core.cache.cache_store import CacheEntry, CacheStore
from merchant_sync.core.cache.query_client import QueryClient

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from merchant_sync.core.config.engine_config import BulkConfig, EngineConfig

# ----------------------------------------------------------------------
# Domain API
# ----------------------------------------------------------------------
from merchant_sync.core.domain.errors import (
    ConflictRejection,
    MappingError,
    MutationError,
    MutationResult,
    PartialBulkFailure,
    TransportFailure,
    ValidationRejection,
)
from merchant_sync.core.domain.order_status import (
    FulfillmentMethod,
    OrderStatus,
    TransitionPolicy,
    TransitionRequest,
    allowed_next_statuses,
    is_transition_legal,
)
from merchant_sync.core.domain.signature import QuerySignature
from merchant_sync.core.domain.types import (
    IngredientRecord,
    OrderRecord,
    PageInfo,
    ProductRecord,
    Record,
)
from merchant_sync.core.events.event_bus import EventBus
from merchant_sync.core.mutation.orchestrator import MutationOrchestrator
from merchant_sync.core.mutation.status_change import change_order_status
from merchant_sync.core.ports.remote_service import RemoteGateway, RemoteService
from merchant_sync.core.selection.selection_set import SelectionSet

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Engine
    "CacheStore",
    "CacheEntry",
    "QueryClient",
    "MutationOrchestrator",
    "change_order_status",
    "SelectionSet",
    "BulkOperationCoordinator",
    "BulkResult",
    "DeleteAction",
    "StatusChangeAction",
    "ExportAction",
    "EventBus",

    # Remote boundary
    "RemoteService",
    "RemoteGateway",

    # Config
    "EngineConfig",
    "BulkConfig",
    "TransitionPolicy",

    # Domain
    "OrderStatus",
    "FulfillmentMethod",
    "TransitionRequest",
    "is_transition_legal",
    "allowed_next_statuses",
    "QuerySignature",
    "Record",
    "OrderRecord",
    "ProductRecord",
    "IngredientRecord",
    "PageInfo",

    # Errors
    "MutationError",
    "MutationResult",
    "ValidationRejection",
    "TransportFailure",
    "ConflictRejection",
    "MappingError",
    "PartialBulkFailure",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("merchant-sync")
except PackageNotFoundError:
    __version__ = "0.0.0"
