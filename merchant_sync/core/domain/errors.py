"""Mutation error taxonomy and the single result contract.

Every mutation entry point returns a ``MutationResult`` instead of invoking
success/error callbacks. Callers branch on ``result.ok`` explicitly.

- ValidationRejection: refused locally before any network call; nothing to
  roll back.
- TransportFailure: the remote call failed (network, timeout, 5xx); the
  optimistic state is rolled back and the error is retryable.
- ConflictRejection: the server's own guard rejected the operation; rolled
  back like a transport failure but reported as "state changed elsewhere".
- MappingError: a remote payload did not have the expected shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Mapping, Sequence, TypeVar

T = TypeVar("T")


class MutationError(Exception):
    """Base class for every failure surfaced by a mutation."""

    kind: str = "mutation_error"
    retryable: bool = False

    def user_message(self) -> str:
        return str(self) or "The change could not be saved."


class ValidationRejection(MutationError):
    kind = "validation_rejection"

    def __init__(self, reason: str, ids: Sequence[str] = (), message: str | None = None) -> None:
        self.reason = reason
        self.ids = tuple(ids)
        super().__init__(message or reason)

    def user_message(self) -> str:
        return f"This change is not allowed ({self.reason})."


class TransportFailure(MutationError):
    kind = "transport_failure"
    retryable = True

    def user_message(self) -> str:
        return "Network problem: the change was not saved. Please try again."


class ConflictRejection(MutationError):
    kind = "conflict_rejection"

    def user_message(self) -> str:
        detail = str(self)
        base = "The record was changed elsewhere; the latest state has been reloaded."
        return f"{base} ({detail})" if detail else base


class MappingError(MutationError):
    """Raised when a remote payload does not map onto the expected model."""

    kind = "mapping_error"

    def __init__(self, resource: str, message: str) -> None:
        self.resource = resource
        super().__init__(f"{resource}: {message}")

    def user_message(self) -> str:
        return "Unexpected response from the server; the view has been reloaded."


class CacheInvariantError(ValueError):
    """Raised when a cache write would break an entry invariant."""


@dataclass(slots=True)
class MutationResult(Generic[T]):
    """Outcome of one orchestrated mutation.

    - value: the mapped remote response on success
    - error: the MutationError on failure
    - rolled_back: True when the optimistic state was restored from snapshot
    """

    value: T | None = None
    error: MutationError | None = None
    rolled_back: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T | None:
        if self.error is not None:
            raise self.error
        return self.value


@dataclass(slots=True)
class PartialBulkFailure:
    """Client-side ineligible subset of a bulk action (id -> reject reason)."""

    rejected: Mapping[str, str] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.rejected)

    def user_message(self) -> str:
        noun = "record was" if self.count == 1 else "records were"
        return f"{self.count} selected {noun} skipped because the action does not apply to them."
