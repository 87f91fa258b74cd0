"""Core service interfaces and shared data structures.

This module defines the protocols the core expects from its external
collaborators (asset provider, entitlement persistence) and the simple
dataclasses that carry synchronization and deletion results between the
infrastructure and UI layers.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from core.models import AssetHandle, AuthorizationStatus, Photo, PhotoId


class AssetProviderError(Exception):
    """Raised by an asset provider when an operation fails as a whole."""


class AuthorizationRevokedError(AssetProviderError):
    """Raised when library access is lost while an operation is running."""


@dataclass(frozen=True)
class AssetRecord:
    """One enumerated asset.

    Attributes:
        handle: Provider handle for the asset.
        creation_date: Capture timestamp, or None when the provider has none.
    """

    handle: AssetHandle
    creation_date: datetime | None


@dataclass
class DeleteResult:
    """Outcome of a provider bulk delete.

    Attributes:
        deleted: Handles the provider removed.
        failed: Tuples of (handle, reason) for handles that were not removed.
        error: Batch-level failure reason, when the whole call failed.
        log_path: Optional path to a detailed audit log.
    """

    deleted: frozenset[AssetHandle] = frozenset()
    failed: list[tuple[AssetHandle, str]] = field(default_factory=list)
    error: str | None = None
    log_path: str | None = None

    @classmethod
    def failure(cls, handles: frozenset[AssetHandle], reason: str) -> DeleteResult:
        """Build an all-or-nothing failure for `handles`."""
        return cls(failed=[(h, reason) for h in handles], error=reason)

    @property
    def failure_reason(self) -> str:
        """Human-readable reason for the first failure."""
        if self.error:
            return self.error
        if self.failed:
            return self.failed[0][1]
        return "Unknown error"


class SyncStatus(Enum):
    """How a synchronization ended."""

    OK = "ok"
    UNAUTHORIZED = "unauthorized"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncResult:
    """Date-sorted batch produced by a synchronization.

    Attributes:
        photos: Photos ordered newest first; ids are unique.
        identity_map: Photo id to provider handle for every photo in `photos`.
        status: OK, or why the batch is empty.
        error: Provider failure reason when status is FAILED.
    """

    photos: tuple[Photo, ...] = ()
    identity_map: Mapping[PhotoId, AssetHandle] = field(default_factory=dict)
    status: SyncStatus = SyncStatus.OK
    error: str | None = None

    @classmethod
    def unauthorized(cls) -> SyncResult:
        return cls(status=SyncStatus.UNAUTHORIZED)

    @classmethod
    def failed(cls, reason: str) -> SyncResult:
        return cls(status=SyncStatus.FAILED, error=reason)


class ConfirmOutcome(Enum):
    """Result of asking the store to prepare a permanent deletion."""

    NOTHING_TO_DELETE = "nothing_to_delete"
    CONFIRMATION_REQUIRED = "confirmation_required"
    BUSY = "busy"


class AssetProvider(Protocol):
    """Platform photo store the core reads from and deletes through."""

    async def request_access(self) -> AuthorizationStatus:
        """Ask for library access and return the resulting status."""
        raise NotImplementedError

    def authorization_status(self) -> AuthorizationStatus:
        """Return the current status without prompting."""
        raise NotImplementedError

    def fetch_all(self) -> Sequence[AssetRecord]:
        """List every image asset; raise `AssetProviderError` on failure."""
        raise NotImplementedError

    async def resolve_image(self, handle: AssetHandle, target_size: int) -> bytes | None:
        """Return image bytes bounded by `target_size`, or None on failure."""
        raise NotImplementedError

    async def delete(self, handles: frozenset[AssetHandle]) -> DeleteResult:
        """Remove `handles` from the library in one batch."""
        raise NotImplementedError


class EntitlementPersistence(Protocol):
    """Synchronous boolean key/value store backing the entitlement flag."""

    def get(self, key: str) -> bool:
        raise NotImplementedError

    def set(self, key: str, value: bool) -> None:
        raise NotImplementedError
