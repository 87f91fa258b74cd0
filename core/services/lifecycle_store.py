"""Owner of the active, bin and pending-deletion photo collections.

All methods are meant to be called from the single thread running the
asyncio event loop. Provider I/O happens in `refresh` and
`commit_permanent_deletion`; everything else is a synchronous, in-memory
mutation.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import Enum

from loguru import logger

from core.models import AssetHandle, AuthorizationStatus, Photo, PhotoId
from core.services.asset_synchronizer import AssetSynchronizer
from core.services.entitlement import EntitlementState
from core.services.interfaces import (
    AssetProvider,
    AssetProviderError,
    ConfirmOutcome,
    DeleteResult,
    SyncResult,
    SyncStatus,
)
from core.services.sort_service import SortService

FREE_PHOTO_QUOTA = 10

NOTHING_TO_DELETE_MSG = "No photos found to delete permanently."
NOTHING_PENDING_MSG = "No photos are waiting for permanent deletion."
UNAUTHORIZED_MSG = "Photo library access has not been granted."
LOAD_FAILED_MSG = "Failed to load photos"


class StoreEvent(Enum):
    """Change notifications delivered to store subscribers."""

    ACTIVE_CHANGED = "active_changed"
    BIN_CHANGED = "bin_changed"
    REFRESH_STATE_CHANGED = "refresh_state_changed"
    DELETION_STATE_CHANGED = "deletion_state_changed"
    MESSAGE_CHANGED = "message_changed"
    CONFIRMATION_REQUIRED = "confirmation_required"
    QUOTA_EXCEEDED = "quota_exceeded"
    ENTITLEMENT_CHANGED = "entitlement_changed"
    AUTHORIZATION_CHANGED = "authorization_changed"


class CollectionLifecycleStore:
    """Review-and-dispose state machine for the imported photo set.

    A photo id lives in exactly one of the active collection or the bin
    until it is permanently deleted. The identity map from photo id to
    provider handle is private to this class.
    """

    def __init__(
        self,
        provider: AssetProvider,
        entitlement: EntitlementState,
        synchronizer: AssetSynchronizer | None = None,
        free_quota: int = FREE_PHOTO_QUOTA,
        sorter: SortService | None = None,
    ) -> None:
        """Create a store.

        Args:
            provider: Asset provider used for authorization and bulk delete.
            entitlement: Injected license state deciding visibility.
            synchronizer: Batch importer (defaults to one over `provider`).
            free_quota: Photos visible to non-entitled users.
            sorter: Sorting service used for month grouping.
        """
        self._provider = provider
        self._entitlement = entitlement
        self._sync = synchronizer or AssetSynchronizer(provider)
        self._free_quota = max(0, int(free_quota))
        self._sorter = sorter or SortService()

        self._active: list[Photo] = []
        self._bin: list[Photo] = []
        self._identity: dict[PhotoId, AssetHandle] = {}
        self._pending: tuple[tuple[PhotoId, AssetHandle], ...] = ()
        self._listeners: list[Callable[[StoreEvent], None]] = []

        self.authorization_status = AuthorizationStatus.NOT_DETERMINED
        self.last_sync_status: SyncStatus | None = None
        self.is_refreshing = False
        self.deletion_in_progress = False
        self.show_deletion_confirmation = False
        self.show_upgrade_prompt = False
        self.deletion_result_message = ""
        self.last_error: str | None = None
        self._refresh_error: str | None = None

        self._was_over_quota = self.is_over_quota
        self._entitlement.subscribe(self._on_entitlement_changed)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe(self, listener: Callable[[StoreEvent], None]) -> Callable[[], None]:
        """Register `listener(event)`; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, *events: StoreEvent) -> None:
        for event in events:
            for listener in list(self._listeners):
                listener(event)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def active_photos(self) -> tuple[Photo, ...]:
        return tuple(self._active)

    @property
    def bin_photos(self) -> tuple[Photo, ...]:
        return tuple(self._bin)

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def bin_count(self) -> int:
        return len(self._bin)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_entitled(self) -> bool:
        return self._entitlement.is_entitled

    @property
    def is_over_quota(self) -> bool:
        """True when not entitled and the active collection exceeds the free quota."""
        return not self._entitlement.is_entitled and len(self._active) > self._free_quota

    def available_photos(self) -> tuple[Photo, ...]:
        """All active photos when entitled, otherwise the first `free_quota`."""
        if self._entitlement.is_entitled:
            return tuple(self._active)
        return tuple(self._active[: self._free_quota])

    def review_photos(self) -> tuple[Photo, ...]:
        """Photos for the swipe-triage feed; the feed is entitled-only."""
        if self._entitlement.is_entitled:
            return tuple(self._active)
        return ()

    def photos_by_month(self) -> list[tuple[str, list[Photo]]]:
        """Available photos grouped by capture month, newest month first."""
        return self._sorter.group_by_month(self.available_photos())

    def featured_photo(self) -> Photo | None:
        """The first available photo, or None when there is none."""
        available = self.available_photos()
        return available[0] if available else None

    def contains(self, photo_id: PhotoId) -> bool:
        """True while `photo_id` is in the active collection or the bin."""
        in_active = self._index_of(self._active, photo_id) >= 0
        return in_active or self._index_of(self._bin, photo_id) >= 0

    # ------------------------------------------------------------------
    # Authorization and refresh
    # ------------------------------------------------------------------
    async def start(self) -> AuthorizationStatus:
        """Request library access once and import photos when granted."""
        status = await self._provider.request_access()
        self.authorization_status = status
        logger.info("Library authorization: {}", status.value)
        self._emit(StoreEvent.AUTHORIZATION_CHANGED)
        if status.grants_read:
            await self.refresh()
        else:
            self._set_message(UNAUTHORIZED_MSG)
        return status

    async def refresh(self) -> SyncResult | None:
        """Replace the active collection with a fresh batch from the provider.

        Returns None without doing anything while another refresh is running.
        Bin photos keep their ids and handles; their assets are left out of
        the new active batch.
        """
        if self.is_refreshing:
            logger.info("Refresh ignored: a refresh is already in flight")
            return None

        self.is_refreshing = True
        self._active.clear()
        bin_ids = {p.id for p in self._bin}
        self._identity = {pid: h for pid, h in self._identity.items() if pid in bin_ids}
        self._emit(StoreEvent.REFRESH_STATE_CHANGED, StoreEvent.ACTIVE_CHANGED)

        try:
            result = await self._sync.synchronize()
            # The bin may have changed while the batch was loading.
            self._identity = {
                p.id: self._identity[p.id] for p in self._bin if p.id in self._identity
            }
            staged = set(self._identity.values())
            fresh = [p for p in result.photos if result.identity_map[p.id] not in staged]
            self._active = fresh
            for photo in fresh:
                self._identity[photo.id] = result.identity_map[photo.id]

            self.last_sync_status = result.status
            if result.status is SyncStatus.UNAUTHORIZED:
                self.authorization_status = self._provider.authorization_status()
                self._emit(StoreEvent.AUTHORIZATION_CHANGED)
                self._set_refresh_error(UNAUTHORIZED_MSG)
            elif result.status is SyncStatus.FAILED:
                self._set_refresh_error(f"{LOAD_FAILED_MSG}: {result.error}")
            else:
                self._set_refresh_error(None)
            logger.info(
                "Refresh finished: status={}, active={}, bin={}",
                result.status.value,
                len(self._active),
                len(self._bin),
            )
            return result
        finally:
            self.is_refreshing = False
            self._emit(StoreEvent.ACTIVE_CHANGED, StoreEvent.REFRESH_STATE_CHANGED)
            self._check_quota()

    # ------------------------------------------------------------------
    # Bin operations
    # ------------------------------------------------------------------
    def stage_for_deletion(self, photo_id: PhotoId) -> bool:
        """Move a photo from active to the bin; False if it is not active."""
        idx = self._index_of(self._active, photo_id)
        if idx < 0:
            return False
        photo = self._active.pop(idx)
        self._bin.append(photo)
        logger.info("Staged photo {} for deletion", photo_id)
        self._emit(StoreEvent.ACTIVE_CHANGED, StoreEvent.BIN_CHANGED)
        self._check_quota()
        return True

    def restore(self, photo_id: PhotoId) -> bool:
        """Move a photo from the bin to the head of active; False if not in bin."""
        return self.restore_many([photo_id]) == 1

    def restore_many(self, photo_ids: Iterable[PhotoId]) -> int:
        """Restore photos as one block at the head of active, in the order given.

        Returns the number of photos restored.
        """
        restored: list[Photo] = []
        for photo_id in photo_ids:
            idx = self._index_of(self._bin, photo_id)
            if idx < 0:
                continue
            restored.append(self._bin.pop(idx))
        if not restored:
            return 0
        self._active[0:0] = restored
        logger.info("Restored {} photos from the bin", len(restored))
        self._emit(StoreEvent.ACTIVE_CHANGED, StoreEvent.BIN_CHANGED)
        self._check_quota()
        return len(restored)

    def delete_from_bin(self, photo_id: PhotoId) -> bool:
        """Forget a bin photo without touching the provider."""
        return self.delete_many([photo_id]) == 1

    def delete_many(self, photo_ids: Iterable[PhotoId]) -> int:
        """Forget several bin photos without touching the provider."""
        targets = set(photo_ids)
        before = len(self._bin)
        self._bin = [p for p in self._bin if p.id not in targets]
        removed = before - len(self._bin)
        if removed:
            logger.info("Removed {} photos from the bin (provider untouched)", removed)
            self._emit(StoreEvent.BIN_CHANGED)
        return removed

    # ------------------------------------------------------------------
    # Permanent deletion
    # ------------------------------------------------------------------
    def confirm_permanent_deletion(self) -> ConfirmOutcome:
        """Snapshot the bin's provider handles for a later commit.

        Bin photos without a known handle are dropped from the bin.
        """
        if self.deletion_in_progress:
            logger.info("Confirm ignored: a permanent deletion is in progress")
            return ConfirmOutcome.BUSY

        resolved: list[tuple[PhotoId, AssetHandle]] = []
        unresolvable: set[PhotoId] = set()
        for photo in self._bin:
            handle = self._identity.get(photo.id)
            if handle is None:
                logger.warning("Photo {} has no asset handle; dropping it from the bin", photo.id)
                unresolvable.add(photo.id)
            else:
                resolved.append((photo.id, handle))

        if unresolvable:
            self._bin = [p for p in self._bin if p.id not in unresolvable]
            self._emit(StoreEvent.BIN_CHANGED)

        self._pending = tuple(resolved)
        if not resolved:
            self.show_deletion_confirmation = False
            self._set_message(NOTHING_TO_DELETE_MSG)
            return ConfirmOutcome.NOTHING_TO_DELETE

        self.show_deletion_confirmation = True
        self._set_message("")
        logger.info("Permanent deletion of {} photos awaiting confirmation", len(resolved))
        self._emit(StoreEvent.CONFIRMATION_REQUIRED)
        return ConfirmOutcome.CONFIRMATION_REQUIRED

    def cancel_permanent_deletion(self) -> None:
        """Discard the pending snapshot without deleting anything."""
        if self.deletion_in_progress:
            return
        self._pending = ()
        if self.show_deletion_confirmation:
            self.show_deletion_confirmation = False
            self._emit(StoreEvent.DELETION_STATE_CHANGED)

    async def commit_permanent_deletion(self) -> DeleteResult | None:
        """Delete the confirmed snapshot through the provider.

        Only photos whose handles the provider reports as deleted leave the
        bin and the identity map. The pending set is cleared either way.
        Returns None when there is nothing pending or a commit is running.
        """
        if self.deletion_in_progress:
            logger.info("Commit ignored: a permanent deletion is in progress")
            return None
        if not self._pending:
            self._set_message(NOTHING_PENDING_MSG)
            return None

        pending = self._pending
        handles = frozenset(h for _, h in pending)
        self.deletion_in_progress = True
        self.show_deletion_confirmation = False
        self.deletion_result_message = ""
        self._emit(StoreEvent.DELETION_STATE_CHANGED)

        try:
            try:
                result = await self._provider.delete(handles)
            except (AssetProviderError, OSError) as ex:
                logger.error("Provider bulk delete failed: {}", ex)
                result = DeleteResult.failure(handles, str(ex) or type(ex).__name__)
            self._apply_delete_result(pending, result)
            return result
        finally:
            self._pending = ()
            self.deletion_in_progress = False
            self._emit(StoreEvent.DELETION_STATE_CHANGED, StoreEvent.MESSAGE_CHANGED)

    def _apply_delete_result(
        self, pending: tuple[tuple[PhotoId, AssetHandle], ...], result: DeleteResult
    ) -> None:
        deleted_ids = {pid for pid, handle in pending if handle in result.deleted}
        failed_count = len(pending) - len(deleted_ids)

        if deleted_ids:
            # Photos restored after confirm are gone from the provider too.
            restored_meanwhile = any(p.id in deleted_ids for p in self._active)
            self._bin = [p for p in self._bin if p.id not in deleted_ids]
            self._active = [p for p in self._active if p.id not in deleted_ids]
            for pid in deleted_ids:
                self._identity.pop(pid, None)
            self._emit(StoreEvent.BIN_CHANGED)
            if restored_meanwhile:
                self._emit(StoreEvent.ACTIVE_CHANGED)

        if not failed_count:
            self.deletion_result_message = (
                f"Successfully deleted {len(deleted_ids)} photos permanently."
            )
            self.last_error = None
            logger.info("Permanently deleted {} photos", len(deleted_ids))
        elif not deleted_ids:
            self.deletion_result_message = f"Failed to delete photos: {result.failure_reason}"
            self.last_error = self.deletion_result_message
            logger.warning("Permanent deletion failed: {}", result.failure_reason)
        else:
            self.deletion_result_message = (
                f"Deleted {len(deleted_ids)} photos permanently; "
                f"failed to delete {failed_count}: {result.failure_reason}"
            )
            self.last_error = self.deletion_result_message
            logger.warning(
                "Permanent deletion partially failed: {} deleted, {} failed",
                len(deleted_ids),
                failed_count,
            )

    # ------------------------------------------------------------------
    # Quota
    # ------------------------------------------------------------------
    def dismiss_upgrade_prompt(self) -> None:
        self.show_upgrade_prompt = False

    def _on_entitlement_changed(self, _value: bool) -> None:
        self._emit(StoreEvent.ENTITLEMENT_CHANGED)
        self._check_quota()

    def _check_quota(self) -> None:
        """Raise the upgrade prompt when the store just went over quota."""
        over = self.is_over_quota
        if over and not self._was_over_quota:
            self.show_upgrade_prompt = True
            logger.info("Free quota of {} photos exceeded", self._free_quota)
            self._emit(StoreEvent.QUOTA_EXCEEDED)
        self._was_over_quota = over

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _set_refresh_error(self, message: str | None) -> None:
        """Publish a refresh failure, or clear the one a previous refresh left."""
        previous = self._refresh_error
        self._refresh_error = message
        self.last_error = message
        if message is not None:
            self._set_message(message)
        elif previous is not None and self.deletion_result_message == previous:
            self._set_message("")

    def _set_message(self, message: str) -> None:
        self.deletion_result_message = message
        self._emit(StoreEvent.MESSAGE_CHANGED)

    @staticmethod
    def _index_of(photos: list[Photo], photo_id: PhotoId) -> int:
        for idx, photo in enumerate(photos):
            if photo.id == photo_id:
                return idx
        return -1
