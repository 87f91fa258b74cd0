"""Qt-facing view-model over the collection lifecycle store.

The store and the entitlement service live on a private asyncio event loop
running in a background thread; that thread is the only one that mutates the
collections. UI calls are marshalled onto it and store events come back as
Qt signals, which Qt queues onto the receiver's thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from concurrent.futures import Future
import threading
from typing import Any
import uuid

from PySide6.QtCore import QObject, Signal
from loguru import logger

from app.viewmodels.photo_vm import PhotoVM
from core.models import PhotoId
from core.services.entitlement import EntitlementService
from core.services.lifecycle_store import CollectionLifecycleStore, StoreEvent


def photo_id_from_key(key: str) -> PhotoId:
    """Inverse of `PhotoVM.key`."""
    return PhotoId(uuid.UUID(key))


class _LoopThread:
    """Runs an asyncio event loop forever in a daemon thread."""

    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="collection-owner", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def submit(self, factory: Callable[[], Awaitable[Any]]) -> Future:
        """Schedule `factory()` on the loop; the coroutine is created there."""

        async def _runner() -> Any:
            return await factory()

        return asyncio.run_coroutine_threadsafe(_runner(), self.loop)

    def call(self, fn: Callable[..., Any], *args: Any) -> Future:
        """Run a synchronous callable on the loop thread."""

        async def _runner() -> Any:
            return fn(*args)

        return asyncio.run_coroutine_threadsafe(_runner(), self.loop)

    def stop(self, timeout: float = 2.0) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout)
        if not self._thread.is_alive():
            self.loop.close()


class MainVM(QObject):
    """Main application view-model.

    Every mutating method returns a `concurrent.futures.Future` resolving to
    the store's return value. Read accessors return immutable snapshots.
    """

    activeChanged = Signal()
    binChanged = Signal()
    busyChanged = Signal()
    messageChanged = Signal(str)
    confirmationRequired = Signal(int)
    quotaExceeded = Signal()
    entitlementChanged = Signal(bool)
    authorizationChanged = Signal(str)
    purchaseFinished = Signal(bool, str)

    def __init__(
        self,
        store: CollectionLifecycleStore,
        entitlements: EntitlementService,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._entitlements = entitlements
        self._runner = _LoopThread()
        self._unsubscribe = store.subscribe(self._on_store_event)
        self._unsubscribe_purchases = entitlements.subscribe_processing(
            lambda _processing: self.busyChanged.emit()
        )

    # Reads
    @property
    def store(self) -> CollectionLifecycleStore:
        return self._store

    def available_photos(self) -> list[PhotoVM]:
        return [PhotoVM(p) for p in self._store.available_photos()]

    def review_photos(self) -> list[PhotoVM]:
        return [PhotoVM(p) for p in self._store.review_photos()]

    def bin_photos(self) -> list[PhotoVM]:
        return [PhotoVM(p) for p in self._store.bin_photos]

    def photos_by_month(self) -> list[tuple[str, list[PhotoVM]]]:
        groups = self._store.photos_by_month()
        return [(label, [PhotoVM(p) for p in items]) for label, items in groups]

    def featured_photo(self) -> PhotoVM | None:
        photo = self._store.featured_photo()
        return PhotoVM(photo) if photo is not None else None

    @property
    def is_busy(self) -> bool:
        return (
            self._store.is_refreshing
            or self._store.deletion_in_progress
            or self._entitlements.is_processing
        )

    # Library lifecycle
    def start(self) -> Future:
        return self._runner.submit(self._store.start)

    def refresh(self) -> Future:
        return self._runner.submit(self._store.refresh)

    def stage(self, key: str) -> Future:
        return self._runner.call(self._store.stage_for_deletion, photo_id_from_key(key))

    def restore(self, keys: Iterable[str]) -> Future:
        ids = [photo_id_from_key(k) for k in keys]
        return self._runner.call(self._store.restore_many, ids)

    def remove_from_bin(self, keys: Iterable[str]) -> Future:
        ids = [photo_id_from_key(k) for k in keys]
        return self._runner.call(self._store.delete_many, ids)

    def confirm_deletion(self) -> Future:
        return self._runner.call(self._store.confirm_permanent_deletion)

    def commit_deletion(self) -> Future:
        return self._runner.submit(self._store.commit_permanent_deletion)

    def cancel_deletion(self) -> Future:
        return self._runner.call(self._store.cancel_permanent_deletion)

    def dismiss_upgrade_prompt(self) -> Future:
        return self._runner.call(self._store.dismiss_upgrade_prompt)

    # Purchases
    def upgrade(self) -> Future:
        return self._purchase(self._entitlements.upgrade)

    def restore_purchases(self) -> Future:
        return self._purchase(self._entitlements.restore)

    def reset_purchases(self) -> Future:
        return self._purchase(self._entitlements.reset)

    def _purchase(self, operation: Callable[[], Awaitable[bool]]) -> Future:
        async def _run() -> bool:
            ok = await operation()
            self.purchaseFinished.emit(ok, self._entitlements.error or "")
            return ok

        return self._runner.submit(_run)

    def shutdown(self) -> None:
        """Detach from the store and stop the owner loop."""
        self._unsubscribe()
        self._unsubscribe_purchases()
        self._runner.stop()
        logger.info("View-model shut down")

    def _on_store_event(self, event: StoreEvent) -> None:
        if event is StoreEvent.ACTIVE_CHANGED:
            self.activeChanged.emit()
        elif event is StoreEvent.BIN_CHANGED:
            self.binChanged.emit()
        elif event in (StoreEvent.REFRESH_STATE_CHANGED, StoreEvent.DELETION_STATE_CHANGED):
            self.busyChanged.emit()
        elif event is StoreEvent.MESSAGE_CHANGED:
            self.messageChanged.emit(self._store.deletion_result_message)
        elif event is StoreEvent.CONFIRMATION_REQUIRED:
            self.confirmationRequired.emit(self._store.pending_count)
        elif event is StoreEvent.QUOTA_EXCEEDED:
            self.quotaExceeded.emit()
        elif event is StoreEvent.ENTITLEMENT_CHANGED:
            self.entitlementChanged.emit(self._store.is_entitled)
        elif event is StoreEvent.AUTHORIZATION_CHANGED:
            self.authorizationChanged.emit(self._store.authorization_status.value)
