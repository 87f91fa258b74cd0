"""Bulk import of photos from an asset provider.

The synchronizer enumerates the provider once, materializes every asset
concurrently at a bounded resolution, waits for all of them, and returns a
newest-first batch together with the identity map needed for deletion.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import datetime

from loguru import logger

from core.models import AssetHandle, Photo, PhotoId, new_photo_id
from core.services.interfaces import (
    AssetProvider,
    AssetProviderError,
    AssetRecord,
    AuthorizationRevokedError,
    SyncResult,
)
from core.services.sort_service import SortService

DEFAULT_TARGET_SIZE = 800


class AssetSynchronizer:
    """Produces fully materialized, date-sorted photo batches."""

    def __init__(
        self,
        provider: AssetProvider,
        target_size: int = DEFAULT_TARGET_SIZE,
        max_concurrency: int = 0,
        sorter: SortService | None = None,
        id_factory: Callable[[], PhotoId] = new_photo_id,
    ) -> None:
        """Create a synchronizer.

        Args:
            provider: Asset provider to read from.
            target_size: Longest side, in pixels, of materialized images.
            max_concurrency: Cap on in-flight materializations; 0 means no cap.
            sorter: Sorting service (defaults to `SortService`).
            id_factory: Callable returning fresh photo ids.
        """
        self._provider = provider
        self._target_size = int(target_size)
        self._max_concurrency = max(0, int(max_concurrency or 0))
        self._sorter = sorter or SortService()
        self._new_id = id_factory

    @property
    def provider(self) -> AssetProvider:
        return self._provider

    async def synchronize(self) -> SyncResult:
        """Fetch and materialize the provider's full image set.

        Returns an empty result flagged UNAUTHORIZED when access is not
        granted (before or after the fetch) and FAILED when enumeration
        raises. Individual materialization failures are dropped.
        """
        if not self._provider.authorization_status().grants_read:
            logger.info("Synchronize skipped: library access not granted")
            return SyncResult.unauthorized()

        try:
            records = await asyncio.to_thread(self._provider.fetch_all)
        except AuthorizationRevokedError as ex:
            logger.warning("Library access revoked during enumeration: {}", ex)
            return SyncResult.unauthorized()
        except (AssetProviderError, OSError) as ex:
            logger.error("Asset enumeration failed: {}", ex)
            return SyncResult.failed(str(ex))

        unique = self._dedupe(records)
        logger.info("Enumerated {} assets; materializing at {}px", len(unique), self._target_size)

        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
        materialized = await asyncio.gather(
            *(self._materialize(record, semaphore) for record in unique)
        )

        if not self._provider.authorization_status().grants_read:
            logger.warning("Library access revoked while materializing; discarding batch")
            return SyncResult.unauthorized()

        identity: dict[PhotoId, AssetHandle] = {}
        photos: list[Photo] = []
        for record, image in zip(unique, materialized):
            if image is None:
                continue
            photo = Photo(
                id=self._new_id(),
                image=image,
                date=record.creation_date or datetime.now(),
            )
            photos.append(photo)
            identity[photo.id] = record.handle

        ordered = tuple(self._sorter.newest_first(photos))
        dropped = len(unique) - len(ordered)
        if dropped:
            logger.info("{} assets failed to materialize and were skipped", dropped)
        return SyncResult(photos=ordered, identity_map=identity)

    async def _materialize(
        self, record: AssetRecord, semaphore: asyncio.Semaphore | None
    ) -> bytes | None:
        """Resolve one asset's image; None on any failure."""
        try:
            if semaphore is None:
                return await self._provider.resolve_image(record.handle, self._target_size)
            async with semaphore:
                return await self._provider.resolve_image(record.handle, self._target_size)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.debug("Materialize failed for {}: {}", record.handle.local_identifier, ex)
            return None

    @staticmethod
    def _dedupe(records: Sequence[AssetRecord]) -> list[AssetRecord]:
        seen: set[AssetHandle] = set()
        unique: list[AssetRecord] = []
        for record in records:
            if record.handle in seen:
                continue
            seen.add(record.handle)
            unique.append(record)
        return unique
