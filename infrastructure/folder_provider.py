"""Asset provider backed by a directory tree of image files.

Asset handles carry the file path relative to the library root. Listing and
decoding run synchronously; the async methods hop onto worker threads so the
event loop owning the photo collections is never blocked.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from loguru import logger

from core.models import AssetHandle, AuthorizationStatus
from core.services.interfaces import (
    AssetProviderError,
    AssetRecord,
    AuthorizationRevokedError,
    DeleteResult,
)
from infrastructure.delete_service import DeleteService
from infrastructure.image_service import ImageService
from infrastructure.utils import get_capture_datetime

DEFAULT_EXTENSIONS = (".jpg", ".jpeg", ".png", ".heic", ".heif", ".webp", ".tif", ".tiff", ".bmp")


class FolderAssetProvider:
    """Treats every image file under `root` as one asset."""

    def __init__(
        self,
        root: str | Path,
        image_service: ImageService | None = None,
        delete_service: DeleteService | None = None,
        extensions: tuple[str, ...] | list[str] | None = None,
    ) -> None:
        self._root = Path(root)
        self._images = image_service or ImageService()
        self._deleter = delete_service or DeleteService()
        exts = extensions or DEFAULT_EXTENSIONS
        self._extensions = {e.lower() if e.startswith(".") else f".{e.lower()}" for e in exts}
        self._status = AuthorizationStatus.NOT_DETERMINED

    @property
    def root(self) -> Path:
        return self._root

    # Authorization
    async def request_access(self) -> AuthorizationStatus:
        self._status = await asyncio.to_thread(self._probe_access)
        logger.info("Library {} access: {}", self._root, self._status.value)
        return self._status

    def authorization_status(self) -> AuthorizationStatus:
        if self._status.grants_read and not os.access(self._root, os.R_OK):
            self._status = AuthorizationStatus.DENIED
        return self._status

    def _probe_access(self) -> AuthorizationStatus:
        if not self._root.is_dir() or not os.access(self._root, os.R_OK | os.X_OK):
            return AuthorizationStatus.DENIED
        if not os.access(self._root, os.W_OK):
            return AuthorizationStatus.LIMITED
        return AuthorizationStatus.AUTHORIZED

    # Enumeration
    def fetch_all(self) -> list[AssetRecord]:
        """List image files under the root, skipping hidden entries."""
        if not self.authorization_status().grants_read:
            raise AuthorizationRevokedError(f"No read access to {self._root}")
        records: list[AssetRecord] = []
        try:
            for dirpath, dirnames, filenames in os.walk(self._root, onerror=_raise_walk_error):
                dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
                for name in sorted(filenames):
                    if name.startswith(".") or Path(name).suffix.lower() not in self._extensions:
                        continue
                    full = Path(dirpath) / name
                    rel = full.relative_to(self._root).as_posix()
                    records.append(AssetRecord(AssetHandle(rel), get_capture_datetime(str(full))))
        except OSError as ex:
            raise AssetProviderError(f"Cannot list {self._root}: {ex}") from ex
        return records

    # Materialization
    async def resolve_image(self, handle: AssetHandle, target_size: int) -> bytes | None:
        path = self._resolve_path(handle)
        return await asyncio.to_thread(self._images.get_thumbnail_bytes, str(path), target_size)

    # Deletion
    async def delete(self, handles: frozenset[AssetHandle]) -> DeleteResult:
        """Move the files behind `handles` to the trash, reporting per-handle outcomes."""
        if not self.authorization_status().grants_read:
            raise AuthorizationRevokedError(f"No access to {self._root}")
        by_path: dict[str, AssetHandle] = {}
        failed: list[tuple[AssetHandle, str]] = []
        for handle in handles:
            try:
                by_path[str(self._resolve_path(handle))] = handle
            except AssetProviderError as ex:
                failed.append((handle, str(ex)))

        report = await asyncio.to_thread(self._deleter.execute_delete, sorted(by_path))
        deleted = frozenset(by_path[p] for p in report.success_paths)
        failed.extend((by_path[p], reason) for p, reason in report.failed)
        error = None
        if failed and not deleted:
            error = failed[0][1]
        return DeleteResult(deleted=deleted, failed=failed, error=error, log_path=report.log_path)

    def _resolve_path(self, handle: AssetHandle) -> Path:
        path = (self._root / handle.local_identifier).resolve()
        root = self._root.resolve()
        if path != root and root not in path.parents:
            raise AssetProviderError(f"Asset outside library: {handle.local_identifier}")
        return path


def _raise_walk_error(ex: OSError) -> None:
    raise ex
