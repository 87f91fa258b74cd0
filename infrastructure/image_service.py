"""Image decoding, bounded thumbnailing, and caching utilities.

Decoding goes through Pillow; HEIC/HEIF files are readable once pillow-heif
registers its opener. Results are JPEG-encoded bytes so they can cross
thread boundaries and be handed to any UI toolkit.
"""

from __future__ import annotations

from collections import OrderedDict
import hashlib
import io
import os
from pathlib import Path

from loguru import logger
from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

register_heif_opener()

JPEG_QUALITY = 85


def _compute_cache_key(path: str, size_key: int) -> str:
    """Compute a stable cache key from path, mtime, size, and requested side."""
    try:
        st = os.stat(path)
        sig = f"{path}|{int(st.st_mtime_ns)}|{int(st.st_size)}|{int(size_key)}".encode(
            "utf-8", errors="ignore"
        )
    except OSError:
        sig = f"{path}|0|0|{int(size_key)}".encode("utf-8", errors="ignore")
    return hashlib.sha1(sig).hexdigest()


class _LRUCache:
    def __init__(self, capacity: int) -> None:
        self._cap = max(1, int(capacity or 1))
        self._data: OrderedDict[str, bytes] = OrderedDict()

    def get(self, key: str) -> bytes | None:
        """Return cached bytes for key, moving it to the MRU position."""
        item = self._data.get(key)
        if item is None:
            return None
        self._data.move_to_end(key)
        return item

    def put(self, key: str, data: bytes) -> None:
        """Insert or update `key`, evicting LRU entries when over capacity."""
        self._data[key] = data
        self._data.move_to_end(key)
        while len(self._data) > self._cap:
            self._data.popitem(last=False)

    def __len__(self) -> int:
        return len(self._data)


class ImageService:
    """Pillow-backed image loader with an in-memory LRU cache."""

    def __init__(self, settings: object | None = None) -> None:
        """Initialize the cache from settings (`thumbnail_mem_cache`)."""
        self._mem_cap = 512
        if settings is not None:
            try:
                self._mem_cap = int(settings.get("thumbnail_mem_cache", 512) or 512)
            except (ValueError, TypeError):
                self._mem_cap = 512
        self._mem_cache = _LRUCache(self._mem_cap)

    @property
    def cached_count(self) -> int:
        return len(self._mem_cache)

    def get_thumbnail_bytes(self, path: str, max_side: int) -> bytes | None:
        """Return JPEG bytes for `path` bounded by `max_side`, or None on failure."""
        key = _compute_cache_key(path, max_side)
        data = self._mem_cache.get(key)
        if data is not None:
            return data

        data = self._load_via_pillow(path, max_side)
        if data is not None:
            self._mem_cache.put(key, data)
        return data

    def _load_via_pillow(self, path: str, max_side: int) -> bytes | None:
        """Decode, orient, shrink and re-encode `path` as JPEG."""
        if not Path(path).is_file():
            logger.debug("Image source missing: {}", path)
            return None
        try:
            with Image.open(path) as im:
                try:
                    im = ImageOps.exif_transpose(im)
                except (OSError, ValueError, AttributeError):
                    pass
                if max_side and max_side > 0:
                    im.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)
                if im.mode not in ("RGB", "L"):
                    im = im.convert("RGB")
                buf = io.BytesIO()
                im.save(buf, "JPEG", quality=JPEG_QUALITY)
                return buf.getvalue()
        except (OSError, UnidentifiedImageError, ValueError) as ex:
            logger.debug("Pillow load failed for {}: {}", path, ex)
            return None
