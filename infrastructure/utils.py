"""Utilities for capture-date extraction (EXIF and filesystem) and formatting.

This module centralizes date parsing so the rest of the app can depend on a
single behavior. It uses best-effort parsing and will not raise on errors;
callers should expect `None` when data is not available.
"""

from __future__ import annotations

from datetime import datetime
import os
from typing import Any

from loguru import logger
from PIL import Image, UnidentifiedImageError

DISPLAY_DATE_FMT = "%B %d, %Y"

# EXIF tags: 36867 DateTimeOriginal (Exif IFD), 306 DateTime (IFD0)
_EXIF_IFD_POINTER = 0x8769
_TAG_DATETIME_ORIGINAL = 36867
_TAG_DATETIME = 306


def get_filesystem_creation_datetime(path: str) -> datetime | None:
    """Best-effort file creation time.

    On Windows, `os.path.getctime` returns creation time. On other systems it may
    return ctime (metadata change). We accept that as a best-effort value.
    """
    try:
        ts = os.path.getctime(path)
        return datetime.fromtimestamp(ts)
    except (OSError, ValueError) as ex:
        logger.debug("getctime failed for {}: {}", path, ex)
        return None


def parse_exif_datetime(value: Any) -> datetime | None:
    """Parse an EXIF timestamp ("YYYY:MM:DD HH:MM:SS" or ISO-like)."""
    if not value:
        return None
    val_str = str(value).strip().rstrip("\x00")
    try:
        if len(val_str) >= 19 and val_str[4] == ":" and val_str[7] == ":":
            return datetime.strptime(val_str[:19], "%Y:%m:%d %H:%M:%S")
        return datetime.fromisoformat(val_str.replace("/", "-"))
    except (ValueError, TypeError):
        return None


def get_exif_datetime_original(path: str) -> datetime | None:
    """Extract EXIF DateTimeOriginal (or DateTime) via Pillow, or None."""
    try:
        with Image.open(path) as im:
            exif = im.getexif()
            if not exif:
                return None
            val = exif.get_ifd(_EXIF_IFD_POINTER).get(_TAG_DATETIME_ORIGINAL)
            val = val or exif.get(_TAG_DATETIME_ORIGINAL) or exif.get(_TAG_DATETIME)
            return parse_exif_datetime(val)
    except (OSError, UnidentifiedImageError, ValueError, TypeError) as ex:
        logger.debug("EXIF read failed for {}: {}", path, ex)
        return None


def get_capture_datetime(path: str) -> datetime | None:
    """Capture date from EXIF, falling back to the filesystem timestamp."""
    return get_exif_datetime_original(path) or get_filesystem_creation_datetime(path)


def format_display_date(dt: datetime | None) -> str:
    """Format a date for display; empty string when None."""
    try:
        return dt.strftime(DISPLAY_DATE_FMT) if dt else ""
    except (ValueError, AttributeError):
        return ""
