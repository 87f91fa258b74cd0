"""Lightweight view model wrapper around `Photo`."""

from __future__ import annotations

from dataclasses import dataclass

from core.models import Photo, PhotoId
from infrastructure.utils import format_display_date


@dataclass
class PhotoVM:
    """Expose convenient properties for bindings/templates."""

    photo: Photo

    @property
    def photo_id(self) -> PhotoId:
        return self.photo.id

    @property
    def key(self) -> str:
        """String form of the id, for storing in widget item data."""
        return str(self.photo.id)

    @property
    def display_date(self) -> str:
        """Capture date formatted for captions."""
        return format_display_date(self.photo.date)

    @property
    def image_bytes(self) -> bytes:
        return self.photo.image
