"""Core domain models for photos and the external asset handles behind them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NewType
import uuid

PhotoId = NewType("PhotoId", uuid.UUID)


def new_photo_id() -> PhotoId:
    """Return a fresh, never-reused photo identifier."""
    return PhotoId(uuid.uuid4())


@dataclass(frozen=True)
class AssetHandle:
    """Opaque reference to an image resource owned by the asset provider."""

    local_identifier: str


@dataclass(frozen=True)
class Photo:
    """A photo imported from the provider.

    Equality and hashing use `id` only; the payload and date never change.
    """

    id: PhotoId
    image: bytes = field(repr=False, compare=False)
    date: datetime = field(compare=False)


class AuthorizationStatus(Enum):
    """Permission state reported by the asset provider."""

    NOT_DETERMINED = "notDetermined"
    AUTHORIZED = "authorized"
    LIMITED = "limited"
    DENIED = "denied"
    RESTRICTED = "restricted"

    @property
    def grants_read(self) -> bool:
        """True when the library may be enumerated."""
        return self in (AuthorizationStatus.AUTHORIZED, AuthorizationStatus.LIMITED)
