"""Ordering and grouping helpers for `Photo` collections.

Sorting is stable so photos sharing a capture date keep their input order,
which keeps the result deterministic regardless of how it was produced.
"""

from __future__ import annotations

from collections.abc import Iterable

from core.models import Photo

MONTH_LABEL_FMT = "%B %Y"


class SortService:
    """Provides sorting utilities for `Photo` lists."""

    def newest_first(self, photos: Iterable[Photo]) -> list[Photo]:
        """Return `photos` sorted by descending capture date."""
        return sorted(photos, key=lambda p: p.date, reverse=True)

    def group_by_month(self, photos: Iterable[Photo]) -> list[tuple[str, list[Photo]]]:
        """Group photos under "Month Year" labels, newest month first.

        Photos keep their incoming order inside each group.
        """
        buckets: dict[tuple[int, int], list[Photo]] = {}
        for photo in photos:
            buckets.setdefault((photo.date.year, photo.date.month), []).append(photo)

        result: list[tuple[str, list[Photo]]] = []
        for key in sorted(buckets, reverse=True):
            items = buckets[key]
            result.append((items[0].date.strftime(MONTH_LABEL_FMT), items))
        return result
