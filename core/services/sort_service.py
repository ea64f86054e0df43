"""Sorting service for `Photograph` collections.

The service performs multi-key sorting across records, handling None values and
per-key ascending/descending ordering without mutating original values.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from core.models import Photograph


class SortService:
    """Provides sorting utilities for photograph lists."""

    def sort(
        self, photos: Iterable[Photograph], sort_keys: list[tuple[str, bool]]
    ) -> list[Photograph]:
        """Return photos ordered by the provided keys.

        Args:
            photos: Photographs to sort.
            sort_keys: List of tuples (field_name, ascending).
        """
        items = list(photos)
        if not sort_keys:
            return items

        # Stable sorts applied from the least significant key upward
        for field_name, ascending in reversed(sort_keys):
            items.sort(
                key=lambda p, f=field_name: self._key(getattr(p, f, None)),
                reverse=not ascending,
            )
        return items

    @staticmethod
    def _key(value: Any) -> tuple[int, Any]:
        if value is None:
            return (0, "")
        if isinstance(value, (int, float)):
            return (1, value)
        return (2, str(value).lower())
