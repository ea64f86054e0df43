"""Navigation history and pairwise connection analysis.

The history is a newest-first stack of anchors. The connection analyzer
explains why two photographs visited one after another belong together:
shared tags, matched palette colors, and technical facts.
"""

from __future__ import annotations

from collections.abc import Iterator

from core.catalog import PhotoCatalog
from core.colors import color_distance_sq
from core.models import UNKNOWN_CAMERA, UNKNOWN_EXPOSURE, Anchor, AnchorMode, Connection, Photograph

COLOR_MATCH_MAX_DISTANCE = 3000
HOUR_MS = 60 * 60 * 1000


class NavigationHistory:
    """Append-only stack of anchors, newest first."""

    def __init__(self) -> None:
        self._entries: list[Anchor] = []

    def push(self, anchor: Anchor) -> bool:
        """Record `anchor` unless it repeats the current top. Returns True if added."""
        if self._entries and self._entries[0] == anchor:
            return False
        self._entries.insert(0, anchor)
        return True

    def clear(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> tuple[Anchor, ...]:
        return tuple(self._entries)

    @property
    def current(self) -> Anchor | None:
        return self._entries[0] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Anchor]:
        return iter(tuple(self._entries))

    def adjacent_pairs(self) -> list[tuple[Anchor, Anchor]]:
        """(older, newer) pairs for every consecutive step, newest step first."""
        return [
            (self._entries[i + 1], self._entries[i]) for i in range(len(self._entries) - 1)
        ]


def match_colors(palette_a: list[str], palette_b: list[str]) -> list[tuple[str, str]]:
    """Greedy nearest-neighbor pairing of A's colors onto unused B colors."""
    used: set[int] = set()
    matches: list[tuple[str, str]] = []
    for color_a in palette_a:
        best_idx = -1
        best_dist = COLOR_MATCH_MAX_DISTANCE
        for idx, color_b in enumerate(palette_b):
            if idx in used:
                continue
            dist = color_distance_sq(color_a, color_b)
            if dist < best_dist:
                best_dist = dist
                best_idx = idx
        if best_idx >= 0:
            used.add(best_idx)
            matches.append((color_a, palette_b[best_idx]))
    return matches


def technical_matches(a: Photograph, b: Photograph) -> list[str]:
    facts: list[str] = []
    if a.camera_model == b.camera_model and a.camera_model != UNKNOWN_CAMERA:
        facts.append(f"Same camera: {a.camera_model}")
    if a.iso == b.iso and a.iso not in (UNKNOWN_EXPOSURE, "", "0"):
        facts.append(f"Same ISO: {a.iso}")
    if a.inferred_season == b.inferred_season:
        facts.append(f"Same season: {a.inferred_season}")
    delta = abs(a.capture_timestamp - b.capture_timestamp)
    if delta <= HOUR_MS:
        facts.append("Captured within an hour")
    elif a.shoot_day_cluster_id == b.shoot_day_cluster_id:
        facts.append("Captured the same day")
    return facts


def analyze_connection(a: Photograph, b: Photograph, catalog: PhotoCatalog) -> Connection:
    """Shared tags, matched colors, and technical facts between `a` and `b`."""
    shared = b.combined_tag_ids
    common_ids = list(dict.fromkeys(tid for tid in a.all_tag_ids if tid in shared))
    return Connection(
        common_tags=catalog.resolve_tags(common_ids),
        color_matches=match_colors(a.palette, b.palette),
        technical_matches=technical_matches(a, b),
    )


def trail_connections(
    history: NavigationHistory, catalog: PhotoCatalog
) -> list[tuple[Anchor, Anchor, Connection]]:
    """Connections for each consecutive IMAGE -> IMAGE step still in the catalog."""
    result: list[tuple[Anchor, Anchor, Connection]] = []
    for older, newer in history.adjacent_pairs():
        if older.mode != AnchorMode.IMAGE or newer.mode != AnchorMode.IMAGE:
            continue
        photo_a = catalog.photo(older.id)
        photo_b = catalog.photo(newer.id)
        if photo_a is None or photo_b is None:
            continue
        result.append((older, newer, analyze_connection(photo_a, photo_b, catalog)))
    return result
