"""RGB color helpers shared by scoring, aggregation, and connection analysis."""

from __future__ import annotations

from collections.abc import Iterable
import math
import re

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")

# Unparseable colors are treated as light gray rather than rejected
FALLBACK_RGB: tuple[int, int, int] = (220, 220, 220)


def is_hex_color(value: object) -> bool:
    return isinstance(value, str) and _HEX_RE.match(value.strip()) is not None


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Parse `#rrggbb` (hash optional) into an RGB tuple."""
    match = _HEX_RE.match(hex_color.strip()) if isinstance(hex_color, str) else None
    if not match:
        return FALLBACK_RGB
    return (int(match.group(1), 16), int(match.group(2), 16), int(match.group(3), 16))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def color_distance_sq(hex1: str, hex2: str) -> int:
    """Squared Euclidean distance between two hex colors in RGB space."""
    r1, g1, b1 = hex_to_rgb(hex1)
    r2, g2, b2 = hex_to_rgb(hex2)
    return (r1 - r2) ** 2 + (g1 - g2) ** 2 + (b1 - b2) ** 2


def min_palette_distance(palette_a: Iterable[str], palette_b: Iterable[str]) -> float:
    """Smallest pairwise squared distance across two palettes (inf when empty)."""
    colors_b = list(palette_b)
    best = math.inf
    for c1 in palette_a:
        for c2 in colors_b:
            d = color_distance_sq(c1, c2)
            if d < best:
                best = d
    return best


def min_distance_to(palette: Iterable[str], hex_color: str) -> float:
    """Smallest squared distance from any palette entry to `hex_color`."""
    return min_palette_distance(palette, [hex_color])
