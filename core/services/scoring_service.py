"""Relevance scoring of photographs against the active anchor.

Each anchor mode has its own strategy function; `ScoringService.score`
applies the sensitive-content filter first and then dispatches on the
anchor mode. All strategies are pure functions of the catalog.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from core.catalog import PhotoCatalog
from core.colors import is_hex_color, min_distance_to, min_palette_distance
from core.models import UNKNOWN_CAMERA, UNKNOWN_LENS, Anchor, AnchorMode, Photograph, TagType

ANCHOR_SCORE = 1_000_000
FILTERED_SCORE = -1_000_000
DEFAULT_SENSITIVE_TAG_ID = "nsfw"

DAY_MS = 24 * 60 * 60 * 1000

MONOCHROME_KEYWORDS: tuple[str, ...] = (
    "b&w",
    "black and white",
    "monochrome",
    "grayscale",
    "noir",
    "silver gelatin",
)

TAG_TYPE_WEIGHTS: dict[TagType, int] = {
    TagType.AI_GENERATED: 20,
    TagType.QUALITATIVE: 25,
    TagType.CATEGORICAL: 20,
    TagType.TECHNICAL: 5,
}
OTHER_TAG_WEIGHT = 2
MEANINGFUL_TAG_TYPES = frozenset({TagType.AI_GENERATED, TagType.QUALITATIVE, TagType.CATEGORICAL})
HIGH_CORRELATION_MATCHES = 3

MATCH_SCORE = 100
COLOR_MATCH_THRESHOLD = 1500
DATE_WINDOW_MS = 30 * DAY_MS


@dataclass
class ScoringOptions:
    """Filter state read on every recompute."""

    exclude_sensitive: bool = False
    sensitive_tag_id: str = DEFAULT_SENSITIVE_TAG_ID


def is_monochrome(photo: Photograph, catalog: PhotoCatalog) -> bool:
    """True when any tag label on `photo` names a black-and-white process."""
    for label in catalog.tag_labels(photo):
        if any(keyword in label for keyword in MONOCHROME_KEYWORDS):
            return True
    return False


def is_sensitive(photo: Photograph, catalog: PhotoCatalog, sensitive_tag_id: str) -> bool:
    """True when `photo` carries the sensitive tag by id or by label."""
    if sensitive_tag_id in photo.combined_tag_ids:
        return True
    keys = {sensitive_tag_id.lower()}
    definition = catalog.tag(sensitive_tag_id)
    if definition is not None:
        keys.add(definition.label.lower())
    return any(label in keys for label in catalog.tag_labels(photo))


def temporal_score(anchor: Photograph, candidate: Photograph) -> int:
    delta = abs(anchor.capture_timestamp - candidate.capture_timestamp)
    score = 0
    if delta <= DAY_MS:
        score += 500
    elif delta <= 3 * DAY_MS:
        score += 100
    if anchor.inferred_season == candidate.inferred_season:
        score += 20
    return score


def thematic_score(
    anchor: Photograph, candidate: Photograph, catalog: PhotoCatalog
) -> tuple[int, int]:
    """Return (score, meaningful match count) over shared tag ids."""
    shared = anchor.combined_tag_ids & candidate.combined_tag_ids
    score = 0
    meaningful = 0
    # Sorted so the iteration order never depends on set hashing
    for tag_id in sorted(shared):
        tag = catalog.tag(tag_id)
        if tag is None:
            continue
        score += TAG_TYPE_WEIGHTS.get(tag.type, OTHER_TAG_WEIGHT)
        if tag.type in MEANINGFUL_TAG_TYPES:
            meaningful += 1
    return score, meaningful


def visual_score(
    anchor: Photograph,
    candidate: Photograph,
    anchor_mono: bool,
    candidate_mono: bool,
    same_day: bool,
    high_correlation: bool,
) -> int:
    """Cross-modality adjustment between a monochrome/color anchor and candidate."""
    if anchor_mono and candidate_mono:
        return 200
    if anchor_mono or candidate_mono:
        if same_day:
            return 150
        if high_correlation:
            return 50
        return -1000 if anchor_mono else -500
    if same_day or high_correlation:
        return 50
    distance = min_palette_distance(anchor.palette, candidate.palette)
    if distance < 1500:
        return 200
    if distance < 4000:
        return 100
    if distance < 8000:
        return 20
    return -150


def technical_score(anchor: Photograph, candidate: Photograph) -> int:
    score = 0
    if anchor.camera_model == candidate.camera_model and anchor.camera_model != UNKNOWN_CAMERA:
        score += 10
    if anchor.lens_model == candidate.lens_model and anchor.lens_model != UNKNOWN_LENS:
        score += 10
    return score


def score_pair(anchor: Photograph, candidate: Photograph, catalog: PhotoCatalog) -> int:
    """Combined relevance of `candidate` to the anchor photograph."""
    same_day = abs(anchor.capture_timestamp - candidate.capture_timestamp) <= DAY_MS
    thematic, meaningful = thematic_score(anchor, candidate, catalog)
    return (
        temporal_score(anchor, candidate)
        + thematic
        + visual_score(
            anchor,
            candidate,
            is_monochrome(anchor, catalog),
            is_monochrome(candidate, catalog),
            same_day,
            meaningful >= HIGH_CORRELATION_MATCHES,
        )
        + technical_score(anchor, candidate)
    )


# --- Per-mode strategies -------------------------------------------------

ScoreStrategy = Callable[[Anchor, list[Photograph], PhotoCatalog], dict[str, int]]


def _score_none(anchor: Anchor, photos: list[Photograph], catalog: PhotoCatalog) -> dict[str, int]:
    return {p.id: 0 for p in photos}


def _score_image(anchor: Anchor, photos: list[Photograph], catalog: PhotoCatalog) -> dict[str, int]:
    anchor_photo = catalog.photo(anchor.id)
    if anchor_photo is None:
        return {p.id: 0 for p in photos}
    scores: dict[str, int] = {}
    for photo in photos:
        if photo.id == anchor_photo.id:
            scores[photo.id] = ANCHOR_SCORE
        else:
            scores[photo.id] = score_pair(anchor_photo, photo, catalog)
    return scores


def _score_tag(anchor: Anchor, photos: list[Photograph], catalog: PhotoCatalog) -> dict[str, int]:
    return {p.id: MATCH_SCORE if anchor.id in p.combined_tag_ids else 0 for p in photos}


def _score_color(anchor: Anchor, photos: list[Photograph], catalog: PhotoCatalog) -> dict[str, int]:
    if not is_hex_color(anchor.id):
        return {p.id: 0 for p in photos}
    return {
        p.id: MATCH_SCORE if min_distance_to(p.palette, anchor.id) < COLOR_MATCH_THRESHOLD else 0
        for p in photos
    }


def _score_date(anchor: Anchor, photos: list[Photograph], catalog: PhotoCatalog) -> dict[str, int]:
    try:
        center = int(float(anchor.id))
    except (TypeError, ValueError):
        return {p.id: 0 for p in photos}
    scores: dict[str, int] = {}
    for photo in photos:
        delta = abs(photo.capture_timestamp - center)
        if delta > DATE_WINDOW_MS:
            scores[photo.id] = 0
        else:
            scores[photo.id] = int(round(MATCH_SCORE - 50 * delta / DATE_WINDOW_MS))
    return scores


def _field_strategy(attribute: str) -> ScoreStrategy:
    def _score(anchor: Anchor, photos: list[Photograph], catalog: PhotoCatalog) -> dict[str, int]:
        return {p.id: MATCH_SCORE if getattr(p, attribute) == anchor.id else 0 for p in photos}

    return _score


SCORE_STRATEGIES: dict[AnchorMode, ScoreStrategy] = {
    AnchorMode.NONE: _score_none,
    AnchorMode.IMAGE: _score_image,
    AnchorMode.TAG: _score_tag,
    AnchorMode.COLOR: _score_color,
    AnchorMode.DATE: _score_date,
    AnchorMode.CAMERA: _field_strategy("camera_model"),
    AnchorMode.LENS: _field_strategy("lens_model"),
    AnchorMode.SEASON: _field_strategy("inferred_season"),
}


class ScoringService:
    """Computes an integer relevance score for every photograph."""

    def __init__(self, options: ScoringOptions | None = None) -> None:
        self.options = options or ScoringOptions()

    def filtered_ids(self, catalog: PhotoCatalog) -> set[str]:
        """Ids hidden by the sensitive-content filter (empty when inactive)."""
        if not self.options.exclude_sensitive:
            return set()
        tag_id = self.options.sensitive_tag_id
        return {p.id for p in catalog if is_sensitive(p, catalog, tag_id)}

    def score(self, anchor: Anchor, catalog: PhotoCatalog) -> dict[str, int]:
        """Return {photo_id: score} for every photograph in `catalog`."""
        filtered = self.filtered_ids(catalog)
        eligible = [p for p in catalog if p.id not in filtered]
        strategy = SCORE_STRATEGIES[anchor.mode]
        scores = strategy(anchor, eligible, catalog)
        for photo_id in filtered:
            scores[photo_id] = FILTERED_SCORE
        # Catalog order for deterministic downstream iteration
        return {p.id: scores[p.id] for p in catalog}
