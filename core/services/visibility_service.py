"""Visibility selection and context aggregation.

Turns relevance scores into the visible subset for the current anchor and
derives the summary context (representative tags, active colors) shown
alongside the graph. The service is deterministic for identical inputs.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from core.catalog import PhotoCatalog
from core.colors import is_hex_color
from core.models import Anchor, AnchorMode, ExperienceContext, Photograph, Tag, TagType
from core.services.scoring_service import FILTERED_SCORE, ScoringService

MAX_IMAGE_NEIGHBORS = 12
IMAGE_CONTEXT_TAGS = 6
CLUSTER_CONTEXT_TAGS = 5
CONTEXT_COLORS = 5


@dataclass
class Selection:
    """Result of one recompute.

    Attributes:
        anchor: Anchor the selection was computed for.
        scores: Relevance score per photo id (catalog order).
        visible_ids: Visible photo ids in catalog order.
        context: Aggregated context for presentation.
    """

    anchor: Anchor
    scores: dict[str, int] = field(default_factory=dict)
    visible_ids: list[str] = field(default_factory=list)
    context: ExperienceContext = field(default_factory=ExperienceContext)

    def visible_set(self) -> set[str]:
        return set(self.visible_ids)


def top_ai_tags(
    photos: Iterable[Photograph],
    catalog: PhotoCatalog,
    count: int,
    exclude_ids: set[str] | None = None,
    exclude_labels: set[str] | None = None,
) -> list[Tag]:
    """Most frequent AI-generated tags by occurrence across user + AI lists."""
    exclude_ids = exclude_ids or set()
    exclude_labels = {label.lower() for label in (exclude_labels or set())}
    counts: Counter[str] = Counter()
    for photo in photos:
        for tag_id in photo.all_tag_ids:
            if tag_id in exclude_ids:
                continue
            tag = catalog.tag(tag_id)
            if tag is None or tag.type != TagType.AI_GENERATED:
                continue
            if tag.label.lower() in exclude_labels:
                continue
            counts[tag_id] += 1
    return catalog.resolve_tags(tag_id for tag_id, _ in counts.most_common(count))


def dominant_colors(
    photos: Iterable[Photograph], count: int, exclude_color: str | None = None
) -> list[str]:
    """Most frequent distinct palette colors across `photos`."""
    excluded = exclude_color.lower() if exclude_color else None
    counts: Counter[str] = Counter()
    for photo in photos:
        for color in photo.palette:
            if color.lower() == excluded:
                continue
            counts[color.lower()] += 1
    return [color for color, _ in counts.most_common(count)]


# --- Per-mode strategies -------------------------------------------------

VisibilityStrategy = Callable[
    [Anchor, PhotoCatalog, dict[str, int], str], tuple[list[str], ExperienceContext]
]


def _visible_none(
    anchor: Anchor, catalog: PhotoCatalog, scores: dict[str, int], sensitive_tag_id: str
) -> tuple[list[str], ExperienceContext]:
    visible = [pid for pid, score in scores.items() if score != FILTERED_SCORE]
    return visible, ExperienceContext()


def _visible_image(
    anchor: Anchor, catalog: PhotoCatalog, scores: dict[str, int], sensitive_tag_id: str
) -> tuple[list[str], ExperienceContext]:
    anchor_photo = catalog.photo(anchor.id)
    if anchor_photo is None or scores.get(anchor_photo.id) == FILTERED_SCORE:
        return [], ExperienceContext()

    candidates = [
        (pid, score)
        for pid, score in scores.items()
        if pid != anchor_photo.id and score != FILTERED_SCORE
    ]
    # sorted() is stable, so equal scores keep catalog order
    ranked = sorted(candidates, key=lambda item: item[1], reverse=True)
    positive = sum(1 for _, score in ranked if score > 0)
    neighbor_ids = {pid for pid, _ in ranked[: min(MAX_IMAGE_NEIGHBORS, positive)]}

    visible = [pid for pid in scores if pid == anchor_photo.id or pid in neighbor_ids]
    sensitive = catalog.tag(sensitive_tag_id)
    exclude_labels = {sensitive.label if sensitive else sensitive_tag_id}
    context = ExperienceContext(
        representative_tags=top_ai_tags(
            (catalog.photo(pid) for pid in visible),
            catalog,
            IMAGE_CONTEXT_TAGS,
            exclude_labels=exclude_labels,
        ),
        active_colors=list(anchor_photo.palette),
    )
    return visible, context


def _positive(scores: dict[str, int]) -> list[str]:
    return [pid for pid, score in scores.items() if score > 0]


def _visible_tag(
    anchor: Anchor, catalog: PhotoCatalog, scores: dict[str, int], sensitive_tag_id: str
) -> tuple[list[str], ExperienceContext]:
    visible = _positive(scores)
    photos = [catalog.photo(pid) for pid in visible]
    context = ExperienceContext(
        representative_tags=top_ai_tags(
            photos, catalog, CLUSTER_CONTEXT_TAGS, exclude_ids={anchor.id}
        ),
    )
    return visible, context


def _visible_color(
    anchor: Anchor, catalog: PhotoCatalog, scores: dict[str, int], sensitive_tag_id: str
) -> tuple[list[str], ExperienceContext]:
    visible = _positive(scores)
    if not is_hex_color(anchor.id):
        return visible, ExperienceContext()
    photos = [catalog.photo(pid) for pid in visible]
    adjacent = dominant_colors(photos, CONTEXT_COLORS, exclude_color=anchor.id)
    context = ExperienceContext(active_colors=([anchor.id.lower()] + adjacent)[:CONTEXT_COLORS])
    return visible, context


def _visible_cluster(
    anchor: Anchor, catalog: PhotoCatalog, scores: dict[str, int], sensitive_tag_id: str
) -> tuple[list[str], ExperienceContext]:
    visible = _positive(scores)
    photos = [catalog.photo(pid) for pid in visible]
    context = ExperienceContext(
        representative_tags=top_ai_tags(photos, catalog, CLUSTER_CONTEXT_TAGS),
        active_colors=dominant_colors(photos, CONTEXT_COLORS),
    )
    return visible, context


VISIBILITY_STRATEGIES: dict[AnchorMode, VisibilityStrategy] = {
    AnchorMode.NONE: _visible_none,
    AnchorMode.IMAGE: _visible_image,
    AnchorMode.TAG: _visible_tag,
    AnchorMode.COLOR: _visible_color,
    AnchorMode.DATE: _visible_cluster,
    AnchorMode.CAMERA: _visible_cluster,
    AnchorMode.LENS: _visible_cluster,
    AnchorMode.SEASON: _visible_cluster,
}


class VisibilityService:
    """Scores the catalog and selects the visible subset for an anchor."""

    def __init__(self, scorer: ScoringService | None = None) -> None:
        self._scorer = scorer or ScoringService()

    @property
    def scorer(self) -> ScoringService:
        return self._scorer

    def select(self, anchor: Anchor, catalog: PhotoCatalog) -> Selection:
        """Recompute scores, visibility, and context for `anchor`."""
        scores = self._scorer.score(anchor, catalog)
        strategy = VISIBILITY_STRATEGIES[anchor.mode]
        visible, context = strategy(
            anchor, catalog, scores, self._scorer.options.sensitive_tag_id
        )
        return Selection(anchor=anchor, scores=scores, visible_ids=visible, context=context)
