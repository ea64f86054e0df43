"""Core domain models for photographs, tags, and navigation anchors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import re
from typing import Any

UNKNOWN_CAMERA = "Unknown Camera"
UNKNOWN_LENS = "Unknown Lens"
UNKNOWN_EXPOSURE = "--"

NEUTRAL_PALETTE: tuple[str, ...] = ("#e4e4e7", "#d4d4d8", "#a1a1aa", "#71717a", "#52525b")
PALETTE_SIZE = 5

_HEX_RE = re.compile(r"^#?[0-9a-fA-F]{6}$")
_TAG_ID_RE = re.compile(r"[^a-z0-9]+")


class TagType(str, Enum):
    TECHNICAL = "TECHNICAL"
    SEASONAL = "SEASONAL"
    CATEGORICAL = "CATEGORICAL"
    QUALITATIVE = "QUALITATIVE"
    AI_GENERATED = "AI_GENERATED"


class Season(str, Enum):
    SPRING = "Spring"
    SUMMER = "Summer"
    AUTUMN = "Autumn"
    WINTER = "Winter"

    @classmethod
    def from_month(cls, month: int) -> Season:
        """Northern hemisphere season for calendar `month` (1-12)."""
        if 3 <= month <= 5:
            return cls.SPRING
        if 6 <= month <= 8:
            return cls.SUMMER
        if 9 <= month <= 11:
            return cls.AUTUMN
        return cls.WINTER


class AnchorMode(str, Enum):
    NONE = "NONE"
    IMAGE = "IMAGE"
    TAG = "TAG"
    COLOR = "COLOR"
    DATE = "DATE"
    CAMERA = "CAMERA"
    LENS = "LENS"
    SEASON = "SEASON"


CLUSTER_MODES = frozenset(
    {
        AnchorMode.TAG,
        AnchorMode.COLOR,
        AnchorMode.DATE,
        AnchorMode.CAMERA,
        AnchorMode.LENS,
        AnchorMode.SEASON,
    }
)


def create_tag_id(label: str) -> str:
    """Normalize a label into a tag id (lowercase, hyphen-collapsed)."""
    return _TAG_ID_RE.sub("-", label.strip().lower())


def normalize_palette(palette: Any) -> list[str]:
    """Return exactly five hex colors, falling back to the neutral palette."""
    if not isinstance(palette, (list, tuple)):
        return list(NEUTRAL_PALETTE)
    colors: list[str] = []
    for value in palette:
        if isinstance(value, str) and _HEX_RE.match(value.strip()):
            hex_value = value.strip().lower()
            colors.append(hex_value if hex_value.startswith("#") else f"#{hex_value}")
    if not colors:
        return list(NEUTRAL_PALETTE)
    while len(colors) < PALETTE_SIZE:
        colors.append(NEUTRAL_PALETTE[0])
    return colors[:PALETTE_SIZE]


@dataclass
class Tag:
    """A tag definition shared across the catalog."""

    id: str
    label: str
    type: TagType

    @classmethod
    def from_label(cls, label: str, tag_type: TagType) -> Tag:
        return cls(id=create_tag_id(label), label=label.strip(), type=tag_type)


@dataclass
class Photograph:
    """A single ingested photograph with capture metadata and tag assignments.

    The engine never mutates a photograph; collaborators replace the tag id
    lists wholesale (see `with_tags`).
    """

    id: str
    file_name: str
    capture_timestamp: int
    inferred_season: str
    shoot_day_cluster_id: str
    camera_model: str = UNKNOWN_CAMERA
    lens_model: str = UNKNOWN_LENS
    aperture: str = UNKNOWN_EXPOSURE
    shutter_speed: str = UNKNOWN_EXPOSURE
    iso: str = UNKNOWN_EXPOSURE
    palette: list[str] = field(default_factory=lambda: list(NEUTRAL_PALETTE))
    tag_ids: list[str] = field(default_factory=list)
    ai_tag_ids: list[str] | None = None
    harmonization_version: int | None = None
    file_path: str | None = None

    def __post_init__(self) -> None:
        self.palette = normalize_palette(self.palette)

    @property
    def all_tag_ids(self) -> list[str]:
        """User tags followed by AI tags, duplicates preserved."""
        return list(self.tag_ids) + list(self.ai_tag_ids or [])

    @property
    def combined_tag_ids(self) -> set[str]:
        return set(self.tag_ids) | set(self.ai_tag_ids or [])

    def with_tags(
        self,
        tag_ids: list[str] | None = None,
        ai_tag_ids: list[str] | None = None,
        harmonization_version: int | None = None,
    ) -> Photograph:
        """Return a copy whose tag id lists are replaced where given."""
        return Photograph(
            id=self.id,
            file_name=self.file_name,
            capture_timestamp=self.capture_timestamp,
            inferred_season=self.inferred_season,
            shoot_day_cluster_id=self.shoot_day_cluster_id,
            camera_model=self.camera_model,
            lens_model=self.lens_model,
            aperture=self.aperture,
            shutter_speed=self.shutter_speed,
            iso=self.iso,
            palette=list(self.palette),
            tag_ids=list(tag_ids) if tag_ids is not None else list(self.tag_ids),
            ai_tag_ids=(
                list(ai_tag_ids)
                if ai_tag_ids is not None
                else (list(self.ai_tag_ids) if self.ai_tag_ids is not None else None)
            ),
            harmonization_version=(
                harmonization_version
                if harmonization_version is not None
                else self.harmonization_version
            ),
            file_path=self.file_path,
        )


@dataclass(frozen=True)
class Anchor:
    """The currently focused navigational entity.

    Equality considers only `mode` and `id`; `meta` carries denormalized
    display data (a Tag, a Photograph, a label).
    """

    mode: AnchorMode = AnchorMode.NONE
    id: str = ""
    meta: Any = field(default=None, compare=False, hash=False)

    @classmethod
    def none(cls) -> Anchor:
        return cls(AnchorMode.NONE, "")

    @classmethod
    def image(cls, photo_id: str, meta: Any = None) -> Anchor:
        return cls(AnchorMode.IMAGE, photo_id, meta)

    @classmethod
    def tag(cls, tag: Tag) -> Anchor:
        return cls(AnchorMode.TAG, tag.id, tag)

    @classmethod
    def color(cls, hex_color: str) -> Anchor:
        return cls(AnchorMode.COLOR, hex_color.lower(), hex_color.lower())

    @classmethod
    def date(cls, timestamp_ms: int) -> Anchor:
        return cls(AnchorMode.DATE, str(int(timestamp_ms)), timestamp_ms)

    @classmethod
    def camera(cls, model: str) -> Anchor:
        return cls(AnchorMode.CAMERA, model, model)

    @classmethod
    def lens(cls, model: str) -> Anchor:
        return cls(AnchorMode.LENS, model, model)

    @classmethod
    def season(cls, season: str) -> Anchor:
        return cls(AnchorMode.SEASON, season, season)

    @property
    def is_cluster(self) -> bool:
        return self.mode in CLUSTER_MODES


@dataclass
class ExperienceContext:
    """Summary of the visible subset consumed by presentation."""

    representative_tags: list[Tag] = field(default_factory=list)
    active_colors: list[str] = field(default_factory=list)


@dataclass
class Connection:
    """Shared attributes that explain why two photographs sit next to each other."""

    common_tags: list[Tag] = field(default_factory=list)
    color_matches: list[tuple[str, str]] = field(default_factory=list)
    technical_matches: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.common_tags or self.color_matches or self.technical_matches)
