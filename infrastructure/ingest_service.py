"""Image ingestion: EXIF metadata, palette extraction, and automatic tags.

Produces `Photograph` records from files on disk using Pillow. Reading is
best-effort: missing or broken EXIF yields the "unknown" sentinels and the
current time, and an unreadable pixel buffer yields the neutral palette.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
import random
import re
from typing import Any

from loguru import logger
from PIL import Image, UnidentifiedImageError

from core.colors import color_distance_sq, rgb_to_hex
from core.models import (
    NEUTRAL_PALETTE,
    PALETTE_SIZE,
    UNKNOWN_CAMERA,
    UNKNOWN_LENS,
    Photograph,
    Tag,
    TagType,
)
from core.services.interfaces import IngestResult, ITagRepository
from infrastructure.utils import (
    day_cluster_id,
    format_aperture,
    format_iso,
    format_shutter_speed,
    generate_photo_id,
    parse_exif_datetime,
    season_for_timestamp,
    to_epoch_millis,
)

SUPPORTED_SUFFIXES = (".jpg", ".jpeg", ".png", ".webp")

# EXIF tag numbers
EXIF_IFD = 0x8769
TAG_MAKE = 271
TAG_MODEL = 272
TAG_DATETIME = 306
TAG_DATETIME_ORIGINAL = 36867
TAG_DATETIME_DIGITIZED = 36868
TAG_EXPOSURE_TIME = 33434
TAG_F_NUMBER = 33437
TAG_ISO = 34855
TAG_LENS_MODEL = 42036

PALETTE_MAX_DIM = 100
PALETTE_BIN = 16
PALETTE_THRESHOLDS = (3600, 2500, 900, 100, 0)

_FUJINON_PREFIX = re.compile(r"^Fujifilm\s+Fujinon\s+", re.IGNORECASE)
X70_LENS = "18.5 mm f/2.8"


def extract_palette(image: Image.Image) -> list[str]:
    """Five distinct dominant colors from a downscaled copy of `image`.

    Pixels are binned into 16-level buckets, skipping transparent,
    near-white, and near-black pixels. Candidates are taken by frequency under
    a relaxing distinctness threshold and padded with neutral gray.
    """
    thumb = image.convert("RGBA")
    thumb.thumbnail((PALETTE_MAX_DIM, PALETTE_MAX_DIM))
    data = thumb.tobytes()

    counts: Counter[tuple[int, int, int]] = Counter()
    half = PALETTE_BIN // 2
    for i in range(0, len(data), 4):
        r, g, b, a = data[i], data[i + 1], data[i + 2], data[i + 3]
        if a < 128:
            continue
        if r > 250 and g > 250 and b > 250:
            continue
        if r < 15 and g < 15 and b < 15:
            continue
        counts[
            (
                (r // PALETTE_BIN) * PALETTE_BIN + half,
                (g // PALETTE_BIN) * PALETTE_BIN + half,
                (b // PALETTE_BIN) * PALETTE_BIN + half,
            )
        ] += 1

    candidates = [rgb_to_hex(*rgb) for rgb, _ in counts.most_common()]
    palette: list[str] = []
    for threshold in PALETTE_THRESHOLDS:
        for candidate in candidates:
            if len(palette) >= PALETTE_SIZE:
                break
            if candidate in palette:
                continue
            if all(color_distance_sq(candidate, chosen) >= threshold for chosen in palette):
                palette.append(candidate)
        if len(palette) >= PALETTE_SIZE:
            break
    while len(palette) < PALETTE_SIZE:
        palette.append(NEUTRAL_PALETTE[0])
    return palette


def read_exif(image: Image.Image) -> dict[str, Any]:
    """Collect the capture fields used by the catalog; empty dict when absent."""
    try:
        exif = image.getexif()
    except (AttributeError, OSError, ValueError) as ex:
        logger.debug("EXIF read failed: {}", ex)
        return {}
    if not exif:
        return {}
    try:
        sub = exif.get_ifd(EXIF_IFD)
    except (KeyError, OSError, ValueError):
        sub = {}
    return {
        "make": exif.get(TAG_MAKE),
        "model": exif.get(TAG_MODEL),
        "datetime": sub.get(TAG_DATETIME_ORIGINAL)
        or sub.get(TAG_DATETIME_DIGITIZED)
        or exif.get(TAG_DATETIME),
        "lens": sub.get(TAG_LENS_MODEL),
        "iso": sub.get(TAG_ISO),
        "exposure": sub.get(TAG_EXPOSURE_TIME),
        "f_number": sub.get(TAG_F_NUMBER),
    }


def _clean(value: Any) -> str:
    return str(value).strip().rstrip("\x00").strip() if value else ""


def resolve_camera_and_lens(exif: dict[str, Any]) -> tuple[str, str]:
    camera = _clean(exif.get("model")) or _clean(exif.get("make")) or UNKNOWN_CAMERA
    lens = _clean(exif.get("lens")) or UNKNOWN_LENS
    if lens != UNKNOWN_LENS:
        lens = _FUJINON_PREFIX.sub("", lens).strip()
    # The X70 reports only its fixed lens
    if lens == X70_LENS:
        camera = "X70"
    return camera, lens


class IngestService:
    """Builds photographs from image files and merges persisted tags."""

    def __init__(self, repo: ITagRepository) -> None:
        self._repo = repo

    def process_file(self, path: str | Path, existing_tags: list[Tag]) -> IngestResult:
        """Read one image file into a `Photograph`.

        Raises:
            OSError / UnidentifiedImageError: when the file cannot be opened.
        """
        path = Path(path)
        with Image.open(path) as im:
            exif = read_exif(im)
            palette = extract_palette(im)

        captured = parse_exif_datetime(exif.get("datetime")) or datetime.now(tz=timezone.utc)
        timestamp = to_epoch_millis(captured)
        season = season_for_timestamp(timestamp)
        camera, lens = resolve_camera_and_lens(exif)

        known = {t.id for t in existing_tags}
        new_tags: list[Tag] = []

        def ensure_tag(label: str, tag_type: TagType) -> str:
            tag = Tag.from_label(label, tag_type)
            if tag.id not in known:
                known.add(tag.id)
                new_tags.append(tag)
            return tag.id

        tag_ids = [ensure_tag(season, TagType.SEASONAL)]
        if camera != UNKNOWN_CAMERA:
            tag_ids.append(ensure_tag(camera, TagType.TECHNICAL))
        if lens != UNKNOWN_LENS:
            tag_ids.append(ensure_tag(lens, TagType.TECHNICAL))
        for saved in self._repo.get_saved_tags_for_file(path.name):
            if saved not in tag_ids:
                tag_ids.append(saved)
        ai_ids, version = self._repo.get_ai_tags_for_file(path.name)

        photo = Photograph(
            id=generate_photo_id(),
            file_name=path.name,
            file_path=str(path),
            capture_timestamp=timestamp,
            inferred_season=season,
            shoot_day_cluster_id=day_cluster_id(timestamp),
            camera_model=camera,
            lens_model=lens,
            aperture=format_aperture(exif.get("f_number")),
            shutter_speed=format_shutter_speed(exif.get("exposure")),
            iso=format_iso(exif.get("iso")),
            palette=palette,
            tag_ids=tag_ids,
            ai_tag_ids=ai_ids or None,
            harmonization_version=version,
        )
        return IngestResult(photo=photo, new_tags=new_tags)

    def ingest_directory(
        self, directory: str | Path, existing: list[Photograph], existing_tags: list[Tag]
    ) -> tuple[list[Photograph], list[Tag]]:
        """Ingest supported files not already in `existing` (by file name).

        Returns (new photographs sorted by capture time, new tag definitions).
        Files that fail to open are logged and skipped.
        """
        known_names = {p.file_name for p in existing}
        tags = list(existing_tags)
        photos: list[Photograph] = []
        created: list[Tag] = []
        for path in sorted(Path(directory).expanduser().iterdir()):
            if path.suffix.lower() not in SUPPORTED_SUFFIXES or path.name in known_names:
                continue
            try:
                result = self.process_file(path, tags)
            except (OSError, UnidentifiedImageError, ValueError) as ex:
                logger.error("Failed to ingest {}: {}", path, ex)
                continue
            photos.append(result.photo)
            tags.extend(result.new_tags)
            created.extend(result.new_tags)
        photos.sort(key=lambda p: p.capture_timestamp)
        logger.info("Ingested {} photographs from {}", len(photos), directory)
        return photos, created


# --- Mock catalog ----------------------------------------------------------

MOCK_CAMERAS = ("Fujifilm X-T5", "Fujifilm GFX 100S", "Fujifilm X-Pro3")
MOCK_LENSES = ("XF 35mm f/1.4", "GF 80mm f/1.7", "XF 23mm f/2")
TWO_YEARS_MS = 63_072_000_000


def generate_mock_photographs(
    count: int,
    available_tags: list[Tag],
    rng: random.Random | None = None,
    now_ms: int | None = None,
) -> tuple[list[Photograph], list[Tag]]:
    """Random photographs spread over the last two years, sorted by capture time.

    Returns the photographs and any season/camera tag definitions they need
    that are not in `available_tags`.
    """
    rng = rng or random.Random()
    now = now_ms if now_ms is not None else to_epoch_millis(datetime.now(tz=timezone.utc))
    known = {t.id: t for t in available_tags}
    created: list[Tag] = []
    choosable = list(available_tags)

    def ensure(label: str, tag_type: TagType) -> str:
        tag = Tag.from_label(label, tag_type)
        if tag.id not in known:
            known[tag.id] = tag
            created.append(tag)
        return tag.id

    photos: list[Photograph] = []
    for i in range(count):
        timestamp = now - rng.randrange(TWO_YEARS_MS)
        season = season_for_timestamp(timestamp)
        camera = rng.choice(MOCK_CAMERAS)
        tag_ids = [ensure(season, TagType.SEASONAL), ensure(camera, TagType.TECHNICAL)]
        if choosable:
            for _ in range(rng.randint(1, 3)):
                tag_id = rng.choice(choosable).id
                if tag_id not in tag_ids:
                    tag_ids.append(tag_id)
        photos.append(
            Photograph(
                id=generate_photo_id(),
                file_name=f"mock_img_{i}_{rng.randrange(1000)}.jpg",
                capture_timestamp=timestamp,
                inferred_season=season,
                shoot_day_cluster_id=day_cluster_id(timestamp),
                camera_model=camera,
                lens_model=rng.choice(MOCK_LENSES),
                aperture=f"f/{rng.uniform(1.4, 11.4):.1f}",
                shutter_speed=f"1/{rng.randint(1, 1000)}",
                iso=str(rng.randint(0, 9) * 100 + 100),
                palette=[f"#{rng.randrange(0x1000000):06x}" for _ in range(PALETTE_SIZE)],
                tag_ids=tag_ids,
            )
        )
    photos.sort(key=lambda p: p.capture_timestamp)
    return photos, created
