"""Shared test fixtures for the curation engine tests."""

from datetime import datetime, timezone

from loguru import logger
from PySide6.QtCore import QCoreApplication
import pytest

from core.catalog import PhotoCatalog
from core.models import Photograph, Tag, TagType
from infrastructure.utils import day_cluster_id, season_for_timestamp


def ts(year, month, day, hour=12, minute=0):
    """Epoch millis for a UTC wall-clock time."""
    return int(datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp() * 1000)


@pytest.fixture(autouse=True)
def _silence_loguru():
    logger.remove()
    yield
    logger.remove()


@pytest.fixture()
def tags():
    """A small library covering every tag type plus the sensitive tag."""
    return [
        Tag("black-and-white", "Black and White", TagType.QUALITATIVE),
        Tag("moody", "Moody", TagType.QUALITATIVE),
        Tag("portrait", "Portrait", TagType.CATEGORICAL),
        Tag("urban", "Urban", TagType.AI_GENERATED),
        Tag("melancholy", "Melancholy", TagType.AI_GENERATED),
        Tag("cinematic", "Cinematic", TagType.AI_GENERATED),
        Tag("neon", "Neon", TagType.AI_GENERATED),
        Tag("rain", "Rain", TagType.AI_GENERATED),
        Tag("crowd", "Crowd", TagType.AI_GENERATED),
        Tag("lo-fi", "Lo-Fi", TagType.AI_GENERATED),
        Tag("summer", "Summer", TagType.SEASONAL),
        Tag("x-t5", "X-T5", TagType.TECHNICAL),
        Tag("nsfw", "NSFW", TagType.CATEGORICAL),
    ]


@pytest.fixture()
def make_photo():
    """Factory building photographs with derived season and day cluster."""

    def _make(
        photo_id,
        timestamp=None,
        tag_ids=(),
        ai_tag_ids=None,
        palette=None,
        camera="Unknown Camera",
        lens="Unknown Lens",
        iso="400",
        file_name=None,
        file_path=None,
    ):
        timestamp = ts(2024, 6, 1) if timestamp is None else timestamp
        return Photograph(
            id=photo_id,
            file_name=file_name or f"{photo_id}.jpg",
            file_path=file_path,
            capture_timestamp=timestamp,
            inferred_season=season_for_timestamp(timestamp),
            shoot_day_cluster_id=day_cluster_id(timestamp),
            camera_model=camera,
            lens_model=lens,
            iso=iso,
            palette=list(palette) if palette is not None else ["#808080"] * 5,
            tag_ids=list(tag_ids),
            ai_tag_ids=list(ai_tag_ids) if ai_tag_ids is not None else None,
        )

    return _make


@pytest.fixture()
def catalog_of(tags):
    """Build a catalog from photos using the shared tag library."""

    def _catalog(*photos):
        return PhotoCatalog(photos, tags)

    return _catalog


@pytest.fixture(scope="session")
def qt_app():
    """A process-wide QCoreApplication for QObject/QTimer based view-models."""
    return QCoreApplication.instance() or QCoreApplication([])
