"""Tests for Pillow-based ingestion and the mock catalog generator."""

from datetime import datetime
import random

from PIL import Image
import pytest

from core.models import UNKNOWN_CAMERA, UNKNOWN_LENS, Tag, TagType
from infrastructure.ingest_service import (
    IngestService,
    extract_palette,
    generate_mock_photographs,
    resolve_camera_and_lens,
)
from infrastructure.tag_repository import JsonTagRepository
from infrastructure.utils import to_epoch_millis


def _save_png(path, color, size=(64, 64)):
    Image.new("RGB", size, color).save(path)
    return path


def _save_jpeg_with_exif(path, model, taken):
    exif = Image.Exif()
    exif[272] = model
    exif[306] = taken
    Image.new("RGB", (64, 64), (30, 90, 200)).save(path, exif=exif)
    return path


@pytest.fixture()
def repo(tmp_path):
    return JsonTagRepository(tmp_path / "library")


class TestExtractPalette:
    def test_solid_color(self):
        palette = extract_palette(Image.new("RGB", (50, 50), (255, 0, 0)))
        assert palette == ["#f80808"] + ["#e4e4e7"] * 4

    def test_two_colors(self):
        image = Image.new("RGB", (200, 100), (255, 0, 0))
        image.paste((0, 0, 255), (100, 0, 200, 100))
        palette = extract_palette(image)
        assert set(palette[:2]) == {"#f80808", "#0808f8"}
        assert len(palette) == 5

    def test_white_and_black_skipped(self):
        image = Image.new("RGB", (40, 40), (255, 255, 255))
        image.paste((0, 0, 0), (0, 0, 20, 40))
        assert extract_palette(image) == ["#e4e4e7"] * 5

    def test_transparent_pixels_skipped(self):
        image = Image.new("RGBA", (40, 40), (0, 255, 0, 0))
        assert extract_palette(image) == ["#e4e4e7"] * 5


class TestResolveCameraAndLens:
    def test_fujinon_prefix_removed(self):
        exif = {"model": "X-T5\x00", "lens": "Fujifilm Fujinon XF35mmF1.4 R"}
        assert resolve_camera_and_lens(exif) == ("X-T5", "XF35mmF1.4 R")

    def test_x70_fixed_lens(self):
        exif = {"make": "FUJIFILM", "lens": "18.5 mm f/2.8"}
        assert resolve_camera_and_lens(exif) == ("X70", "18.5 mm f/2.8")

    def test_unknown(self):
        assert resolve_camera_and_lens({}) == (UNKNOWN_CAMERA, UNKNOWN_LENS)


class TestProcessFile:
    def test_png_without_exif(self, tmp_path, repo):
        path = _save_png(tmp_path / "red.png", (255, 0, 0))
        result = IngestService(repo).process_file(path, [])

        photo = result.photo
        assert photo.file_name == "red.png"
        assert photo.file_path == str(path)
        assert photo.camera_model == UNKNOWN_CAMERA
        assert photo.lens_model == UNKNOWN_LENS
        assert photo.iso == "--"
        assert photo.palette[0] == "#f80808"
        assert photo.tag_ids == [photo.inferred_season.lower()]
        assert [t.type for t in result.new_tags] == [TagType.SEASONAL]
        assert photo.ai_tag_ids is None

    def test_exif_camera_and_date(self, tmp_path, repo):
        path = _save_jpeg_with_exif(tmp_path / "shot.jpg", "X-T5", "2024:06:01 12:00:00")
        summer = Tag("summer", "Summer", TagType.SEASONAL)

        result = IngestService(repo).process_file(path, [summer])

        photo = result.photo
        assert photo.capture_timestamp == to_epoch_millis(datetime(2024, 6, 1, 12))
        assert photo.inferred_season == "Summer"
        assert photo.shoot_day_cluster_id == "2024-06-01"
        assert photo.camera_model == "X-T5"
        assert photo.tag_ids == ["summer", "x-t5"]
        assert result.new_tags == [Tag("x-t5", "X-T5", TagType.TECHNICAL)]

    def test_merges_persisted_tags(self, tmp_path, repo):
        path = _save_png(tmp_path / "red.png", (255, 0, 0))
        repo.save_tags_for_file("red.png", ["portrait"])
        repo.save_ai_tags_for_file("red.png", ["urban", "rain"], harmonization_version=1)

        photo = IngestService(repo).process_file(path, []).photo

        assert photo.tag_ids[-1] == "portrait"
        assert photo.ai_tag_ids == ["urban", "rain"]
        assert photo.harmonization_version == 1


class TestIngestDirectory:
    def test_skips_known_unsupported_and_broken(self, tmp_path, repo):
        folder = tmp_path / "photos"
        folder.mkdir()
        _save_png(folder / "new.png", (0, 128, 0))
        _save_jpeg_with_exif(folder / "older.jpg", "X100V", "2021:01:05 08:00:00")
        _save_png(folder / "known.png", (0, 0, 128))
        (folder / "notes.txt").write_text("not an image", encoding="utf-8")
        (folder / "broken.jpg").write_bytes(b"definitely not a jpeg")

        service = IngestService(repo)
        known = service.process_file(folder / "known.png", []).photo
        photos, created = service.ingest_directory(folder, [known], [])

        assert [p.file_name for p in photos] == ["older.jpg", "new.png"]
        created_ids = [t.id for t in created]
        assert "x100v" in created_ids
        assert "winter" in created_ids
        assert len(created_ids) == len(set(created_ids))


class TestMockPhotographs:
    def test_deterministic_and_sorted(self):
        seed_tags = [Tag.from_label("Street", TagType.CATEGORICAL)]
        now = to_epoch_millis(datetime(2025, 1, 1))
        first, created = generate_mock_photographs(10, seed_tags, rng=random.Random(5), now_ms=now)
        second, _ = generate_mock_photographs(10, seed_tags, rng=random.Random(5), now_ms=now)

        assert len(first) == 10
        assert [p.file_name for p in first] == [p.file_name for p in second]
        timestamps = [p.capture_timestamp for p in first]
        assert timestamps == sorted(timestamps)
        known = {t.id for t in seed_tags + created}
        assert all(set(p.tag_ids) <= known for p in first)
        assert all(len(p.palette) == 5 for p in first)
