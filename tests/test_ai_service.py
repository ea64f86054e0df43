"""Tests for batched Gemini tagging and harmonization with a fake client."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

from PIL import Image
import pytest

from core.catalog import PhotoCatalog
from core.models import Tag, TagType
from infrastructure.ai_service import GeminiTagService, labels_to_tags, top_tag_labels


def _fake_client(side_effect):
    models = SimpleNamespace(generate_content=AsyncMock(side_effect=side_effect))
    return SimpleNamespace(aio=SimpleNamespace(models=models))


def _response(payload):
    return SimpleNamespace(text=json.dumps(payload))


@pytest.fixture()
def image_photos(tmp_path, make_photo):
    photos = []
    for i in range(5):
        path = tmp_path / f"img{i}.png"
        Image.new("RGB", (32, 32), (40 * i, 80, 120)).save(path)
        photos.append(make_photo(f"p{i}", file_path=str(path)))
    return photos


class TestLabelsToTags:
    def test_dedupes_and_limits(self):
        tags = labels_to_tags(["Urban", "urban", "  ", 7, "Cobalt Haze", "Rain"], limit=2)
        assert tags == [
            Tag("urban", "Urban", TagType.AI_GENERATED),
            Tag("cobalt-haze", "Cobalt Haze", TagType.AI_GENERATED),
        ]

    def test_top_tag_labels(self, make_photo, tags):
        catalog = PhotoCatalog(
            [
                make_photo("a", tag_ids=["moody"], ai_tag_ids=["urban"]),
                make_photo("b", ai_tag_ids=["urban", "ghost"]),
            ],
            tags,
        )
        assert top_tag_labels(catalog, limit=5) == ["Urban", "Moody"]


class TestTagPhotographs:
    def test_batches_and_progress(self, image_photos):
        client = _fake_client(lambda **kwargs: _response({"tags": ["Urban", "Neon Glow"]}))
        service = GeminiTagService(client=client, batch_size=3, batch_delay=0)
        progress = []

        results = asyncio.run(
            service.tag_photographs(image_photos, lambda *args: progress.append(args))
        )

        assert progress == [(3, 5), (5, 5)]
        assert [r.photo_id for r in results] == [p.id for p in image_photos]
        assert all(r.tag_ids == ["urban", "neon-glow"] for r in results)
        assert client.aio.models.generate_content.await_count == 5

    def test_bare_list_response(self, image_photos):
        client = _fake_client(lambda **kwargs: SimpleNamespace(text='["Rain", "Crowd"]'))
        service = GeminiTagService(client=client, batch_delay=0)
        result = asyncio.run(service.generate_tags(image_photos[0]))
        assert result.tag_ids == ["rain", "crowd"]

    def test_failure_yields_empty_tags(self, image_photos):
        calls = {"n": 0}

        def respond(**kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("quota exceeded")
            return _response({"tags": ["Urban"]})

        service = GeminiTagService(client=_fake_client(respond), batch_size=5, batch_delay=0)
        results = asyncio.run(service.tag_photographs(image_photos))

        assert len(results) == 5
        assert sum(1 for r in results if not r.tag_ids) == 1
        assert sum(1 for r in results if r.tag_ids == ["urban"]) == 4

    def test_photo_without_file_is_skipped(self, make_photo):
        client = _fake_client(lambda **kwargs: _response({"tags": ["Urban"]}))
        service = GeminiTagService(client=client, batch_delay=0)
        result = asyncio.run(service.generate_tags(make_photo("mock")))
        assert result.tag_ids == []
        client.aio.models.generate_content.assert_not_awaited()


class TestHarmonize:
    def test_results_limited_to_batch(self, make_photo, tags):
        photos = [make_photo(f"p{i}", ai_tag_ids=["urban", "rain"]) for i in range(3)]
        catalog = PhotoCatalog(photos, tags)

        def respond(**kwargs):
            assert "Urban" in kwargs["contents"]
            payload = {
                "results": [
                    {"id": "p0", "tags": ["Urban", "Red"]},
                    {"id": "p1", "tags": ["Urban"]},
                    {"id": "stranger", "tags": ["Nope"]},
                ]
            }
            return _response(payload)

        service = GeminiTagService(
            client=_fake_client(respond), harmonize_batch_size=2, batch_delay=0
        )
        progress = []
        results = asyncio.run(
            service.harmonize(photos, catalog, lambda done, total: progress.append(done))
        )

        assert progress == [2, 3]
        assert [r.photo_id for r in results] == ["p0", "p1"]
        assert results[0].tag_ids == ["urban", "red"]

    def test_failed_batch_is_skipped(self, make_photo, tags):
        photos = [make_photo("p0", ai_tag_ids=["urban"])]
        client = _fake_client(RuntimeError("offline"))
        service = GeminiTagService(client=client, batch_delay=0)
        assert asyncio.run(service.harmonize(photos, PhotoCatalog(photos, tags))) == []
