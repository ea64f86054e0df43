"""Tests for the JSON tag repository."""

import json

from core.models import Tag, TagType
from infrastructure.tag_repository import JsonTagRepository


class TestDefinitions:
    def test_add_and_reload(self, tmp_path):
        repo = JsonTagRepository(tmp_path)
        added = repo.add_tag_definitions(
            [
                Tag("urban", "Urban", TagType.AI_GENERATED),
                Tag("moody", "Moody", TagType.QUALITATIVE),
            ]
        )
        assert [t.id for t in added] == ["urban", "moody"]

        reloaded = JsonTagRepository(tmp_path)
        assert reloaded.get_tag_definitions() == added

    def test_duplicates_not_added(self, tmp_path):
        repo = JsonTagRepository(tmp_path)
        repo.add_tag_definitions([Tag("urban", "Urban", TagType.AI_GENERATED)])
        again = repo.add_tag_definitions(
            [Tag("urban", "URBAN", TagType.CATEGORICAL), Tag("rain", "Rain", TagType.AI_GENERATED)]
        )
        assert [t.id for t in again] == ["rain"]
        assert [t.label for t in repo.get_tag_definitions()] == ["Urban", "Rain"]

    def test_malformed_file_loads_empty(self, tmp_path):
        resources = tmp_path / "resources"
        resources.mkdir()
        (resources / "definitions.json").write_text("{not json", encoding="utf-8")
        repo = JsonTagRepository(tmp_path)
        assert repo.get_tag_definitions() == []

    def test_malformed_entries_skipped(self, tmp_path):
        resources = tmp_path / "resources"
        resources.mkdir()
        payload = [
            {"id": "urban", "label": "Urban", "type": "AI_GENERATED"},
            {"id": "bad", "label": "Bad", "type": "NOT_A_TYPE"},
            {"label": "No id"},
            "junk",
        ]
        (resources / "definitions.json").write_text(json.dumps(payload), encoding="utf-8")
        repo = JsonTagRepository(tmp_path)
        assert [t.id for t in repo.get_tag_definitions()] == ["urban"]


class TestAssignments:
    def test_user_tags_written_through(self, tmp_path):
        repo = JsonTagRepository(tmp_path)
        repo.save_tags_for_file("a.jpg", ["urban", "moody", "urban"])

        on_disk = json.loads((tmp_path / "resources" / "tags.json").read_text(encoding="utf-8"))
        assert on_disk == {"a.jpg": ["urban", "moody"]}
        assert JsonTagRepository(tmp_path).get_saved_tags_for_file("a.jpg") == ["urban", "moody"]

    def test_unknown_file_has_no_tags(self, tmp_path):
        repo = JsonTagRepository(tmp_path)
        assert repo.get_saved_tags_for_file("missing.jpg") == []
        assert repo.get_ai_tags_for_file("missing.jpg") == ([], None)

    def test_ai_tags_with_version(self, tmp_path):
        repo = JsonTagRepository(tmp_path)
        repo.save_ai_tags_for_file("a.jpg", ["rain", "neon"], harmonization_version=1)
        repo.save_ai_tags_for_file("b.jpg", ["crowd"])

        reloaded = JsonTagRepository(tmp_path)
        assert reloaded.get_ai_tags_for_file("a.jpg") == (["rain", "neon"], 1)
        assert reloaded.get_ai_tags_for_file("b.jpg") == (["crowd"], None)

    def test_clear(self, tmp_path):
        repo = JsonTagRepository(tmp_path)
        repo.add_tag_definitions([Tag("urban", "Urban", TagType.AI_GENERATED)])
        repo.save_tags_for_file("a.jpg", ["urban"])
        repo.clear()

        reloaded = JsonTagRepository(tmp_path)
        assert reloaded.get_tag_definitions() == []
        assert reloaded.get_saved_tags_for_file("a.jpg") == []
