"""Tests for the Experience view-model."""

import random

import pytest

from app.viewmodels.experience_vm import ExperienceVM
from core.models import Anchor, AnchorMode, Tag, TagType
from core.services.layout_service import LayoutSimulator, Viewport


@pytest.fixture()
def experience(qt_app, make_photo, tags):
    vm = ExperienceVM(simulator=LayoutSimulator(Viewport(1280, 800), rng=random.Random(1)))
    photos = [
        make_photo("a", ai_tag_ids=["urban", "rain"], camera="X-T5", iso="200"),
        make_photo("b", ai_tag_ids=["urban"], camera="X-T5", iso="200"),
        make_photo("c", tag_ids=["nsfw"]),
    ]
    vm.set_catalog(photos, tags)
    return vm


class TestInitialState:
    def test_starts_home(self, qt_app):
        vm = ExperienceVM()
        assert vm.anchor == Anchor.none()
        assert vm.history == (Anchor.none(),)
        assert not vm.sensitive_filter_active

    def test_catalog_creates_nodes(self, experience):
        assert set(experience.simulator.nodes) == {"a", "b", "c"}
        assert experience.selection.visible_ids == ["a", "b", "c"]


class TestAnchoring:
    def test_select_photo(self, experience):
        history_events = []
        experience.historyChanged.connect(history_events.append)

        experience.select_photo("a")

        assert experience.anchor.mode == AnchorMode.IMAGE
        assert experience.anchor.meta.id == "a"
        assert experience.history[0] == Anchor.image("a")
        assert len(history_events) == 1
        assert experience.context.active_colors == experience.catalog.photo("a").palette
        assert experience.simulator.mode == AnchorMode.IMAGE

    def test_reselecting_same_anchor_keeps_history(self, experience):
        experience.select_photo("a")
        experience.select_photo("a")
        assert experience.history == (Anchor.image("a"), Anchor.none())

    def test_cluster_anchors(self, experience):
        contexts = []
        experience.contextChanged.connect(contexts.append)

        experience.select_camera("X-T5")
        assert experience.selection.visible_ids == ["a", "b"]
        experience.select_tag(Tag("urban", "Urban", TagType.AI_GENERATED))
        assert [t.id for t in experience.context.representative_tags] == ["rain"]
        experience.go_home()

        assert len(contexts) == 3
        assert [a.mode for a in experience.history[:3]] == [
            AnchorMode.NONE,
            AnchorMode.TAG,
            AnchorMode.CAMERA,
        ]

    def test_reset(self, experience):
        experience.select_photo("a")
        experience.select_season("Summer")
        experience.reset()
        assert experience.history == (Anchor.none(),)
        assert experience.anchor == Anchor.none()

    def test_trail(self, experience):
        experience.select_photo("a")
        experience.select_photo("b")
        trail = experience.trail()
        assert len(trail) == 1
        older, newer, connection = trail[0]
        assert (older.id, newer.id) == ("a", "b")
        assert [t.id for t in connection.common_tags] == ["urban"]
        assert "Same camera: X-T5" in connection.technical_matches


class TestSensitiveFilter:
    def test_toggle_recomputes(self, experience):
        experience.set_sensitive_filter(True)
        assert experience.sensitive_filter_active
        assert experience.selection.visible_ids == ["a", "b"]

        experience.set_sensitive_filter(False)
        assert experience.selection.visible_ids == ["a", "b", "c"]

    def test_same_state_is_noop(self, experience):
        contexts = []
        experience.contextChanged.connect(contexts.append)
        experience.set_sensitive_filter(False)
        assert contexts == []


class TestFrameLoop:
    def test_tick_emits_frames(self, experience):
        emitted = []
        experience.frameReady.connect(emitted.append)
        frames = experience.tick()
        assert [f.id for f in frames] == ["a", "b", "c"]
        assert emitted == [frames]

    def test_catalog_update_keeps_nodes(self, experience, make_photo, tags):
        experience.select_photo("a")
        for _ in range(5):
            experience.tick()
        node = experience.simulator.node("a")

        photos = list(experience.catalog.photos) + [make_photo("d")]
        experience.set_catalog(photos, tags)

        assert experience.simulator.node("a") is node
        assert experience.simulator.node("d") is not None

    def test_start_stop(self, experience):
        experience.start()
        assert experience.is_running
        experience.stop()
        assert not experience.is_running

    def test_resize(self, experience):
        experience.resize(600, 900)
        assert experience.simulator.viewport.is_narrow

    def test_held_photo_stays_put_until_released(self, experience):
        experience.hold_photo("a", 100.0, 50.0)
        for _ in range(10):
            experience.tick()
        node = experience.simulator.node("a")
        assert (node.x, node.y) == (100.0, 50.0)

        experience.release_photo("a")
        for _ in range(5):
            experience.tick()
        assert node.pinned is None
        assert (node.x, node.y) != (100.0, 50.0)
