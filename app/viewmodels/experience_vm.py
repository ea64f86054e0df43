"""ViewModel for the exploratory Experience view.

Owns the catalog snapshot, the active anchor, the sensitive-content filter,
the navigation history, and the layout simulator. Discrete events (anchor
change, filter toggle, catalog update) trigger a synchronous recompute; a
`QTimer` steps the simulator once per frame.
"""

from __future__ import annotations

from PySide6.QtCore import QObject, QTimer, Signal
from loguru import logger

from core.catalog import PhotoCatalog
from core.models import Anchor, AnchorMode, Connection, ExperienceContext, Photograph, Tag
from core.services.history_service import NavigationHistory, trail_connections
from core.services.layout_service import LayoutSimulator, NodeFrame
from core.services.scoring_service import ScoringOptions, ScoringService
from core.services.visibility_service import Selection, VisibilityService

DEFAULT_FRAME_INTERVAL_MS = 16


class ExperienceVM(QObject):
    """Coordinates recompute and per-frame simulation for the Experience view."""

    contextChanged = Signal(object)  # ExperienceContext
    anchorChanged = Signal(object)  # Anchor
    historyChanged = Signal(object)  # tuple[Anchor, ...]
    frameReady = Signal(object)  # list[NodeFrame]

    def __init__(
        self,
        simulator: LayoutSimulator | None = None,
        visibility: VisibilityService | None = None,
        frame_interval_ms: int = DEFAULT_FRAME_INTERVAL_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._simulator = simulator or LayoutSimulator()
        self._visibility = visibility or VisibilityService(ScoringService(ScoringOptions()))
        self._catalog = PhotoCatalog()
        self._anchor = Anchor.none()
        self._history = NavigationHistory()
        self._history.push(self._anchor)
        self._selection = Selection(anchor=self._anchor)
        self._timer = QTimer(self)
        self._timer.setInterval(max(1, int(frame_interval_ms)))
        self._timer.timeout.connect(self.tick)

    # State accessors
    @property
    def catalog(self) -> PhotoCatalog:
        return self._catalog

    @property
    def anchor(self) -> Anchor:
        return self._anchor

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def context(self) -> ExperienceContext:
        return self._selection.context

    @property
    def history(self) -> tuple[Anchor, ...]:
        return self._history.entries

    @property
    def simulator(self) -> LayoutSimulator:
        return self._simulator

    @property
    def sensitive_filter_active(self) -> bool:
        return self._visibility.scorer.options.exclude_sensitive

    # Frame loop
    def start(self) -> None:
        if not self._timer.isActive():
            self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()

    def tick(self) -> list[NodeFrame]:
        """Advance the simulation one frame and publish node states."""
        self._simulator.step()
        frames = self._simulator.frame()
        self.frameReady.emit(frames)
        return frames

    def resize(self, width: float, height: float) -> None:
        self._simulator.set_viewport(width, height)

    def hold_photo(self, photo_id: str, x: float, y: float) -> None:
        """Hold a node at (x, y), e.g. while it is being dragged."""
        self._simulator.pin(photo_id, x, y)

    def release_photo(self, photo_id: str) -> None:
        self._simulator.unpin(photo_id)

    # Events
    def set_catalog(self, photos: list[Photograph], tags: list[Tag]) -> None:
        """Replace the catalog snapshot; nodes for retained photos keep their state."""
        self._catalog = PhotoCatalog(photos, tags)
        self._simulator.sync_catalog(p.id for p in self._catalog)
        self._recompute()

    def set_sensitive_filter(self, active: bool) -> None:
        options = self._visibility.scorer.options
        if options.exclude_sensitive == bool(active):
            return
        options.exclude_sensitive = bool(active)
        logger.info("Sensitive-content filter {}", "enabled" if active else "disabled")
        self._recompute()

    def set_anchor(self, anchor: Anchor) -> None:
        """Make `anchor` current, record it in history, and recompute."""
        self._anchor = anchor
        if self._history.push(anchor):
            self.historyChanged.emit(self._history.entries)
        logger.info("Anchor -> {} {}", anchor.mode.value, anchor.id)
        self.anchorChanged.emit(anchor)
        self._recompute()

    def select_photo(self, photo_id: str) -> None:
        photo = self._catalog.photo(photo_id)
        self.set_anchor(Anchor.image(photo_id, photo))

    def select_tag(self, tag: Tag) -> None:
        self.set_anchor(Anchor.tag(tag))

    def select_color(self, hex_color: str) -> None:
        self.set_anchor(Anchor.color(hex_color))

    def select_date(self, timestamp_ms: int) -> None:
        self.set_anchor(Anchor.date(timestamp_ms))

    def select_camera(self, model: str) -> None:
        self.set_anchor(Anchor.camera(model))

    def select_lens(self, model: str) -> None:
        self.set_anchor(Anchor.lens(model))

    def select_season(self, season: str) -> None:
        self.set_anchor(Anchor.season(season))

    def go_home(self) -> None:
        self.set_anchor(Anchor.none())

    def reset(self) -> None:
        """Full reset: back to home and truncate history."""
        self._history.clear()
        self._anchor = Anchor.none()
        self._history.push(self._anchor)
        self.historyChanged.emit(self._history.entries)
        self.anchorChanged.emit(self._anchor)
        self._recompute()

    # Narration
    def trail(self) -> list[tuple[Anchor, Anchor, Connection]]:
        """Connections between consecutive photo anchors, newest step first."""
        return trail_connections(self._history, self._catalog)

    def _recompute(self) -> None:
        self._selection = self._visibility.select(self._anchor, self._catalog)
        self._simulator.apply_selection(self._selection)
        if self._anchor.mode != AnchorMode.NONE and not self._selection.visible_ids:
            logger.warning("Anchor {} {} matches nothing", self._anchor.mode.value, self._anchor.id)
        self.contextChanged.emit(self._selection.context)
