"""Force-driven spatial layout for the Experience view.

`LayoutSimulator` owns one `SimulationNode` per photograph, keyed by photo
id, and is stepped once per animation frame. A recompute only
re-parameterizes it (`apply_selection`); nodes are never recreated while
their photograph stays in the catalog, so a new anchor simply bends the
forces acting on nodes that are already moving.

Each step:
    1. per-mode targets and spring forces (home grid, focus orbit, cluster grid)
    2. ambient oscillation for free-floating nodes
    3. repulsion and collision between co-visible nodes (not on the home grid)
    4. integration: damping, position update, boundary clamp, scale/opacity easing
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import math
import random
import time

from core.models import AnchorMode, CLUSTER_MODES
from core.services.visibility_service import Selection

VELOCITY_DAMPING = 0.9
FADE_OUT_LERP = 0.35
FADE_IN_LERP = 0.1

NARROW_VIEWPORT_PX = 768

# Home grid
HOME_CELL = 180
HOME_CELL_NARROW = 120
HOME_MARGIN = 60
HOME_SPRING = 0.15
HOME_SCALE = 0.4
HOME_OPACITY = 0.9

# Focus mode
FOCAL_Y_RATIO = 0.35
GRAVITY_OFFSET_RATIO = 0.15
HERO_SPRING = 0.12
HERO_DAMPING = 0.8
NEIGHBOR_GRAVITY = 0.005
SWIRL_RATE = 0.002
HIGH_RELEVANCE = 40
NEIGHBOR_SCALE_HIGH = 0.6
NEIGHBOR_SCALE_LOW = 0.45
NARROW_NEIGHBOR_FACTOR = 0.75
NARROW_HERO_FACTOR = 0.7
BOUNDARY_RATIO = 0.9
BOUNDARY_REENTRY = 0.95
BOUNDARY_VELOCITY_DAMPING = 0.1
CARD_WIDTH = 192
CARD_HEIGHT = 288

# Cluster grid
CLUSTER_CELL = 220
CLUSTER_CELL_NARROW = 150
CLUSTER_SPRING = 0.1
CLUSTER_SCALE = 0.85
CLUSTER_SCALE_NARROW = 0.6

# Pairwise forces
CHARGE_ALPHA = 0.1
CHARGE_CUTOFF = 600
HERO_CHARGE = -1500
NEIGHBOR_CHARGE = -200
CLUSTER_CHARGE = -30
NEIGHBOR_RADIUS = 65
CLUSTER_RADIUS = 30
COLLIDE_STRENGTH = 0.8

# Ambient drift
FLOAT_SPEED = 0.5
FLOAT_AMPLITUDE = 0.05


@dataclass
class Viewport:
    width: float = 1280.0
    height: float = 800.0

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2

    @property
    def is_narrow(self) -> bool:
        return self.width < NARROW_VIEWPORT_PX


@dataclass
class SimulationNode:
    """Persistent physical state of one photograph."""

    id: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    current_scale: float = 0.0
    target_scale: float = 0.0
    current_opacity: float = 0.0
    target_opacity: float = 0.0
    relevance_score: int = 0
    is_visible: bool = False
    grid_sort_key: float = 0.0
    phase: float = 0.0
    pinned: tuple[float, float] | None = None


@dataclass
class NodeFrame:
    """Per-frame render state for one node."""

    id: str
    x: float
    y: float
    scale: float
    opacity: float


def grid_dimensions(count: int, columns: int) -> tuple[int, int]:
    """Return (columns, rows) for `count` items laid out in `columns`."""
    if count <= 0:
        return max(1, columns), 0
    columns = max(1, min(columns, count))
    return columns, math.ceil(count / columns)


def grid_targets(
    count: int, columns: int, cell: float, center: tuple[float, float]
) -> list[tuple[float, float]]:
    """Cell centers for `count` items on a grid centered on `center`."""
    columns, rows = grid_dimensions(count, columns)
    grid_w = (columns - 1) * cell
    grid_h = (rows - 1) * cell
    cx, cy = center
    targets: list[tuple[float, float]] = []
    for idx in range(count):
        col = idx % columns
        row = idx // columns
        targets.append((cx + col * cell - grid_w / 2, cy + row * cell - grid_h / 2))
    return targets


def home_columns(viewport: Viewport) -> int:
    cell = HOME_CELL_NARROW if viewport.is_narrow else HOME_CELL
    return max(1, int((viewport.width - 2 * HOME_MARGIN) // cell))


def cluster_columns(count: int, viewport: Viewport) -> int:
    cell = CLUSTER_CELL_NARROW if viewport.is_narrow else CLUSTER_CELL
    return min(max(1, math.ceil(math.sqrt(count))), max(1, int(viewport.width // cell)))


def hero_scale(viewport: Viewport) -> float:
    scale = min(max(viewport.height * 0.6 / CARD_HEIGHT, 1.2), 1.8)
    return scale * NARROW_HERO_FACTOR if viewport.is_narrow else scale


def _spring(node: SimulationNode, tx: float, ty: float, k: float) -> None:
    node.vx += (tx - node.x) * k
    node.vy += (ty - node.y) * k


def _ease(current: float, target: float, fading_out: bool) -> float:
    factor = FADE_OUT_LERP if fading_out else FADE_IN_LERP
    return current + (target - current) * factor


class LayoutSimulator:
    """Continuously stepped layout over an arena of nodes keyed by photo id."""

    def __init__(self, viewport: Viewport | None = None, rng: random.Random | None = None) -> None:
        self.viewport = viewport or Viewport()
        self._rng = rng or random.Random()
        self._nodes: dict[str, SimulationNode] = {}
        self._mode = AnchorMode.NONE
        self._anchor_id: str | None = None
        self._visible_order: list[str] = []
        self._layouts: dict[AnchorMode, Callable[[list[SimulationNode], float], None]] = {
            AnchorMode.NONE: self._layout_home,
            AnchorMode.IMAGE: self._layout_focus,
        }
        for mode in CLUSTER_MODES:
            self._layouts[mode] = self._layout_cluster

    # Public API
    @property
    def nodes(self) -> dict[str, SimulationNode]:
        return self._nodes

    @property
    def mode(self) -> AnchorMode:
        return self._mode

    def node(self, photo_id: str) -> SimulationNode | None:
        return self._nodes.get(photo_id)

    def set_viewport(self, width: float, height: float) -> None:
        self.viewport = Viewport(float(width), float(height))

    def sync_catalog(self, photo_ids: Iterable[str]) -> None:
        """Merge the catalog ids into the node arena.

        Retained ids keep their full state; new ids start at the viewport
        center with zero scale and opacity; removed ids are dropped.
        """
        wanted = list(dict.fromkeys(photo_ids))
        cx, cy = self.viewport.center
        merged: dict[str, SimulationNode] = {}
        for photo_id in wanted:
            existing = self._nodes.get(photo_id)
            if existing is not None:
                merged[photo_id] = existing
                continue
            merged[photo_id] = SimulationNode(
                id=photo_id,
                x=cx,
                y=cy,
                grid_sort_key=self._rng.random(),
                phase=self._rng.random() * 2 * math.pi,
            )
        self._nodes = merged
        self._visible_order = [nid for nid in self._visible_order if nid in merged]

    def apply_selection(self, selection: Selection) -> None:
        """Re-target nodes for a new recompute result without resetting them."""
        self._mode = selection.anchor.mode
        self._anchor_id = selection.anchor.id if self._mode == AnchorMode.IMAGE else None
        visible = selection.visible_set()
        for node in self._nodes.values():
            node.relevance_score = selection.scores.get(node.id, 0)
            node.is_visible = node.id in visible
        self._visible_order = [nid for nid in selection.visible_ids if nid in self._nodes]

    def pin(self, photo_id: str, x: float, y: float) -> None:
        node = self._nodes.get(photo_id)
        if node is not None:
            node.pinned = (x, y)

    def unpin(self, photo_id: str) -> None:
        node = self._nodes.get(photo_id)
        if node is not None:
            node.pinned = None

    def step(self, now: float | None = None) -> None:
        """Advance the simulation by one frame."""
        t = time.monotonic() if now is None else now
        visible = [self._nodes[nid] for nid in self._visible_order if self._nodes[nid].is_visible]

        for node in self._nodes.values():
            if not node.is_visible:
                node.target_scale = 0.0
                node.target_opacity = 0.0

        self._layouts[self._mode](visible, t)

        if self._mode != AnchorMode.NONE:
            self._apply_pairwise(visible)

        self._integrate()

    def frame(self) -> list[NodeFrame]:
        return [
            NodeFrame(n.id, n.x, n.y, n.current_scale, n.current_opacity)
            for n in self._nodes.values()
        ]

    # Mode layouts
    def _layout_home(self, visible: list[SimulationNode], t: float) -> None:
        ordered = sorted(visible, key=lambda n: n.grid_sort_key)
        cell = HOME_CELL_NARROW if self.viewport.is_narrow else HOME_CELL
        columns = home_columns(self.viewport)
        targets = grid_targets(len(ordered), columns, cell, self.viewport.center)
        for node, (tx, ty) in zip(ordered, targets):
            _spring(node, tx, ty, HOME_SPRING)
            node.target_scale = HOME_SCALE
            node.target_opacity = HOME_OPACITY

    def _focal_point(self) -> tuple[float, float]:
        return self.viewport.width / 2, self.viewport.height * FOCAL_Y_RATIO

    def _gravity_point(self) -> tuple[float, float]:
        fx, fy = self._focal_point()
        return fx, fy + self.viewport.height * GRAVITY_OFFSET_RATIO

    def _layout_focus(self, visible: list[SimulationNode], t: float) -> None:
        fx, fy = self._focal_point()
        gx, gy = self._gravity_point()
        hero = hero_scale(self.viewport)
        tier_factor = NARROW_NEIGHBOR_FACTOR if self.viewport.is_narrow else 1.0
        for node in visible:
            if node.id == self._anchor_id:
                _spring(node, fx, fy, HERO_SPRING)
                node.vx *= HERO_DAMPING
                node.vy *= HERO_DAMPING
                node.target_scale = hero
                node.target_opacity = 1.0
                continue
            _spring(node, gx, gy, NEIGHBOR_GRAVITY)
            dx = node.x - gx
            dy = node.y - gy
            node.vx += -dy * SWIRL_RATE
            node.vy += dx * SWIRL_RATE
            self._ambient(node, t)
            high = node.relevance_score > HIGH_RELEVANCE
            tier = NEIGHBOR_SCALE_HIGH if high else NEIGHBOR_SCALE_LOW
            node.target_scale = tier * tier_factor
            node.target_opacity = 1.0

    def _layout_cluster(self, visible: list[SimulationNode], t: float) -> None:
        narrow = self.viewport.is_narrow
        cell = CLUSTER_CELL_NARROW if narrow else CLUSTER_CELL
        columns = cluster_columns(len(visible), self.viewport)
        targets = grid_targets(len(visible), columns, cell, self.viewport.center)
        for node, (tx, ty) in zip(visible, targets):
            _spring(node, tx, ty, CLUSTER_SPRING)
            node.target_scale = CLUSTER_SCALE_NARROW if narrow else CLUSTER_SCALE
            node.target_opacity = 1.0

    @staticmethod
    def _ambient(node: SimulationNode, t: float) -> None:
        node.vx += math.sin(t * FLOAT_SPEED + node.phase) * FLOAT_AMPLITUDE
        node.vy += math.cos(t * FLOAT_SPEED * 0.8 + node.phase) * FLOAT_AMPLITUDE

    # Pairwise forces
    def _charge(self, node: SimulationNode) -> float:
        if self._mode == AnchorMode.IMAGE:
            return HERO_CHARGE if node.id == self._anchor_id else NEIGHBOR_CHARGE
        return CLUSTER_CHARGE

    def _radius(self, node: SimulationNode) -> float:
        if self._mode == AnchorMode.IMAGE:
            if node.id == self._anchor_id:
                width = CARD_WIDTH * hero_scale(self.viewport)
                height = width * 1.5
                return math.sqrt(width**2 + height**2) / 2 * 0.95
            return NEIGHBOR_RADIUS
        return CLUSTER_RADIUS

    def _apply_pairwise(self, visible: list[SimulationNode]) -> None:
        charges = [self._charge(n) for n in visible]
        radii = [self._radius(n) for n in visible]
        for i, a in enumerate(visible):
            for j in range(i + 1, len(visible)):
                b = visible[j]
                dx = b.x - a.x
                dy = b.y - a.y
                d2 = dx * dx + dy * dy
                if d2 == 0:
                    dx = (self._rng.random() - 0.5) * 1e-3
                    dy = (self._rng.random() - 0.5) * 1e-3
                    d2 = dx * dx + dy * dy
                dist = math.sqrt(d2)

                if dist < CHARGE_CUTOFF:
                    eff = max(d2, 1.0)
                    a.vx += dx * charges[j] * CHARGE_ALPHA / eff
                    a.vy += dy * charges[j] * CHARGE_ALPHA / eff
                    b.vx -= dx * charges[i] * CHARGE_ALPHA / eff
                    b.vy -= dy * charges[i] * CHARGE_ALPHA / eff

                reach = radii[i] + radii[j]
                if dist < reach:
                    push = (reach - dist) / dist * COLLIDE_STRENGTH
                    ri2 = radii[i] ** 2
                    rj2 = radii[j] ** 2
                    share_a = rj2 / (ri2 + rj2)
                    a.vx -= dx * push * share_a
                    a.vy -= dy * push * share_a
                    b.vx += dx * push * (1 - share_a)
                    b.vy += dy * push * (1 - share_a)

    # Integration
    def _integrate(self) -> None:
        gx, gy = self._gravity_point()
        boundary = max(self.viewport.width, self.viewport.height) * BOUNDARY_RATIO
        for node in self._nodes.values():
            if node.pinned is not None:
                node.x, node.y = node.pinned
                node.vx = node.vy = 0.0
            else:
                node.vx *= VELOCITY_DAMPING
                node.vy *= VELOCITY_DAMPING
                node.x += node.vx
                node.y += node.vy

                orbiting = node.is_visible and node.id != self._anchor_id
                if self._mode == AnchorMode.IMAGE and orbiting:
                    dx = node.x - gx
                    dy = node.y - gy
                    dist = math.hypot(dx, dy)
                    if dist > boundary:
                        node.x = gx + dx / dist * boundary * BOUNDARY_REENTRY
                        node.y = gy + dy / dist * boundary * BOUNDARY_REENTRY
                        node.vx *= BOUNDARY_VELOCITY_DAMPING
                        node.vy *= BOUNDARY_VELOCITY_DAMPING

            fading_out = not node.is_visible
            node.current_scale = _ease(node.current_scale, node.target_scale, fading_out)
            node.current_opacity = _ease(node.current_opacity, node.target_opacity, fading_out)
