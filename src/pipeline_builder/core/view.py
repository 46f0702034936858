"""ViewController — canvas zoom and pan shared by the canvas and the toolbar.

Zoom is kept as an integer percentage between 50 % and 200 % in 10 %
steps; ``scale`` is that percentage divided by 100.  Screen points map to
canvas points through ``screen = canvas * scale + pan``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from pipeline_builder.core.datatypes import PipelineNode
from pipeline_builder.core.events import VIEW_CHANGED, EventBus

logger = logging.getLogger(__name__)

MIN_PERCENT = 50
MAX_PERCENT = 200
STEP_PERCENT = 10

FIT_PADDING = 100
# Room for the node body beyond its top-left corner when fitting.
NODE_EXTENT = 200

Point = tuple[float, float]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp_percent(percent: int) -> int:
    return max(MIN_PERCENT, min(MAX_PERCENT, percent))


class ViewController:
    """Scale, pan and viewport size of the canvas.

    Args:
        event_bus: Bus on which ``view_changed`` is emitted.
        width: Initial viewport width in pixels.
        height: Initial viewport height in pixels.
    """

    def __init__(self, event_bus: EventBus | None = None, width: float = 800, height: float = 600) -> None:
        self.event_bus = event_bus or EventBus()
        self._percent = 100
        self._pan: Point = (0.0, 0.0)
        self._size: Point = (float(width), float(height))

    @property
    def scale(self) -> float:
        """Return the zoom factor (``1.0`` is 100 %)."""
        return self._percent / 100

    @property
    def percent(self) -> int:
        """Return the zoom as an integer percentage."""
        return self._percent

    @property
    def pan(self) -> Point:
        """Return the screen offset of the canvas origin."""
        return self._pan

    @property
    def size(self) -> Point:
        """Return the viewport ``(width, height)``."""
        return self._size

    # ── zoom ──────────────────────────────────────────────────

    def zoom_to(self, scale: float, anchor: Point) -> None:
        """Zoom to *scale* keeping the screen point *anchor* fixed.

        The scale is rounded to the nearest 10 % and clamped to the
        allowed range.
        """
        percent = _clamp_percent(_round_half_up(scale * 100 / STEP_PERCENT) * STEP_PERCENT)
        if percent == self._percent:
            return
        ratio = percent / self._percent
        ax, ay = anchor
        px, py = self._pan
        self._pan = (ax - (ax - px) * ratio, ay - (ay - py) * ratio)
        self._percent = percent
        self._notify()

    def zoom_to_center(self, scale: float) -> None:
        """Zoom to *scale* around the viewport centre."""
        width, height = self._size
        self.zoom_to(scale, (width / 2, height / 2))

    def zoom_in(self) -> None:
        """Zoom in one step around the viewport centre."""
        self.zoom_to_center((self._percent + STEP_PERCENT) / 100)

    def zoom_out(self) -> None:
        """Zoom out one step around the viewport centre."""
        self.zoom_to_center((self._percent - STEP_PERCENT) / 100)

    def wheel(self, delta_y: float, anchor: Point) -> None:
        """Apply a wheel event: scrolling down zooms out, up zooms in, around *anchor*."""
        step = -STEP_PERCENT if delta_y > 0 else STEP_PERCENT
        self.zoom_to((self._percent + step) / 100, anchor)

    def reset(self) -> None:
        """Return to 100 % with no pan."""
        self._percent = 100
        self._pan = (0.0, 0.0)
        self._notify()

    def fit(self, nodes: Sequence[PipelineNode]) -> None:
        """Zoom and pan so every node is visible.

        Does nothing when there are no nodes.
        """
        if not nodes:
            return
        xs = [node.position.x for node in nodes]
        ys = [node.position.y for node in nodes]
        min_x, max_x, min_y, max_y = min(xs), max(xs), min(ys), max(ys)
        width, height = self._size

        scale_x = (width - FIT_PADDING * 2) / (max_x - min_x + NODE_EXTENT)
        scale_y = (height - FIT_PADDING * 2) / (max_y - min_y + NODE_EXTENT)
        scale = max(MIN_PERCENT / 100, min(MAX_PERCENT / 100, min(scale_x, scale_y)))
        self._percent = _clamp_percent(_round_half_up(_round_half_up(scale * 100) / STEP_PERCENT) * STEP_PERCENT)

        scale = self.scale
        self._pan = ((width - (max_x + min_x) * scale) / 2, (height - (max_y + min_y) * scale) / 2)
        logger.debug("Fitted %d nodes at %d%%", len(nodes), self._percent)
        self._notify()

    # ── pan & geometry ────────────────────────────────────────

    def pan_by(self, dx: float, dy: float) -> None:
        """Shift the canvas by a screen-space offset."""
        if not dx and not dy:
            return
        px, py = self._pan
        self._pan = (px + dx, py + dy)
        self._notify()

    def resize(self, width: float, height: float) -> None:
        """Record a new viewport size."""
        self._size = (float(width), float(height))

    def to_canvas(self, point: Point) -> Point:
        """Convert a screen point to canvas coordinates."""
        scale = self.scale
        return ((point[0] - self._pan[0]) / scale, (point[1] - self._pan[1]) / scale)

    def to_screen(self, point: Point) -> Point:
        """Convert a canvas point to screen coordinates."""
        scale = self.scale
        return (point[0] * scale + self._pan[0], point[1] * scale + self._pan[1])

    def _notify(self) -> None:
        self.event_bus.emit(VIEW_CHANGED, scale=self.scale, pan=self._pan)
