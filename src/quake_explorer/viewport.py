"""Projection & zoom controller.

Symbols live in projected map coordinates inside a group that the view
transform scales by k. Left alone, a symbol of radius r would appear k·r
pixels wide. The compensation pass rescales every ring to

    displayed = base × k**e / k

so the apparent size is base × k**e: constant for e = 0, gently growing for
small e. It always starts from the stored base radius, never from the
previously displayed value, so repeated zooming cannot drift.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from quake_explorer.animation import FrameScheduler, ScheduledTask
from quake_explorer.regions import BasemapRegion

logger = logging.getLogger(__name__)

ZOOM_MIN = 1.0
ZOOM_MAX = 12.0
ZOOM_STEP = 1.3
RADIUS_ZOOM_EXP = 0.23

ZOOM_DURATION_MS = 200
RESET_DURATION_MS = 300

PAN_PAD_X = 120.0
PAN_PAD_Y = 60.0
PAN_PAD_Y_FRACTION = 0.15


@dataclass(frozen=True)
class ViewTransform:
    """Screen = translate + k × projected."""

    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def apply(self, px: float, py: float) -> tuple[float, float]:
        return self.x + self.k * px, self.y + self.k * py

    def invert(self, sx: float, sy: float) -> tuple[float, float]:
        return (sx - self.x) / self.k, (sy - self.y) / self.k

    def translate_by(self, dx: float, dy: float) -> ViewTransform:
        return ViewTransform(self.x + self.k * dx, self.y + self.k * dy, self.k)


IDENTITY = ViewTransform()


def compensation_factor(k: float, exponent: float = RADIUS_ZOOM_EXP) -> float:
    """Multiplier applied to a stored base radius at zoom scale k."""
    return k ** exponent / k


class Compensable(Protocol):
    def apply_compensation(self, factor: float) -> None: ...


class ZoomController:
    """Owns the active basemap region, the view transform and its limits."""

    def __init__(
        self,
        scheduler: FrameScheduler,
        width: float,
        height: float,
        k_min: float = ZOOM_MIN,
        k_max: float = ZOOM_MAX,
        radius_zoom_exp: float = RADIUS_ZOOM_EXP,
    ):
        if not 0.0 <= radius_zoom_exp < 1.0:
            raise ValueError(f"radius_zoom_exp {radius_zoom_exp} outside [0, 1)")
        self.scheduler = scheduler
        self.width = width
        self.height = height
        self.k_min = k_min
        self.k_max = k_max
        self.radius_zoom_exp = radius_zoom_exp

        self.region: Optional[BasemapRegion] = None
        self.transform = IDENTITY
        self.translate_extent = self._default_extent()
        self.writer: Optional[str] = None

        self._layers: list[Compensable] = []
        self._transition: Optional[ScheduledTask] = None

    # ── wiring ───────────────────────────────────────────────────────────

    def attach(self, layer: Compensable) -> None:
        self._layers.append(layer)
        layer.apply_compensation(self.factor)

    # ── region / projection ──────────────────────────────────────────────

    def set_region(self, region: BasemapRegion, source: str = "user") -> bool:
        """Switch basemap: new pan limits, transform back to identity.

        Refused while another writer holds the transform; its flight keeps
        running.
        """
        if self.writer is not None and source != self.writer:
            logger.debug("Ignoring region change from %s while %s holds the view", source, self.writer)
            return False
        self.region = region
        self.translate_extent = self._extent_for(region)
        self.scheduler.cancel(self._transition)
        self._transition = None
        logger.info("Basemap region -> %s", region.name)
        self._write(self.constrain(IDENTITY))
        return True

    def project(self, lon: float, lat: float) -> tuple[float, float]:
        if self.region is None:
            raise RuntimeError("no basemap region selected")
        return self.region.projection(lon, lat)

    def screen_position(self, lon: float, lat: float) -> tuple[float, float]:
        return self.transform.apply(*self.project(lon, lat))

    def _default_extent(self):
        w, h = self.width, self.height
        return (-w * 0.5, -h * 0.2), (w * 1.5, h * 1.2)

    def _extent_for(self, region: BasemapRegion):
        bounds = region.bounds()
        if bounds is None:
            return self._default_extent()
        (x0, y0), (x1, y1) = bounds
        pad_y = PAN_PAD_Y + (y1 - y0) * PAN_PAD_Y_FRACTION
        return (x0 - PAN_PAD_X, y0 - pad_y), (x1 + PAN_PAD_X, y1 + pad_y)

    # ── transform ────────────────────────────────────────────────────────

    @property
    def k(self) -> float:
        return self.transform.k

    @property
    def factor(self) -> float:
        return compensation_factor(self.transform.k, self.radius_zoom_exp)

    @property
    def growth(self) -> float:
        """Apparent on-screen growth of symbols at the current zoom."""
        return self.transform.k ** self.radius_zoom_exp

    @property
    def at_min(self) -> bool:
        return self.transform.k <= self.k_min + 1e-6

    @property
    def at_max(self) -> bool:
        return self.transform.k >= self.k_max - 1e-6

    def claim(self, writer: str) -> None:
        """Give `writer` exclusive write access to the transform."""
        self.writer = writer

    def release(self, writer: str) -> None:
        if self.writer == writer:
            self.writer = None

    def constrain(self, t: ViewTransform) -> ViewTransform:
        """Clamp scale to [k_min, k_max] and pan to the translate extent."""
        k = min(self.k_max, max(self.k_min, t.k))
        t = ViewTransform(t.x, t.y, k)
        (ex0, ey0), (ex1, ey1) = self.translate_extent
        dx0 = (0 - t.x) / k - ex0
        dx1 = (self.width - t.x) / k - ex1
        dy0 = (0 - t.y) / k - ey0
        dy1 = (self.height - t.y) / k - ey1
        return t.translate_by(
            (dx0 + dx1) / 2 if dx1 > dx0 else (min(0.0, dx0) or max(0.0, dx1)),
            (dy0 + dy1) / 2 if dy1 > dy0 else (min(0.0, dy0) or max(0.0, dy1)),
        )

    def set_transform(self, t: ViewTransform, source: str = "user") -> bool:
        """Write the transform if `source` may; the compensation pass follows at once."""
        if self.writer is not None and source != self.writer:
            logger.debug("Ignoring transform write from %s while %s holds it", source, self.writer)
            return False
        self._write(self.constrain(t))
        return True

    def _write(self, t: ViewTransform) -> None:
        self.transform = t
        self.compensate()

    def compensate(self) -> None:
        factor = self.factor
        for layer in self._layers:
            layer.apply_compensation(factor)

    # ── gestures ─────────────────────────────────────────────────────────

    def scaled_about_center(self, factor: float) -> ViewTransform:
        cx, cy = self.width / 2, self.height / 2
        px, py = self.transform.invert(cx, cy)
        k = min(self.k_max, max(self.k_min, self.transform.k * factor))
        return ViewTransform(cx - px * k, cy - py * k, k)

    def centered_on(self, lon: float, lat: float, k: float) -> ViewTransform:
        px, py = self.project(lon, lat)
        return ViewTransform(self.width / 2 - px * k, self.height / 2 - py * k, k)

    def zoom_by(self, factor: float, duration_ms: float = ZOOM_DURATION_MS, source: str = "user") -> bool:
        return self.animate_to(self.scaled_about_center(factor), duration_ms, source)

    def pan_to(self, t: ViewTransform, duration_ms: float = 0, source: str = "user") -> bool:
        return self.animate_to(t, duration_ms, source)

    def reset_zoom(self, duration_ms: float = RESET_DURATION_MS, source: str = "user") -> bool:
        return self.animate_to(IDENTITY, duration_ms, source)

    def fly_to(
        self, lon: float, lat: float, k: float, duration_ms: float,
        source: str = "user", on_end: Optional[Callable[[], None]] = None,
    ) -> bool:
        return self.animate_to(self.centered_on(lon, lat, k), duration_ms, source, on_end)

    def animate_to(
        self,
        target: ViewTransform,
        duration_ms: float,
        source: str = "user",
        on_end: Optional[Callable[[], None]] = None,
    ) -> bool:
        """Interpolate toward `target`; every frame is a full transform write."""
        if self.writer is not None and source != self.writer:
            logger.debug("Ignoring %s transition while %s holds the transform", source, self.writer)
            return False
        target = self.constrain(target)
        start = self.transform
        self.scheduler.cancel(self._transition)

        def step(t: float) -> None:
            self.set_transform(self.interpolate(start, target, t), source)

        def done() -> None:
            self._transition = None
            if on_end is not None:
                on_end()

        self._transition = self.scheduler.transition(
            duration_ms, step, owner=f"zoom:{source}", on_end=done,
        )
        return True

    def interpolate(self, a: ViewTransform, b: ViewTransform, t: float) -> ViewTransform:
        """Blend two views: zoom geometrically, move the view centre linearly."""
        cx, cy = self.width / 2, self.height / 2
        ax, ay = a.invert(cx, cy)
        bx, by = b.invert(cx, cy)
        k = a.k * math.exp(math.log(b.k / a.k) * t)
        px, py = ax + (bx - ax) * t, ay + (by - ay) * t
        return ViewTransform(cx - px * k, cy - py * k, k)
