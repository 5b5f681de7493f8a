"""Headless scene graph for event symbols.

The scene keeps one `SymbolNode` per visible event, keyed by the event's
content-derived id, and reconciles it against each newly filtered subset.
Renderers (terminal, Plotly) only read nodes; they never compute geometry.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from quake_explorer.animation import FrameScheduler, ScheduledTask, ease_linear
from quake_explorer.models import QuakeRecord
from quake_explorer.symbols import COLORS, RingDescriptor

logger = logging.getLogger(__name__)

FADE_IN_MS = 550
FADE_OUT_MS = 300

PULSE_PERIOD_MS = 1200
PULSE_BASE_RADIUS = 14.0
PULSE_AMPLITUDE = 0.45

Projector = Callable[[float, float], tuple[float, float]]
RingFn = Callable[[QuakeRecord], list[RingDescriptor]]


@dataclass
class RingNode:
    """A drawn ring: the stored base geometry and its zoom-compensated radius."""

    spec: RingDescriptor
    radius: float

    @property
    def base_radius(self) -> float:
        return self.spec.radius


@dataclass
class SymbolNode:
    key: str
    event: QuakeRecord
    x: float
    y: float
    rings: list[RingNode] = field(default_factory=list)
    opacity: float = 0.0
    exiting: bool = False
    fade: Optional[ScheduledTask] = None


@dataclass
class ReconcileStats:
    created: int = 0
    updated: int = 0
    removed: int = 0


class SymbolLayer:
    """Persistent set of event symbols updated by create/update/remove."""

    def __init__(
        self,
        scheduler: FrameScheduler,
        fade_in_ms: float = FADE_IN_MS,
        fade_out_ms: float = FADE_OUT_MS,
    ):
        self.scheduler = scheduler
        self.fade_in_ms = fade_in_ms
        self.fade_out_ms = fade_out_ms
        self.nodes: dict[str, SymbolNode] = {}
        self._factor = 1.0

    def reconcile(
        self,
        events: Iterable[QuakeRecord],
        project: Projector,
        ring_fn: RingFn,
    ) -> ReconcileStats:
        stats = ReconcileStats()
        incoming: dict[str, QuakeRecord] = {}
        for event in events:
            incoming[event.event_id] = event

        for key, node in list(self.nodes.items()):
            if key not in incoming and not node.exiting:
                self._fade_out(node)
                stats.removed += 1

        for key, event in incoming.items():
            x, y = project(event.longitude, event.latitude)
            rings = [RingNode(spec, spec.radius * self._factor) for spec in ring_fn(event)]
            node = self.nodes.get(key)
            if node is None:
                node = SymbolNode(key=key, event=event, x=x, y=y, rings=rings)
                self.nodes[key] = node
                self._fade_in(node)
                stats.created += 1
            else:
                node.event, node.x, node.y, node.rings = event, x, y, rings
                if node.exiting:
                    node.exiting = False
                    self._fade_in(node)
                    stats.created += 1
                else:
                    stats.updated += 1

        logger.debug(
            "Reconciled symbols: +%d ~%d -%d", stats.created, stats.updated, stats.removed,
        )
        return stats

    def apply_compensation(self, factor: float) -> None:
        """Set every displayed radius to stored base × factor."""
        self._factor = factor
        for node in self.nodes.values():
            for ring in node.rings:
                ring.radius = ring.base_radius * factor

    def _owner(self, node: SymbolNode) -> str:
        return f"symbol:{node.key}"

    def _fade_in(self, node: SymbolNode) -> None:
        self.scheduler.cancel(node.fade)
        start = node.opacity

        def step(t: float) -> None:
            node.opacity = start + (1.0 - start) * t

        def done() -> None:
            node.fade = None

        node.fade = self.scheduler.transition(
            self.fade_in_ms * (1.0 - start), step, owner=self._owner(node),
            ease=ease_linear, on_end=done,
        )

    def _fade_out(self, node: SymbolNode) -> None:
        self.scheduler.cancel(node.fade)
        node.exiting = True
        start = node.opacity

        def step(t: float) -> None:
            node.opacity = start * (1.0 - t)

        def detach() -> None:
            node.fade = None
            if node.exiting and self.nodes.get(node.key) is node:
                del self.nodes[node.key]

        node.fade = self.scheduler.transition(
            self.fade_out_ms, step, owner=self._owner(node),
            ease=ease_linear, on_end=detach,
        )

    def visible(self) -> list[SymbolNode]:
        return [n for n in self.nodes.values() if not n.exiting]

    def get(self, key: str) -> Optional[SymbolNode]:
        return self.nodes.get(key)

    def __len__(self) -> int:
        return len(self.nodes)


class HighlightOverlay:
    """Pulsing ring drawn above the symbol layer at one event."""

    OWNER = "tour:highlight"

    def __init__(self, scheduler: FrameScheduler, owner: str = OWNER):
        self.scheduler = scheduler
        self.owner = owner
        self.node: Optional[SymbolNode] = None
        self._factor = 1.0
        self._pulse: Optional[ScheduledTask] = None

    @property
    def active(self) -> bool:
        return self.node is not None

    def show(self, event: QuakeRecord, x: float, y: float) -> None:
        self.clear()
        spec = RingDescriptor(
            key="highlight",
            radius=PULSE_BASE_RADIUS,
            fill=COLORS["tsunami"],
            fill_opacity=0.15,
            stroke="#ff4d4d",
            stroke_opacity=0.9,
            stroke_width=2.0,
        )
        self.node = SymbolNode(
            key=f"highlight:{event.event_id}", event=event, x=x, y=y,
            rings=[RingNode(spec, spec.radius * self._factor)], opacity=1.0,
        )
        start = self.scheduler.now
        node = self.node

        def pulse(now: float) -> bool:
            if self.node is not node:
                return False
            phase = ((now - start) % PULSE_PERIOD_MS) / PULSE_PERIOD_MS
            swell = 1.0 + PULSE_AMPLITUDE * math.sin(2 * math.pi * phase)
            ring = node.rings[0]
            ring.radius = ring.base_radius * swell * self._factor
            node.opacity = 0.65 + 0.35 * (1.0 - phase)
            return True

        self._pulse = self.scheduler.every_frame(pulse, owner=self.owner)

    def apply_compensation(self, factor: float) -> None:
        self._factor = factor
        if self.node is not None:
            ring = self.node.rings[0]
            ring.radius = ring.base_radius * factor

    def clear(self) -> None:
        self.scheduler.cancel(self._pulse)
        self._pulse = None
        self.node = None
