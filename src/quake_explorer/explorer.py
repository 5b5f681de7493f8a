"""Central explorer state and its entry points.

`Explorer` owns the catalog, scales, timeline, filter state, zoom controller,
scene layers and tour. Front-ends change state only through its methods;
every change that affects which events are shown runs the full
filter → ring spec → reconcile → compensate pass synchronously.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, Optional, Sequence

from quake_explorer.animation import FrameScheduler, ScheduledTask
from quake_explorer.config import ExplorerConfig
from quake_explorer.filters import DisplayMode, FilterState, apply_filters
from quake_explorer.models import EventDescription, Metric, QuakeRecord
from quake_explorer.regions import DEFAULT_REGION, build_region
from quake_explorer.scales import ScaleSet
from quake_explorer.scene import HighlightOverlay, ReconcileStats, SymbolLayer
from quake_explorer.symbols import LegendEntry, RingDescriptor, base_radius, legend_entries, ring_spec
from quake_explorer.timeline import Granularity, Timeline
from quake_explorer.tour import TOUR_SCRIPT, TourCoordinator, TourStep
from quake_explorer.viewport import ViewTransform, ZOOM_STEP, ZoomController

logger = logging.getLogger(__name__)

PLAY_OWNER = "timeline:play"


class Explorer:
    def __init__(
        self,
        events: Sequence[QuakeRecord],
        boundaries: Optional[dict[str, dict]] = None,
        config: Optional[ExplorerConfig] = None,
        scheduler: Optional[FrameScheduler] = None,
        tour_script: Sequence[TourStep] = TOUR_SCRIPT,
    ):
        self.config = config or ExplorerConfig()
        self.scheduler = scheduler or FrameScheduler()
        self.events = tuple(events)
        self.boundaries = boundaries or {}
        self._by_id = {e.event_id: e for e in self.events}

        self.scales = ScaleSet.from_catalog(self.events)
        self.timeline = Timeline(self.events, self.config.granularity)
        self.filter_state = FilterState()
        self.filtered: list[QuakeRecord] = []

        self.controller = ZoomController(
            self.scheduler,
            self.config.viewport_width,
            self.config.viewport_height,
            k_min=self.config.zoom_min,
            k_max=self.config.zoom_max,
            radius_zoom_exp=self.config.radius_zoom_exp,
        )
        self.symbols = SymbolLayer(self.scheduler)
        self.highlight = HighlightOverlay(self.scheduler)
        self.controller.attach(self.symbols)
        self.controller.attach(self.highlight)

        self.tour = TourCoordinator(
            self.scheduler,
            self.controller,
            self.highlight,
            catalog=lambda: self.events,
            script=tour_script,
            flight_ms=self.config.flight_ms,
            on_start=self._tour_baseline,
            on_finish=self._reset_view,
        )
        self.scheduler.on_error(self._on_animation_error)

        self.playing = False
        self._play_task: Optional[ScheduledTask] = None

        logger.info(
            "Explorer ready: %d events, %d %s bucket(s)",
            len(self.events), len(self.timeline.buckets), self.timeline.granularity.value,
        )
        self.set_region(DEFAULT_REGION)

    # ── pipeline ─────────────────────────────────────────────────────────

    def ring_spec(self, event: QuakeRecord) -> list[RingDescriptor]:
        fs = self.filter_state
        return ring_spec(event, fs.display_mode, fs.active_metrics, self.scales)

    def render(self) -> ReconcileStats:
        self.filtered = apply_filters(self.timeline.members, self.filter_state)
        stats = self.symbols.reconcile(self.filtered, self.controller.project, self.ring_spec)
        self.controller.compensate()
        return stats

    # ── filter / time entry points ───────────────────────────────────────

    def set_filter(self, state: FilterState) -> ReconcileStats:
        self.filter_state = state
        return self.render()

    def update_filter(self, **changes) -> ReconcileStats:
        return self.set_filter(dataclasses.replace(self.filter_state, **changes))

    def clear_filters(self) -> ReconcileStats:
        """Reset ranges and the tsunami toggle; the display mode is kept."""
        fs = self.filter_state
        return self.set_filter(FilterState(
            display_mode=fs.display_mode, active_metrics=fs.active_metrics,
        ))

    def set_display_mode(
        self, mode: DisplayMode | str, active_metrics: Iterable[Metric | str] = (),
    ) -> ReconcileStats:
        return self.update_filter(
            display_mode=DisplayMode(mode),
            active_metrics=frozenset(Metric(m) for m in active_metrics),
        )

    def set_bucket(self, index: int) -> ReconcileStats:
        self.timeline.select(index)
        return self.render()

    def set_granularity(self, granularity: Granularity | str) -> ReconcileStats:
        self.timeline.set_granularity(granularity)
        return self.render()

    def step_back(self) -> ReconcileStats:
        self.timeline.step_back()
        return self.render()

    def step_forward(self) -> ReconcileStats:
        self.timeline.step_forward()
        return self.render()

    def toggle_play(self) -> bool:
        """Start or stop stepping through buckets at the playback interval."""
        self.playing = not self.playing
        if self.playing:
            self._schedule_play()
        else:
            self.scheduler.cancel(self._play_task)
            self._play_task = None
        return self.playing

    def _schedule_play(self) -> None:
        self._play_task = self.scheduler.call_later(
            self.config.play_interval_ms, self._play_step, owner=PLAY_OWNER,
        )

    def _play_step(self, now: float) -> None:
        if not self.playing:
            return
        if not self.timeline.buckets:
            self.playing = False
            self._play_task = None
            return
        self.step_forward()
        self._schedule_play()

    # ── view entry points ────────────────────────────────────────────────

    def set_region(self, name: str) -> bool:
        """Switch basemap and reproject; refused while the tour holds the view."""
        region = build_region(
            name, self.boundaries, self.config.viewport_width, self.config.viewport_height,
        )
        if not self.controller.set_region(region):
            return False
        self.render()
        return True

    def zoom_by(self, factor: float) -> bool:
        return self.controller.zoom_by(factor)

    def zoom_in(self) -> bool:
        return self.zoom_by(ZOOM_STEP)

    def zoom_out(self) -> bool:
        return self.zoom_by(1 / ZOOM_STEP)

    def pan_to(self, transform: ViewTransform) -> bool:
        return self.controller.pan_to(transform)

    def reset_zoom(self) -> bool:
        return self.controller.reset_zoom()

    # ── tour entry points ────────────────────────────────────────────────

    def start_tour(self) -> bool:
        return self.tour.start()

    def pause_tour(self) -> None:
        self.tour.toggle_pause()

    def resume_tour(self) -> None:
        self.tour.resume()

    def skip_tour_step(self) -> None:
        self.tour.skip()

    def end_tour(self) -> bool:
        return self.tour.end()

    def _tour_baseline(self) -> None:
        if self.playing:
            self.toggle_play()
        self.timeline.show_all()
        self.filter_state = dataclasses.replace(
            self.filter_state, display_mode=DisplayMode.COMPOSITE,
        )
        self.set_region(DEFAULT_REGION)

    def _reset_view(self) -> None:
        self.set_region(DEFAULT_REGION)

    def _on_animation_error(self, task: ScheduledTask, exc: Exception) -> None:
        if self.tour.session.running:
            self.tour.abort(exc)

    # ── read-only views ──────────────────────────────────────────────────

    def describe(self, event_id: str) -> Optional[EventDescription]:
        """Tooltip data: record fields plus the radius currently on screen."""
        event = self._by_id.get(event_id)
        if event is None:
            return None
        node = self.symbols.get(event_id)
        fs = self.filter_state
        radius = base_radius(event, fs.display_mode, fs.active_metrics, self.scales)
        return EventDescription(
            record=event,
            display_radius=radius * self.controller.factor,
            visible=node is not None and not node.exiting,
        )

    def legend(self) -> list[LegendEntry]:
        fs = self.filter_state
        return legend_entries(fs.display_mode, fs.active_metrics, self.scales, self.controller.growth)
