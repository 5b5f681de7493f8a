"""Guided tour over notable earthquakes.

The tour is an explicit state machine driven by the frame scheduler:

    IDLE → RUNNING → (PAUSED ⇄ RUNNING) → ENDING → IDLE

Each step flies the view to a target, highlights the catalog event nearest
to it, shows a caption and then dwells while reporting progress. A single
per-frame callback polls the session flags, so pause, skip and end are all
cooperative and every scheduled callback the tour owns dies with it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, Sequence

from quake_explorer.animation import FrameScheduler, ScheduledTask
from quake_explorer.geo import haversine_km, squared_distance
from quake_explorer.models import QuakeRecord
from quake_explorer.scene import HighlightOverlay
from quake_explorer.viewport import ZoomController

logger = logging.getLogger(__name__)

TOUR_OWNER = "tour"
FLIGHT_MS = 1800


class TourError(RuntimeError):
    """Raised when a tour step cannot be carried out."""


class TourState(Enum):
    IDLE = auto()
    RUNNING = auto()
    PAUSED = auto()
    ENDING = auto()


class TourOutcome(Enum):
    COMPLETED = auto()
    ENDED = auto()
    ABORTED = auto()


class _Phase(Enum):
    FLYING = auto()
    DWELLING = auto()


@dataclass(frozen=True)
class TourStep:
    lon: float
    lat: float
    zoom: float
    dwell_ms: float
    caption: str
    year: Optional[int] = None      # prefer events from this year when matching


TOUR_SCRIPT: tuple[TourStep, ...] = (
    TourStep(142.37, 38.30, 5.0, 6000,
             "2011 Tohoku, Japan: M9.1 megathrust rupture; tsunami run-up passed 40 m.", 2011),
    TourStep(95.98, 3.30, 4.0, 6000,
             "2004 Sumatra-Andaman: M9.1; the Indian Ocean tsunami reached 14 countries.", 2004),
    TourStep(-72.73, -35.85, 4.5, 6000,
             "2010 Maule, Chile: M8.8 on the Andean subduction zone.", 2010),
    TourStep(173.05, -42.74, 6.0, 5000,
             "2016 Kaikoura, New Zealand: M7.8; more than 20 faults ruptured together.", 2016),
    TourStep(-72.53, 18.44, 6.0, 5000,
             "2010 Haiti: M7.0, shallow and only 25 km from Port-au-Prince.", 2010),
    TourStep(84.73, 28.23, 5.0, 5000,
             "2015 Gorkha, Nepal: M7.8 in the Himalayan collision zone.", 2015),
)


@dataclass
class TourSession:
    """Mutable tour flags, written only by tour control actions and the coordinator."""

    running: bool = False
    paused: bool = False
    end_requested: bool = False
    skip_requested: bool = False
    step_index: int = -1
    progress: float = 0.0           # 0-100 through the current dwell
    caption: str = ""
    target: Optional[QuakeRecord] = None
    target_offset_km: Optional[float] = None


def find_nearest_event(
    events: Sequence[QuakeRecord],
    lon: float,
    lat: float,
    year: Optional[int] = None,
) -> Optional[QuakeRecord]:
    """Nearest event by squared lon/lat distance.

    Candidates are narrowed to `year` when that year has any events.
    """
    candidates = events
    if year is not None:
        same_year = [e for e in events if e.year == year]
        if same_year:
            candidates = same_year
    if not candidates:
        return None
    return min(candidates, key=lambda e: squared_distance(e.longitude, e.latitude, lon, lat))


def placeholder_event(step: TourStep, index: int) -> QuakeRecord:
    """Synthetic event at the step's own target, for empty catalogs."""
    return QuakeRecord(
        event_id=f"tour-step-{index}",
        latitude=step.lat,
        longitude=step.lon,
        year=step.year,
        place=step.caption,
    )


class TourCoordinator:
    def __init__(
        self,
        scheduler: FrameScheduler,
        controller: ZoomController,
        overlay: HighlightOverlay,
        catalog: Callable[[], Sequence[QuakeRecord]],
        script: Sequence[TourStep] = TOUR_SCRIPT,
        flight_ms: float = FLIGHT_MS,
        on_start: Optional[Callable[[], None]] = None,
        on_finish: Optional[Callable[[], None]] = None,
    ):
        self.scheduler = scheduler
        self.controller = controller
        self.overlay = overlay
        self.catalog = catalog
        self.script = tuple(script)
        self.flight_ms = flight_ms
        self.on_start = on_start
        self.on_finish = on_finish

        self.session = TourSession()
        self.state = TourState.IDLE
        self.outcome: Optional[TourOutcome] = None
        self._phase = _Phase.FLYING
        self._elapsed = 0.0
        self._last_tick = 0.0
        self._frame: Optional[ScheduledTask] = None

    # ── control actions ──────────────────────────────────────────────────

    def start(self) -> bool:
        if self.state != TourState.IDLE:
            return False
        if not self.script:
            logger.warning("Tour script is empty; nothing to play")
            return False

        self.session = TourSession(running=True)
        self.state = TourState.RUNNING
        self.outcome = None
        logger.info("Tour started (%d steps)", len(self.script))
        try:
            if self.on_start is not None:
                self.on_start()
            self.controller.claim(TOUR_OWNER)
            self._frame = self.scheduler.every_frame(self._tick, owner=TOUR_OWNER)
            self._begin_step(0)
        except Exception as exc:
            self.abort(exc)
        return self.session.running

    def pause(self) -> None:
        if self.state == TourState.RUNNING:
            self.session.paused = True
            self.state = TourState.PAUSED

    def resume(self) -> None:
        if self.state == TourState.PAUSED:
            self.session.paused = False
            self.state = TourState.RUNNING

    def toggle_pause(self) -> None:
        if self.state == TourState.PAUSED:
            self.resume()
        else:
            self.pause()

    def skip(self) -> None:
        if self.session.running:
            self.session.skip_requested = True

    def end(self) -> bool:
        """Unwind the tour now; the session is idle when this returns."""
        if not self.session.running:
            return False
        self.session.end_requested = True
        self._finish(TourOutcome.ENDED)
        return True

    def abort(self, exc: BaseException) -> None:
        """Failure path: same unwind as a user cancellation."""
        logger.error("Tour aborted at step %d: %s", self.session.step_index, exc)
        if self.session.running:
            self.session.end_requested = True
            self._finish(TourOutcome.ABORTED)

    # ── state machine ────────────────────────────────────────────────────

    def _begin_step(self, index: int) -> None:
        if index >= len(self.script):
            self._finish(TourOutcome.COMPLETED)
            return

        step = self.script[index]
        s = self.session
        s.step_index = index
        s.skip_requested = False
        s.progress = 0.0
        s.caption = ""
        self.overlay.clear()
        self._phase = _Phase.FLYING
        self._elapsed = 0.0
        logger.debug("Tour step %d: flying to (%.2f, %.2f) k=%.1f", index, step.lon, step.lat, step.zoom)

        if not self.controller.fly_to(
            step.lon, step.lat, step.zoom, self.flight_ms,
            source=TOUR_OWNER, on_end=self._arrive,
        ):
            raise TourError(f"view transform is held by {self.controller.writer}")

    def _arrive(self) -> None:
        if not self.session.running:
            return
        step = self.script[self.session.step_index]
        try:
            event = find_nearest_event(self.catalog(), step.lon, step.lat, step.year)
            if event is None:
                event = placeholder_event(step, self.session.step_index)
            x, y = self.controller.project(event.longitude, event.latitude)
        except Exception as exc:
            self.abort(exc)
            return

        s = self.session
        s.target = event
        s.target_offset_km = haversine_km(step.lat, step.lon, event.latitude, event.longitude)
        s.caption = step.caption
        self.overlay.show(event, x, y)
        self._phase = _Phase.DWELLING
        self._last_tick = self.scheduler.now

    def _tick(self, now: float) -> bool:
        s = self.session
        if not s.running or s.end_requested:
            self._finish(TourOutcome.ENDED)
            return False
        if self._phase != _Phase.DWELLING:
            return True

        step = self.script[s.step_index]
        dt, self._last_tick = now - self._last_tick, now
        if s.skip_requested:
            self._advance()
            return s.running
        if not s.paused:
            self._elapsed += dt
        s.progress = min(100.0, 100.0 * self._elapsed / step.dwell_ms) if step.dwell_ms > 0 else 100.0
        if self._elapsed >= step.dwell_ms:
            self._advance()
        return s.running

    def _advance(self) -> None:
        try:
            self._begin_step(self.session.step_index + 1)
        except Exception as exc:
            self.abort(exc)

    def _finish(self, outcome: TourOutcome) -> None:
        if self.state == TourState.ENDING:
            return
        self.state = TourState.ENDING
        step_index = self.session.step_index

        self.scheduler.cancel(self._frame)
        self._frame = None
        self.scheduler.cancel_owner(TOUR_OWNER)
        self.scheduler.cancel_owner(f"zoom:{TOUR_OWNER}")
        self.overlay.clear()
        self.controller.release(TOUR_OWNER)

        self.session = TourSession()
        self.state = TourState.IDLE
        self.outcome = outcome
        if outcome == TourOutcome.COMPLETED:
            logger.info("Tour finished")
        else:
            logger.info("Tour ended at step %d", step_index)

        if self.on_finish is not None:
            self.on_finish()
