"""Cooperative frame scheduler.

All animation (zoom transitions, symbol fades, tour flights, the highlight
pulse) runs as callbacks against a single millisecond clock. Nothing blocks:
a callback does a slice of work and either finishes or runs again next frame.

The clock is virtual. Tests drive it with `advance()`; interactive front-ends
drive it from wall time with `run_clock()`.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FRAME_MS = 1000.0 / 60.0

Ease = Callable[[float], float]
ErrorHandler = Callable[["ScheduledTask", Exception], None]


def ease_linear(t: float) -> float:
    return t


def ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


@dataclass(eq=False)
class ScheduledTask:
    """A pending callback. `repeat` tasks run every frame until stopped."""

    callback: Callable[[float], Optional[bool]]
    due: float
    owner: Optional[str] = None
    repeat: bool = False
    cancelled: bool = False
    seq: int = field(default=0)

    def cancel(self) -> None:
        self.cancelled = True


class FrameScheduler:
    """Single-threaded scheduler over a virtual millisecond clock."""

    def __init__(self, frame_ms: float = FRAME_MS):
        self.frame_ms = frame_ms
        self.now = 0.0
        self._tasks: list[ScheduledTask] = []
        self._seq = itertools.count()
        self._error_handlers: list[ErrorHandler] = []

    def on_error(self, handler: ErrorHandler) -> None:
        """Register a handler for exceptions raised inside callbacks."""
        self._error_handlers.append(handler)

    # ── scheduling ───────────────────────────────────────────────────────

    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[float], object],
        owner: Optional[str] = None,
    ) -> ScheduledTask:
        task = ScheduledTask(callback, self.now + max(0.0, delay_ms), owner, seq=next(self._seq))
        self._tasks.append(task)
        return task

    def every_frame(
        self,
        callback: Callable[[float], Optional[bool]],
        owner: Optional[str] = None,
    ) -> ScheduledTask:
        """Run `callback(now)` on every tick until it returns False or is cancelled."""
        task = ScheduledTask(callback, self.now, owner, repeat=True, seq=next(self._seq))
        self._tasks.append(task)
        return task

    def transition(
        self,
        duration_ms: float,
        step: Callable[[float], None],
        owner: Optional[str] = None,
        ease: Ease = ease_cubic_in_out,
        on_end: Optional[Callable[[], None]] = None,
    ) -> Optional[ScheduledTask]:
        """Call `step(eased_t)` each frame for `duration_ms`, ending at t=1.

        A non-positive duration applies the end state synchronously and
        schedules nothing.
        """
        if duration_ms <= 0:
            step(1.0)
            if on_end is not None:
                on_end()
            return None

        start = self.now

        def frame(now: float) -> bool:
            t = min(1.0, (now - start) / duration_ms)
            step(ease(t))
            if t >= 1.0:
                if on_end is not None:
                    on_end()
                return False
            return True

        return self.every_frame(frame, owner)

    def cancel(self, task: Optional[ScheduledTask]) -> None:
        if task is not None:
            task.cancel()

    def cancel_owner(self, owner: str) -> int:
        count = 0
        for task in self._tasks:
            if task.owner == owner and not task.cancelled:
                task.cancel()
                count += 1
        self._prune()
        return count

    def pending(self, owner: Optional[str] = None) -> int:
        return sum(
            1 for t in self._tasks
            if not t.cancelled and (owner is None or t.owner == owner)
        )

    # ── clock ────────────────────────────────────────────────────────────

    def tick(self, now: Optional[float] = None) -> int:
        """Run every task due at `now` (default: one frame later). Returns count run."""
        self.now = self.now + self.frame_ms if now is None else max(self.now, now)
        due = sorted(
            (t for t in self._tasks if not t.cancelled and t.due <= self.now),
            key=lambda t: (t.due, t.seq),
        )
        ran = 0
        for task in due:
            # An earlier callback this tick may have cancelled it
            if task.cancelled:
                continue
            ran += 1
            try:
                keep_going = task.callback(self.now)
            except Exception as exc:
                logger.exception("Animation callback failed (owner=%s)", task.owner)
                task.cancel()
                self._dispatch_error(task, exc)
                continue
            if not task.repeat or keep_going is False:
                task.cancel()
        self._prune()
        return ran

    def advance(self, duration_ms: float) -> None:
        """Step the clock frame by frame through `duration_ms`."""
        end = self.now + duration_ms
        while self.now + self.frame_ms <= end + 1e-9:
            self.tick()
        if self.now < end:
            self.tick(end)

    def _prune(self) -> None:
        self._tasks = [t for t in self._tasks if not t.cancelled]

    def _dispatch_error(self, task: ScheduledTask, exc: Exception) -> None:
        for handler in list(self._error_handlers):
            try:
                handler(task, exc)
            except Exception:
                logger.exception("Error handler failed while handling %r", exc)


async def run_clock(
    scheduler: FrameScheduler,
    stop: asyncio.Event,
    fps: float = 60.0,
) -> None:
    """Drive `scheduler` from wall time until `stop` is set."""
    origin = time.monotonic() * 1000.0 - scheduler.now
    interval = 1.0 / fps
    while not stop.is_set():
        scheduler.tick(time.monotonic() * 1000.0 - origin)
        await asyncio.sleep(interval)
