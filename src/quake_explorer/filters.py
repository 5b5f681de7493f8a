"""Filter pipeline: range and tsunami predicates over a time bucket."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from quake_explorer.models import Metric, QuakeRecord

DEPTH_BOUNDS = (0.0, 700.0)
MAGNITUDE_BOUNDS = (0.0, 10.0)


class DisplayMode(str, Enum):
    COMPOSITE = "overall"   # one ring sized by significance
    COMBINATION = "combo"   # up to three toggleable metric rings


COMBINATION_METRICS = (Metric.MAG, Metric.CDI, Metric.MMI)


def normalize_range(lo: float, hi: float) -> tuple[float, float]:
    """Return (lo, hi) with lo <= hi, swapping out-of-order handles."""
    lo, hi = float(lo), float(hi)
    return (hi, lo) if lo > hi else (lo, hi)


@dataclass(frozen=True)
class FilterState:
    """Everything the user can change about which events are shown and how."""

    depth_range: tuple[float, float] = DEPTH_BOUNDS
    metric_range: tuple[float, float] = MAGNITUDE_BOUNDS
    range_metric: Metric = Metric.MAG
    tsunami_only: bool = False
    display_mode: DisplayMode = DisplayMode.COMPOSITE
    active_metrics: frozenset[Metric] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "depth_range", normalize_range(*self.depth_range))
        object.__setattr__(self, "metric_range", normalize_range(*self.metric_range))
        object.__setattr__(self, "range_metric", Metric(self.range_metric))
        object.__setattr__(self, "display_mode", DisplayMode(self.display_mode))
        active = frozenset(Metric(m) for m in self.active_metrics)
        unknown = active - set(COMBINATION_METRICS)
        if unknown:
            raise ValueError(
                f"metrics {sorted(m.value for m in unknown)} cannot be combined"
            )
        object.__setattr__(self, "active_metrics", active)


def _in_range(value: Optional[float], bounds: tuple[float, float]) -> bool:
    # Missing values never fail a range filter
    if value is None:
        return True
    return bounds[0] <= value <= bounds[1]


def matches(event: QuakeRecord, state: FilterState) -> bool:
    ok_depth = _in_range(event.depth, state.depth_range)
    ok_metric = _in_range(event.metric(state.range_metric), state.metric_range)
    ok_tsunami = event.tsunami if state.tsunami_only else True
    return ok_depth and ok_metric and ok_tsunami


def apply_filters(
    events: Iterable[QuakeRecord] | Sequence[QuakeRecord],
    state: FilterState,
) -> list[QuakeRecord]:
    """Return the events passing every predicate, in their original order."""
    return [e for e in events if matches(e, state)]
