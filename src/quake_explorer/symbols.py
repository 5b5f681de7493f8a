"""Ring geometry for event symbols.

`ring_spec` is the only place ring radii and styling are computed; the scene,
the legend and the tooltip all read from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from quake_explorer.filters import COMBINATION_METRICS, DisplayMode
from quake_explorer.models import METRIC_LABELS, Metric, QuakeRecord
from quake_explorer.scales import ScaleSet

COLORS = {
    Metric.MAG: "#1b9e77",
    Metric.CDI: "#d95f02",
    Metric.MMI: "#7570b3",
    Metric.SIG: "#e7298a",
    "tsunami": "#3b82f6",
    "depth": "#374151",
}

# Fill opacity per metric ring; lower for rings drawn on top in combination mode
FILL_OPACITY = {
    Metric.MAG: 0.55,
    Metric.CDI: 0.45,
    Metric.MMI: 0.35,
    Metric.SIG: 0.75,
}

DEPTH_RING_OFFSET = 1.5
TSUNAMI_RING_OFFSET = 3.0
TSUNAMI_STROKE_WIDTH = 1.5
DEPENDENT_RINGS = ("depth", "tsunami")

LEGEND_DEPTHS = (100, 300, 600)


@dataclass(frozen=True)
class RingDescriptor:
    """One concentric circle of an event symbol, radius in base pixels."""

    key: str
    radius: float
    fill: str = "none"
    fill_opacity: float = 1.0
    stroke: str = "#000"
    stroke_opacity: float = 0.25
    stroke_width: float = 0.0   # 0 = renderer default hairline


def drawn_metrics(mode: DisplayMode, active_metrics: Iterable[Metric]) -> list[Metric]:
    """Metrics that get a ring, falling back to magnitude if none are active."""
    if DisplayMode(mode) == DisplayMode.COMPOSITE:
        return [Metric.SIG]
    active = set(active_metrics)
    drawn = [m for m in COMBINATION_METRICS if m in active]
    return drawn or [Metric.MAG]


def _metric_ring(event: QuakeRecord, metric: Metric, scales: ScaleSet, key: str) -> RingDescriptor:
    return RingDescriptor(
        key=key,
        radius=scales.radius(metric, event.metric(metric)),
        fill=COLORS[metric],
        fill_opacity=FILL_OPACITY[metric],
        stroke="#000",
        stroke_opacity=0.35 if metric == Metric.SIG else 0.25,
    )


def ring_spec(
    event: QuakeRecord,
    mode: DisplayMode,
    active_metrics: Iterable[Metric],
    scales: ScaleSet,
) -> list[RingDescriptor]:
    """Build the ordered ring stack for one event.

    Metric ring(s) first, then the depth ring just outside the largest disc,
    then the tsunami ring outside that when the event raised a tsunami.
    """
    active = set(active_metrics)
    metrics = drawn_metrics(mode, active)
    fallback = DisplayMode(mode) == DisplayMode.COMBINATION and not active

    rings = [
        _metric_ring(event, m, scales, f"{m.value} fallback" if fallback else m.value)
        for m in metrics
    ]
    base = max(r.radius for r in rings)

    rings.append(RingDescriptor(
        key="depth",
        radius=base + DEPTH_RING_OFFSET,
        stroke=COLORS["depth"],
        stroke_opacity=0.9,
        stroke_width=scales.depth_stroke_width(event.depth),
    ))
    if event.tsunami:
        rings.append(RingDescriptor(
            key="tsunami",
            radius=base + TSUNAMI_RING_OFFSET,
            stroke=COLORS["tsunami"],
            stroke_opacity=0.9,
            stroke_width=TSUNAMI_STROKE_WIDTH,
        ))
    return rings


def base_radius(
    event: QuakeRecord,
    mode: DisplayMode,
    active_metrics: Iterable[Metric],
    scales: ScaleSet,
) -> float:
    """Largest metric ring radius; dependent rings sit just outside it."""
    rings = ring_spec(event, mode, active_metrics, scales)
    return max(r.radius for r in rings if r.key not in DEPENDENT_RINGS)


@dataclass(frozen=True)
class LegendEntry:
    metric: Metric
    label: str
    color: str
    fill_opacity: float
    ticks: tuple[tuple[float, float], ...]   # (value, displayed radius)


def legend_ticks(metric: Metric, scales: ScaleSet) -> list[float]:
    lo, hi = scales.scale_for(metric).domain
    if metric == Metric.MAG:
        # Whole magnitudes read better than thirds of the domain
        base = float(int(lo))
        return [base, base + 1, base + 2, base + 3]
    step = (hi - lo) / 3
    return [lo, lo + step, lo + step * 2, hi]


def legend_entries(
    mode: DisplayMode,
    active_metrics: Iterable[Metric],
    scales: ScaleSet,
    growth: float = 1.0,
) -> list[LegendEntry]:
    """Legend rows for the drawn metrics; `growth` is the on-screen zoom growth."""
    entries = []
    for metric in drawn_metrics(mode, active_metrics):
        scale = scales.scale_for(metric)
        entries.append(LegendEntry(
            metric=metric,
            label=METRIC_LABELS[metric],
            color=COLORS[metric],
            fill_opacity=FILL_OPACITY[metric],
            ticks=tuple((v, scale(v) * growth) for v in legend_ticks(metric, scales)),
        ))
    return entries
