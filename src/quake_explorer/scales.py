"""Numeric scales mapping metric values to symbol radii and stroke widths."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from quake_explorer.models import Metric, QuakeRecord

logger = logging.getLogger(__name__)

MIN_RADIUS_PX = 4.0
MAX_RADIUS_PX = 20.0

DEPTH_DOMAIN = (0.0, 700.0)
DEPTH_STROKE_RANGE = (0.6, 4.0)

# Magnitude is logarithmic, so it is cubed; the others use area-true sqrt.
METRIC_EXPONENTS = {
    Metric.MAG: 3.0,
    Metric.CDI: 0.5,
    Metric.MMI: 0.5,
    Metric.SIG: 0.5,
}


def _signed_pow(x: float, exponent: float) -> float:
    return -((-x) ** exponent) if x < 0 else x ** exponent


@dataclass(frozen=True)
class PowerScale:
    """Continuous power scale with clamping; exponent 1 is linear."""

    domain: tuple[float, float]
    range: tuple[float, float]
    exponent: float = 1.0
    clamp: bool = True

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        t0 = _signed_pow(d0, self.exponent)
        t1 = _signed_pow(d1, self.exponent)
        if t1 == t0:
            return (r0 + r1) / 2
        t = (_signed_pow(value, self.exponent) - t0) / (t1 - t0)
        if self.clamp:
            t = min(1.0, max(0.0, t))
        return r0 + t * (r1 - r0)


def observed_extent(
    events: Iterable[QuakeRecord], metric: Metric,
) -> tuple[Optional[float], Optional[float]]:
    values = [
        v for v in (e.metric(metric) for e in events)
        if v is not None and math.isfinite(v)
    ]
    if not values:
        return None, None
    return min(values), max(values)


def metric_domain(lo: Optional[float], hi: Optional[float]) -> tuple[float, float]:
    """Floor the observed minimum at 0 and ceil the maximum at no less than 1."""
    return max(0.0, 0.0 if lo is None else lo), max(1.0, 1.0 if hi is None else hi)


class ScaleSet:
    """Per-metric radius scales plus the depth stroke scale.

    Built once per catalog load from the observed extents; filtering never
    rebuilds it so legend sizes stay put while the user explores.
    """

    def __init__(self, scales: dict[Metric, PowerScale]):
        self._scales = dict(scales)
        self._depth = PowerScale(DEPTH_DOMAIN, DEPTH_STROKE_RANGE, exponent=1.0)

    @classmethod
    def from_catalog(cls, events: Iterable[QuakeRecord]) -> ScaleSet:
        events = list(events)
        scales = {}
        for metric, exponent in METRIC_EXPONENTS.items():
            domain = metric_domain(*observed_extent(events, metric))
            scales[metric] = PowerScale(
                domain, (MIN_RADIUS_PX, MAX_RADIUS_PX), exponent=exponent,
            )
            logger.debug("Scale %s: domain=%s exponent=%s", metric.value, domain, exponent)
        return cls(scales)

    def scale_for(self, metric: Metric | str) -> PowerScale:
        return self._scales[Metric(metric)]

    def radius(self, metric: Metric | str, value: Optional[float]) -> float:
        # Missing values draw at the bottom of the domain
        return self.scale_for(metric)(0.0 if value is None else value)

    def depth_stroke_width(self, depth: Optional[float]) -> float:
        return self._depth(0.0 if depth is None else depth)

    @property
    def domains(self) -> dict[Metric, tuple[float, float]]:
        return {m: s.domain for m, s in self._scales.items()}
