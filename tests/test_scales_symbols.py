"""Tests for radius scales, ring geometry and the legend."""

from __future__ import annotations

import math

import pytest

from quake_explorer.filters import DisplayMode
from quake_explorer.models import Metric, QuakeRecord, make_event_id
from quake_explorer.scales import (
    MAX_RADIUS_PX,
    MIN_RADIUS_PX,
    PowerScale,
    ScaleSet,
    metric_domain,
    observed_extent,
)
from quake_explorer.symbols import (
    COLORS,
    DEPTH_RING_OFFSET,
    FILL_OPACITY,
    TSUNAMI_RING_OFFSET,
    base_radius,
    drawn_metrics,
    legend_entries,
    ring_spec,
)


def _event(lat, **kw) -> QuakeRecord:
    return QuakeRecord(event_id=make_event_id(lat, 0.0), latitude=lat, longitude=0.0, **kw)


CATALOG = [
    _event(1, mag=6.5, cdi=None, mmi=3.0, sig=100, depth=10),
    _event(2, mag=7.0, cdi=5.0, mmi=6.0, sig=400, depth=35),
    _event(3, mag=9.1, cdi=9.0, mmi=9.0, sig=2910, depth=600, tsunami=True),
]


@pytest.fixture
def scales() -> ScaleSet:
    return ScaleSet.from_catalog(CATALOG)


# ── PowerScale ───────────────────────────────────────────────────────────


class TestPowerScale:
    def test_linear(self):
        scale = PowerScale((0, 10), (0, 100))
        assert scale(2.5) == pytest.approx(25.0)

    def test_cubic(self):
        scale = PowerScale((0, 10), (4, 20), exponent=3)
        # (5/10)^3 = 0.125 of the way along the range
        assert scale(5) == pytest.approx(6.0)

    def test_sqrt(self):
        scale = PowerScale((0, 100), (4, 20), exponent=0.5)
        assert scale(25) == pytest.approx(12.0)

    def test_clamps(self):
        scale = PowerScale((0, 10), (4, 20), exponent=3)
        assert scale(-5) == pytest.approx(4.0)
        assert scale(50) == pytest.approx(20.0)

    def test_degenerate_domain_returns_midpoint(self):
        assert PowerScale((5, 5), (4, 20))(5) == pytest.approx(12.0)


# ── Scale domains ────────────────────────────────────────────────────────


class TestScaleSet:
    def test_domains_from_observed_extent(self, scales):
        assert scales.domains[Metric.MAG] == (6.5, 9.1)
        assert scales.domains[Metric.SIG] == (100, 2910)
        assert scales.domains[Metric.CDI] == (5.0, 9.0)

    def test_observed_extent_skips_missing(self):
        assert observed_extent(CATALOG, Metric.CDI) == (5.0, 9.0)
        assert observed_extent([], Metric.MAG) == (None, None)

    def test_metric_domain_floor_and_ceiling(self):
        assert metric_domain(-2.0, 0.4) == (0.0, 1.0)
        assert metric_domain(None, None) == (0.0, 1.0)
        assert metric_domain(3.0, 8.0) == (3.0, 8.0)

    def test_all_zero_domain_is_widened(self):
        scales = ScaleSet.from_catalog([_event(1, sig=0), _event(2, sig=0)])

        assert scales.domains[Metric.SIG] == (0.0, 1.0)
        for value in (0.0, 0.25, 0.5, 1.0):
            r = scales.radius(Metric.SIG, value)
            assert math.isfinite(r)
            assert MIN_RADIUS_PX <= r <= MAX_RADIUS_PX

    def test_radius_range(self, scales):
        assert scales.radius(Metric.MAG, 6.5) == pytest.approx(MIN_RADIUS_PX)
        assert scales.radius(Metric.MAG, 9.1) == pytest.approx(MAX_RADIUS_PX)

    def test_missing_value_draws_smallest(self, scales):
        assert scales.radius(Metric.CDI, None) == pytest.approx(MIN_RADIUS_PX)

    def test_depth_stroke(self, scales):
        assert scales.depth_stroke_width(0) == pytest.approx(0.6)
        assert scales.depth_stroke_width(350) == pytest.approx(2.3)
        assert scales.depth_stroke_width(700) == pytest.approx(4.0)
        assert scales.depth_stroke_width(None) == pytest.approx(0.6)
        assert scales.depth_stroke_width(900) == pytest.approx(4.0)


# ── Ring spec ────────────────────────────────────────────────────────────


class TestRingSpec:
    def test_composite_is_significance_plus_depth(self, scales):
        rings = ring_spec(CATALOG[0], DisplayMode.COMPOSITE, (), scales)

        assert [r.key for r in rings] == ["sig", "depth"]
        assert rings[0].fill == COLORS[Metric.SIG]
        assert rings[0].fill_opacity == FILL_OPACITY[Metric.SIG]
        assert rings[1].radius == pytest.approx(rings[0].radius + DEPTH_RING_OFFSET)
        assert rings[1].stroke_width == pytest.approx(scales.depth_stroke_width(10))

    def test_tsunami_ring_outside_depth(self, scales):
        rings = ring_spec(CATALOG[2], DisplayMode.COMPOSITE, (), scales)

        assert [r.key for r in rings] == ["sig", "depth", "tsunami"]
        assert rings[2].radius == pytest.approx(MAX_RADIUS_PX + TSUNAMI_RING_OFFSET)
        assert rings[2].fill == "none"

    def test_combination_order_and_base(self, scales):
        event = CATALOG[1]
        rings = ring_spec(event, DisplayMode.COMBINATION, {Metric.CDI, Metric.MAG}, scales)

        assert [r.key for r in rings] == ["mag", "cdi", "depth"]
        largest = max(rings[0].radius, rings[1].radius)
        assert rings[2].radius == pytest.approx(largest + DEPTH_RING_OFFSET)
        assert base_radius(event, DisplayMode.COMBINATION, {Metric.CDI, Metric.MAG}, scales) == largest

    @pytest.mark.parametrize("mode, active", [
        (DisplayMode.COMPOSITE, ()),
        (DisplayMode.COMBINATION, ()),
        (DisplayMode.COMBINATION, {Metric.MAG, Metric.CDI, Metric.MMI}),
    ])
    def test_base_radius_matches_ring_geometry(self, scales, mode, active):
        for event in CATALOG:
            rings = {r.key: r.radius for r in ring_spec(event, mode, active, scales)}
            base = base_radius(event, mode, active, scales)

            assert rings["depth"] == pytest.approx(base + DEPTH_RING_OFFSET)
            if event.tsunami:
                assert rings["tsunami"] == pytest.approx(base + TSUNAMI_RING_OFFSET)

    def test_combination_with_nothing_falls_back_to_magnitude(self, scales):
        rings = ring_spec(CATALOG[1], DisplayMode.COMBINATION, (), scales)

        assert [r.key for r in rings] == ["mag fallback", "depth"]
        assert rings[0].radius == pytest.approx(scales.radius(Metric.MAG, 7.0))

    def test_drawn_metrics(self):
        assert drawn_metrics(DisplayMode.COMPOSITE, {Metric.MAG}) == [Metric.SIG]
        assert drawn_metrics(DisplayMode.COMBINATION, set()) == [Metric.MAG]
        assert drawn_metrics(DisplayMode.COMBINATION, {Metric.MMI, Metric.MAG}) == [Metric.MAG, Metric.MMI]


# ── Legend ───────────────────────────────────────────────────────────────


class TestLegend:
    def test_composite_legend(self, scales):
        entries = legend_entries(DisplayMode.COMPOSITE, (), scales)

        assert [e.metric for e in entries] == [Metric.SIG]
        assert entries[0].label == "Overall Significance"
        lo, hi = scales.domains[Metric.SIG]
        assert entries[0].ticks[0] == (lo, pytest.approx(MIN_RADIUS_PX))
        assert entries[0].ticks[-1] == (hi, pytest.approx(MAX_RADIUS_PX))

    def test_magnitude_ticks_are_whole_numbers(self, scales):
        entries = legend_entries(DisplayMode.COMBINATION, {Metric.MAG}, scales)
        assert [v for v, _ in entries[0].ticks] == [6.0, 7.0, 8.0, 9.0]

    def test_growth_scales_tick_radii(self, scales):
        flat = legend_entries(DisplayMode.COMPOSITE, (), scales)
        grown = legend_entries(DisplayMode.COMPOSITE, (), scales, growth=2.0)

        for (_, r1), (_, r2) in zip(flat[0].ticks, grown[0].ticks):
            assert r2 == pytest.approx(2 * r1)
