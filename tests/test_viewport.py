"""Tests for projections, basemap regions and the zoom controller."""

from __future__ import annotations

import math

import pyproj
import pytest

from quake_explorer.geo import (
    MERCATOR,
    MERCATOR_MAX_LAT,
    NATURAL_EARTH,
    Projection,
    albers,
    haversine_km,
    iter_outlines,
    projected_bounds,
)
from quake_explorer.regions import REGIONS, RegionError, build_region
from quake_explorer.scene import SymbolLayer
from quake_explorer.symbols import RingDescriptor
from quake_explorer.viewport import (
    IDENTITY,
    RESET_DURATION_MS,
    ZOOM_DURATION_MS,
    ZOOM_STEP,
    ViewTransform,
    ZoomController,
    compensation_factor,
)

from conftest import quake


@pytest.fixture
def controller(scheduler, world_region) -> ZoomController:
    c = ZoomController(scheduler, 960, 600)
    c.set_region(world_region)
    return c


def _one_ring_layer(scheduler, controller, base=10.0) -> SymbolLayer:
    layer = SymbolLayer(scheduler)
    controller.attach(layer)
    layer.reconcile(
        [quake(10.0, 20.0, 2010)], controller.project,
        lambda e: [RingDescriptor(key="mag", radius=base)],
    )
    return layer


# ── Geo ──────────────────────────────────────────────────────────────────


class TestGeo:
    def test_haversine_one_degree_at_equator(self):
        assert 110 < haversine_km(0, 0, 0, 1) < 113

    def test_haversine_same_point(self):
        assert haversine_km(35.0, 139.0, 35.0, 139.0) == 0.0

    def test_projection_center_maps_to_translate(self):
        p = Projection(MERCATOR, scale=1000, translate=(100, 50), center=(120, -3),
                       max_lat=MERCATOR_MAX_LAT)
        assert p(120, -3) == pytest.approx((100, 50))

    def test_north_is_up(self):
        p = Projection(NATURAL_EARTH, translate=(480, 300))
        _, y_north = p(0, 45)
        _, y_south = p(0, -45)
        assert y_north < y_south

    def test_mercator_poles_are_clipped(self):
        p = Projection(MERCATOR, max_lat=MERCATOR_MAX_LAT)
        x, y = p(10, 90)

        assert math.isfinite(x) and math.isfinite(y)
        assert (x, y) == pytest.approx(p(10, MERCATOR_MAX_LAT))

    def test_albers_matches_pyproj(self):
        definition = albers((30, 46), (-98, 38))
        p = Projection(definition, scale=1, translate=(0, 0), center=(0, 0))
        direct = pyproj.Transformer.from_crs("EPSG:4326", pyproj.CRS(definition), always_xy=True)

        assert p.raw(-120, 45) == pytest.approx(direct.transform(-120, 45))

    def test_fit_size_fills_box(self, world_boundaries):
        p = Projection(NATURAL_EARTH).fit_size(960, 600, world_boundaries["world"])
        (x0, y0), (x1, y1) = projected_bounds(p, world_boundaries["world"])

        # Width-limited: spans the full width, centred vertically
        assert x0 == pytest.approx(0, abs=1e-6)
        assert x1 == pytest.approx(960, abs=1e-6)
        assert (y0 + y1) / 2 == pytest.approx(300, abs=1e-6)

    def test_empty_geometry_has_no_bounds(self):
        p = Projection(NATURAL_EARTH)
        empty = {"type": "FeatureCollection", "features": []}

        assert p.raw_bounds(empty) is None
        assert projected_bounds(p, None) is None
        assert p.fit_size(960, 600, empty).scale == 150.0

    def test_iter_outlines_yields_rings(self, world_boundaries):
        rings = list(iter_outlines(world_boundaries["world"]))

        assert len(rings) == 1
        assert rings[0][0] == (-180.0, -60.0)
        assert len(rings[0]) == 27

    def test_iter_outlines_skips_points(self):
        collection = {"type": "GeometryCollection", "geometries": [
            {"type": "Point", "coordinates": [3, 3]},
            {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
        ]}
        assert list(iter_outlines(collection)) == [[(0.0, 0.0), (1.0, 1.0)]]


# ── Regions ──────────────────────────────────────────────────────────────


class TestRegions:
    def test_registry(self):
        assert set(REGIONS) == {"world", "na", "indo", "japan", "andes", "nz"}

    def test_unknown_region(self):
        with pytest.raises(RegionError):
            build_region("atlantis", {}, 960, 600)

    @pytest.mark.parametrize("name", ["indo", "japan", "andes", "nz"])
    def test_fixed_scale_regions_centre_on_target(self, name):
        region = build_region(name, {}, 960, 600)
        config = REGIONS[name]

        assert region.projection.scale == config.scale
        assert region.projection(*config.center) == pytest.approx((480, 300))

    def test_albers_rotation_centres_north_america(self):
        region = build_region("na", {}, 960, 600)
        assert region.projection(-98.0, 38.0) == pytest.approx((480, 300))

    def test_fitted_world_leaves_margin(self, world_region):
        (x0, _), (x1, _) = world_region.bounds()
        assert x1 - x0 == pytest.approx(960 * 0.85, rel=1e-6)

    def test_missing_boundary_has_no_bounds(self):
        assert build_region("world", {}, 960, 600).bounds() is None


# ── Compensation ─────────────────────────────────────────────────────────


class TestCompensation:
    def test_factor_at_k4(self):
        f = compensation_factor(4, 0.23)

        assert f == pytest.approx(4 ** 0.23 / 4)
        assert abs(f - 0.333) < 0.015
        assert abs(10 * f - 3.33) < 0.15

    def test_zero_exponent_keeps_apparent_size(self):
        assert compensation_factor(5, 0.0) * 5 == pytest.approx(1.0)

    def test_rejects_exponent_outside_unit_interval(self, scheduler):
        with pytest.raises(ValueError):
            ZoomController(scheduler, 960, 600, radius_zoom_exp=1.0)
        with pytest.raises(ValueError):
            ZoomController(scheduler, 960, 600, radius_zoom_exp=-0.1)

    def test_displayed_radius_follows_zoom(self, scheduler, controller):
        layer = _one_ring_layer(scheduler, controller)
        ring = layer.visible()[0].rings[0]

        controller.set_transform(ViewTransform(0, 0, 4))
        assert ring.radius == pytest.approx(10 * compensation_factor(4))
        # On screen the ring is only k**e larger than at k=1
        assert ring.radius * controller.k == pytest.approx(10 * 4 ** 0.23)

    def test_no_drift_across_zoom_cycles(self, scheduler, controller):
        layer = _one_ring_layer(scheduler, controller)
        ring = layer.visible()[0].rings[0]

        controller.set_transform(ViewTransform(0, 0, 3))
        first = ring.radius
        for k in (7, 1.5, 12, 2, 3):
            controller.set_transform(ViewTransform(0, 0, k))
        assert ring.radius == pytest.approx(first, rel=1e-12)
        assert ring.base_radius == 10.0


# ── Zoom controller ──────────────────────────────────────────────────────


class TestZoomController:
    def test_starts_at_identity_scale(self, controller):
        assert controller.k == 1.0
        assert controller.at_min
        assert not controller.at_max

    def test_scale_is_clamped(self, controller):
        controller.set_transform(ViewTransform(0, 0, 50))
        assert controller.k == 12.0
        assert controller.at_max
        controller.set_transform(ViewTransform(0, 0, 0.2))
        assert controller.k == 1.0

    def test_pan_is_limited_to_extent(self, controller):
        controller.pan_to(ViewTransform(5000, -5000, 2))
        t = controller.transform
        (ex0, ey0), (ex1, ey1) = controller.translate_extent

        x0, y0 = t.invert(0, 0)
        x1, y1 = t.invert(960, 600)
        assert x0 >= ex0 - 1e-9 and x1 <= ex1 + 1e-9
        assert y0 >= ey0 - 1e-9 and y1 <= ey1 + 1e-9

    def test_zoom_in_animates_about_centre(self, scheduler, controller):
        centre_before = controller.transform.invert(480, 300)
        assert controller.zoom_by(ZOOM_STEP)
        assert controller.k == 1.0

        scheduler.advance(ZOOM_DURATION_MS + 50)
        assert controller.k == pytest.approx(ZOOM_STEP)
        assert controller.transform.invert(480, 300) == pytest.approx(centre_before)

    def test_reset_zoom(self, scheduler, controller):
        controller.set_transform(ViewTransform(-500, -300, 3))
        controller.reset_zoom()
        scheduler.advance(RESET_DURATION_MS + 50)

        assert controller.k == pytest.approx(1.0)
        t, home = controller.transform, controller.constrain(IDENTITY)
        assert (t.x, t.y, t.k) == pytest.approx((home.x, home.y, home.k))

    def test_set_region_cancels_transition(self, scheduler, controller, world_region):
        controller.zoom_by(ZOOM_STEP)
        scheduler.tick()
        controller.set_region(world_region)

        assert scheduler.pending("zoom:user") == 0
        assert controller.k == 1.0

    def test_writer_claim_blocks_other_sources(self, scheduler, controller):
        controller.claim("tour")

        assert not controller.set_transform(ViewTransform(0, 0, 3), source="user")
        assert not controller.zoom_by(ZOOM_STEP)
        assert controller.k == 1.0
        assert controller.set_transform(ViewTransform(0, 0, 3), source="tour")

        controller.release("tour")
        assert controller.set_transform(ViewTransform(0, 0, 2))
        assert controller.k == 2.0

    def test_region_switch_respects_writer(self, scheduler, controller, world_region):
        arrivals = []
        controller.claim("tour")
        controller.fly_to(142.37, 38.30, 5.0, 1000, source="tour", on_end=lambda: arrivals.append(True))
        scheduler.advance(400)

        assert not controller.set_region(world_region)
        assert scheduler.pending("zoom:tour") == 1
        scheduler.advance(700)
        assert arrivals == [True]

        assert controller.set_region(world_region, source="tour")
        assert controller.k == 1.0

    def test_fly_to_calls_on_end_once(self, scheduler, controller):
        arrivals = []
        controller.fly_to(142.37, 38.30, 5.0, 1000, on_end=lambda: arrivals.append(scheduler.now))

        scheduler.advance(900)
        assert arrivals == []
        scheduler.advance(300)
        assert len(arrivals) == 1
        assert controller.k == pytest.approx(5.0)

    def test_interpolate_endpoints(self, controller):
        a = ViewTransform(10, 20, 1)
        b = ViewTransform(-300, -100, 4)

        start = controller.interpolate(a, b, 0)
        end = controller.interpolate(a, b, 1)
        assert (start.x, start.y, start.k) == pytest.approx((a.x, a.y, a.k))
        assert (end.x, end.y, end.k) == pytest.approx((b.x, b.y, b.k))
