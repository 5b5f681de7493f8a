"""Tests for symbol reconciliation and the highlight overlay."""

from __future__ import annotations

import pytest

from quake_explorer.scene import (
    FADE_IN_MS,
    FADE_OUT_MS,
    PULSE_AMPLITUDE,
    PULSE_BASE_RADIUS,
    PULSE_PERIOD_MS,
    HighlightOverlay,
    SymbolLayer,
)
from quake_explorer.symbols import RingDescriptor

from conftest import quake


def project(lon, lat):
    return lon * 2.0, -lat * 2.0


def rings(event):
    return [
        RingDescriptor(key="sig", radius=8.0, fill="#e7298a"),
        RingDescriptor(key="depth", radius=9.5, stroke_width=1.0),
    ]


EVENTS = [quake(float(i), float(i * 10), 2010) for i in range(4)]


@pytest.fixture
def layer(scheduler) -> SymbolLayer:
    return SymbolLayer(scheduler)


# ── Reconciliation ───────────────────────────────────────────────────────


class TestReconcile:
    def test_create_fades_in(self, scheduler, layer):
        stats = layer.reconcile(EVENTS, project, rings)

        assert stats.created == 4
        assert all(n.opacity == 0.0 for n in layer.visible())
        scheduler.advance(FADE_IN_MS + 20)
        assert all(n.opacity == pytest.approx(1.0) for n in layer.visible())
        assert scheduler.pending() == 0

    def test_positions_come_from_projection(self, layer):
        layer.reconcile(EVENTS[2:3], project, rings)
        node = layer.get(EVENTS[2].event_id)

        assert (node.x, node.y) == (40.0, -4.0)
        assert [r.spec.key for r in node.rings] == ["sig", "depth"]

    def test_same_events_update_in_place(self, scheduler, layer):
        layer.reconcile(EVENTS, project, rings)
        scheduler.advance(FADE_IN_MS + 20)
        node = layer.get(EVENTS[0].event_id)

        stats = layer.reconcile(list(reversed(EVENTS)), project, rings)
        assert (stats.created, stats.updated, stats.removed) == (0, 4, 0)
        assert layer.get(EVENTS[0].event_id) is node
        assert scheduler.pending() == 0

    def test_removed_nodes_fade_then_detach(self, scheduler, layer):
        layer.reconcile(EVENTS, project, rings)
        scheduler.advance(FADE_IN_MS + 20)

        stats = layer.reconcile(EVENTS[:2], project, rings)
        assert stats.removed == 2
        assert len(layer.visible()) == 2
        assert len(layer) == 4

        scheduler.advance(FADE_OUT_MS + 20)
        assert len(layer) == 2
        assert layer.get(EVENTS[3].event_id) is None

    def test_exiting_node_is_revived(self, scheduler, layer):
        layer.reconcile(EVENTS, project, rings)
        scheduler.advance(FADE_IN_MS + 20)
        node = layer.get(EVENTS[3].event_id)

        layer.reconcile(EVENTS[:3], project, rings)
        scheduler.advance(FADE_OUT_MS / 2)
        stats = layer.reconcile(EVENTS, project, rings)

        assert stats.created == 1
        assert layer.get(EVENTS[3].event_id) is node
        assert not node.exiting
        scheduler.advance(FADE_IN_MS + 20)
        assert node.opacity == pytest.approx(1.0)
        assert len(layer) == 4

    def test_new_rings_use_current_compensation(self, layer):
        layer.apply_compensation(0.5)
        layer.reconcile(EVENTS[:1], project, rings)
        node = layer.visible()[0]

        assert [r.radius for r in node.rings] == [4.0, 4.75]
        assert [r.base_radius for r in node.rings] == [8.0, 9.5]

    def test_empty_subset_is_valid(self, scheduler, layer):
        layer.reconcile(EVENTS, project, rings)
        layer.reconcile([], project, rings)
        scheduler.advance(FADE_OUT_MS + 20)

        assert len(layer) == 0


# ── Highlight overlay ────────────────────────────────────────────────────


class TestHighlightOverlay:
    def test_show_pulses_and_clear_stops(self, scheduler):
        overlay = HighlightOverlay(scheduler)
        overlay.show(EVENTS[1], 10.0, 20.0)

        assert overlay.active
        assert scheduler.pending(HighlightOverlay.OWNER) == 1

        radii = []
        for _ in range(60):
            scheduler.tick()
            radii.append(overlay.node.rings[0].radius)
        lo = PULSE_BASE_RADIUS * (1 - PULSE_AMPLITUDE)
        hi = PULSE_BASE_RADIUS * (1 + PULSE_AMPLITUDE)
        assert all(lo - 1e-9 <= r <= hi + 1e-9 for r in radii)
        assert max(radii) > min(radii)

        overlay.clear()
        assert not overlay.active
        assert scheduler.pending() == 0

    def test_show_replaces_previous(self, scheduler):
        overlay = HighlightOverlay(scheduler)
        overlay.show(EVENTS[0], 0.0, 0.0)
        overlay.show(EVENTS[1], 5.0, 5.0)

        assert overlay.node.event == EVENTS[1]
        assert scheduler.pending(HighlightOverlay.OWNER) == 1

    def test_compensation_applies_to_pulse(self, scheduler):
        overlay = HighlightOverlay(scheduler)
        overlay.apply_compensation(0.25)
        overlay.show(EVENTS[0], 0.0, 0.0)
        scheduler.advance(PULSE_PERIOD_MS)

        assert overlay.node.rings[0].radius <= PULSE_BASE_RADIUS * (1 + PULSE_AMPLITUDE) * 0.25 + 1e-9
