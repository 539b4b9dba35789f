"""Tests for ReadinessGate — configured-source barrier, monotonic."""

import pytest

from geolayers.deriver import describe_layer
from geolayers.readiness import ReadinessGate
from geolayers.surface import HeadlessMapSurface

_EMPTY = {"type": "geojson", "data": {"type": "FeatureCollection", "features": []}}


def _add(surface, source_id, kind):
    if surface.get_source(source_id) is None:
        surface.add_source(source_id, dict(_EMPTY))
    surface.add_layer(describe_layer(kind, source_id, "#000000").to_style_layer())


@pytest.mark.unit
class TestReadinessGate:

    def test_starts_loading(self, surface):
        gate = ReadinessGate(["a", "b"])
        assert gate.ready is False
        assert gate.check(surface) is False

    def test_waits_for_every_source(self, surface):
        gate = ReadinessGate(["a", "b"])
        gate.expect("a-Point")
        _add(surface, "a", "Point")
        gate.source_settled("a")
        assert gate.check(surface) is False
        assert gate.pending_sources == {"b"}

    def test_waits_for_layers_on_surface(self, surface):
        gate = ReadinessGate(["a"])
        gate.expect("a-Point")
        gate.expect("a-Polygon")
        gate.source_settled("a")
        _add(surface, "a", "Point")
        assert gate.check(surface) is False
        assert gate.missing(surface) == ["a-Polygon"]
        _add(surface, "a", "Polygon")
        assert gate.check(surface) is True

    def test_failed_source_not_waited_on(self, surface):
        gate = ReadinessGate(["a", "b", "c"])
        for sid in ("a", "c"):
            gate.expect(f"{sid}-Point")
            _add(surface, sid, "Point")
            gate.source_settled(sid)
        gate.source_settled("b", ok=False)
        assert gate.check(surface) is True
        assert gate.failed_sources == {"b"}
        assert gate.expected == ["a-Point", "c-Point"]

    def test_all_sources_failed_is_ready(self, surface):
        gate = ReadinessGate(["a", "b"])
        gate.source_settled("a", ok=False)
        gate.source_settled("b", ok=False)
        assert gate.check(surface) is True
        assert gate.expected == []

    def test_no_sources_is_ready(self, surface):
        assert ReadinessGate([]).check(surface) is True

    def test_ready_is_monotonic(self, surface):
        gate = ReadinessGate(["a"])
        gate.expect("a-Point")
        _add(surface, "a", "Point")
        gate.source_settled("a")
        assert gate.check(surface) is True
        # the surface later loses its layers (style reload)
        assert gate.check(HeadlessMapSurface()) is True
        gate.source_settled("late", ok=False)
        assert gate.ready is True

    def test_withdrawn_layer_not_waited_on(self, surface):
        gate = ReadinessGate(["a"])
        gate.expect("a-Point")
        gate.expect("a-Polygon")
        _add(surface, "a", "Point")
        gate.withdraw("a-Polygon")
        gate.withdraw("a-Polygon")
        gate.source_settled("a", ok=False)
        assert gate.expected == ["a-Point"]
        assert gate.check(surface) is True

    def test_expect_is_idempotent(self):
        gate = ReadinessGate(["a"])
        gate.expect("a-Point")
        gate.expect("a-Point")
        assert gate.expected == ["a-Point"]

    def test_rechecks_on_styledata(self, surface):
        """Driving check() from styledata opens the gate on the last add."""
        gate = ReadinessGate(["a"])
        transitions = []
        surface.on("styledata", lambda e: transitions.append(gate.check(surface)))
        gate.expect("a-Point")
        gate.expect("a-LineString")
        gate.source_settled("a")
        _add(surface, "a", "Point")
        _add(surface, "a", "LineString")
        assert transitions[-1] is True
        assert transitions.count(True) == 1
