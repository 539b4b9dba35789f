"""Tests for LayerSyncEngine — concurrent loading, partial failure, UI actions.

Fetching is faked per source; no network access.
"""
from __future__ import annotations

import asyncio

import pytest

from geolayers.colors import ColorAllocator
from geolayers.config import Settings
from geolayers.engine import LayerSyncEngine
from geolayers.errors import FetchFailed, ParseFailed
from geolayers.fetcher import GeoJSONFetcher
from geolayers.geojson import parse_feature_collection
from geolayers.models import DataSourceSpec
from geolayers.surface import HeadlessMapSurface
from tests.lib.geojson_builders import feature_collection


class FakeFetcher(GeoJSONFetcher):
    """Serves canned collections or errors per source id, with optional delays."""

    def __init__(self, results: dict, delays: dict | None = None) -> None:
        super().__init__()
        self.results = results
        self.delays = delays or {}
        self.calls: list[str] = []

    async def fetch_source(self, source):
        self.calls.append(source.id)
        await asyncio.sleep(self.delays.get(source.id, 0))
        result = self.results[source.id]
        if isinstance(result, Exception):
            raise result
        return parse_feature_collection(result, source.id)


def _sources(n):
    return [
        DataSourceSpec(id=f"dataSource{i}", name=f"Source {i}", url=f"https://example.test/{i}")
        for i in range(1, n + 1)
    ]


def _engine(results, delays=None, n=3):
    surface = HeadlessMapSurface(center=(-76.045441, 36.745131), zoom=10)
    engine = LayerSyncEngine(
        surface,
        _sources(n),
        fetcher=FakeFetcher(results, delays),
        allocator=ColorAllocator(),
        home=((-76.045441, 36.745131), 10),
    )
    return engine, surface


def _run(engine, surface):
    surface.load()
    return asyncio.run(engine.run())


@pytest.mark.unit
class TestEngineLoading:

    def test_all_sources_load(self):
        engine, surface = _engine({
            "dataSource1": feature_collection("Polygon"),
            "dataSource2": feature_collection("Polygon", "MultiPolygon"),
            "dataSource3": feature_collection("LineString", "MultiLineString"),
        })
        assert _run(engine, surface) is True
        assert set(engine.registry.snapshot()) == {
            "dataSource1-Polygon",
            "dataSource2-Polygon",
            "dataSource2-MultiPolygon",
            "dataSource3-LineString",
            "dataSource3-MultiLineString",
        }
        for layer_id in engine.registry.snapshot():
            assert surface.get_layer(layer_id) is not None

    def test_partial_failure(self):
        """Source #2 rejects: ready with #1 and #3 only."""
        engine, surface = _engine({
            "dataSource1": feature_collection("Point", "Polygon"),
            "dataSource2": FetchFailed("https://example.test/2", ConnectionError("down")),
            "dataSource3": feature_collection("LineString"),
        })
        assert _run(engine, surface) is True
        assert engine.ready is True
        assert set(engine.registry.snapshot()) == {
            "dataSource1-Point",
            "dataSource1-Polygon",
            "dataSource3-LineString",
        }
        assert surface.get_source("dataSource2") is None
        assert engine.status()["failed_sources"] == ["dataSource2"]

    def test_parse_failure_tolerated(self):
        engine, surface = _engine({
            "dataSource1": ParseFailed("https://example.test/1"),
            "dataSource2": feature_collection("Point"),
            "dataSource3": feature_collection("Point"),
        })
        assert _run(engine, surface) is True
        assert "dataSource1-Point" not in engine.registry

    def test_every_source_fails(self):
        engine, surface = _engine({
            f"dataSource{i}": FetchFailed(f"https://example.test/{i}") for i in (1, 2, 3)
        })
        assert _run(engine, surface) is True
        assert len(engine.registry) == 0

    def test_unexpected_fetch_error_settles_source(self):
        engine, surface = _engine({
            "dataSource1": feature_collection("Point"),
            "dataSource2": RuntimeError("unexpected"),
            "dataSource3": feature_collection("LineString"),
        })
        assert _run(engine, surface) is True
        status = engine.status()
        assert status["pending_sources"] == []
        assert status["failed_sources"] == ["dataSource2"]
        assert set(engine.registry.snapshot()) == {"dataSource1-Point", "dataSource3-LineString"}

    def test_attach_error_settles_source(self):
        engine, surface = _engine({
            "dataSource1": feature_collection("Point", "Polygon"),
            "dataSource2": feature_collection("Point"),
            "dataSource3": feature_collection("LineString"),
        })
        add_layer = surface.add_layer

        def failing_add_layer(layer):
            if layer["id"] == "dataSource1-Polygon":
                raise ValueError("rejected")
            add_layer(layer)

        surface.add_layer = failing_add_layer
        assert _run(engine, surface) is True
        assert "dataSource1-Polygon" not in engine.gate.expected
        assert "dataSource1-Point" in engine.gate.expected
        assert engine.status()["failed_sources"] == ["dataSource1"]

    def test_fetches_are_concurrent(self):
        """A slow first source does not delay the others."""
        order = []
        engine, surface = _engine(
            {
                "dataSource1": feature_collection("Point"),
                "dataSource2": feature_collection("Polygon"),
                "dataSource3": feature_collection("LineString"),
            },
            delays={"dataSource1": 0.05, "dataSource2": 0.0, "dataSource3": 0.01},
        )
        register = engine.registry.register

        def recording_register(layer_id, color):
            order.append(layer_id)
            return register(layer_id, color)

        engine.registry.register = recording_register
        _run(engine, surface)
        assert engine.fetcher.calls == ["dataSource1", "dataSource2", "dataSource3"]
        assert order == ["dataSource2-Polygon", "dataSource3-LineString", "dataSource1-Point"]

    def test_colors_follow_completion_order(self):
        engine, surface = _engine(
            {
                "dataSource1": feature_collection("Point"),
                "dataSource2": feature_collection("Polygon"),
                "dataSource3": feature_collection("LineString"),
            },
            delays={"dataSource1": 0.03, "dataSource2": 0.0, "dataSource3": 0.01},
        )
        _run(engine, surface)
        snap = engine.registry.snapshot()
        assert snap["dataSource2-Polygon"].color == "#008d75"
        assert snap["dataSource3-LineString"].color == "#00ec0a"
        assert snap["dataSource1-Point"].color == "#014a9f"

    def test_not_ready_before_last_source(self):
        seen = []
        engine, surface = _engine(
            {
                "dataSource1": feature_collection("Point"),
                "dataSource2": feature_collection("Polygon"),
                "dataSource3": feature_collection("LineString"),
            },
            delays={"dataSource3": 0.02},
        )
        surface.on("styledata", lambda e: seen.append((surface.get_layer("dataSource3-LineString"), engine.ready)))
        _run(engine, surface)
        assert seen
        assert all(not ready for layer, ready in seen if layer is None)
        assert engine.ready is True

    def test_ready_stays_ready(self):
        engine, surface = _engine({
            "dataSource1": feature_collection("Point"),
            "dataSource2": feature_collection("Point"),
            "dataSource3": feature_collection("Point"),
        })
        _run(engine, surface)
        engine.toggle("dataSource1-Point")
        engine.gate.source_settled("dataSource2", ok=False)
        assert engine.gate.check(surface) is True
        assert engine.ready is True

    def test_unsupported_kind_skipped_within_source(self):
        engine, surface = _engine({
            "dataSource1": feature_collection("GeometryCollection", "Point"),
            "dataSource2": feature_collection("Polygon"),
            "dataSource3": feature_collection("LineString"),
        })
        assert _run(engine, surface) is True
        assert "dataSource1-Point" in engine.registry
        assert "dataSource1-GeometryCollection" not in engine.registry

    def test_run_waits_for_load(self):
        engine, surface = _engine({
            "dataSource1": feature_collection("Point"),
            "dataSource2": feature_collection("Point"),
            "dataSource3": feature_collection("Point"),
        })

        async def scenario():
            task = asyncio.create_task(engine.run())
            await asyncio.sleep(0.01)
            assert engine.fetcher.calls == []
            surface.load()
            return await task

        assert asyncio.run(scenario()) is True

    def test_duplicate_source_ids_rejected(self):
        sources = _sources(2) + _sources(1)
        with pytest.raises(ValueError):
            LayerSyncEngine(HeadlessMapSurface(), sources)


@pytest.mark.unit
class TestEngineActions:

    @pytest.fixture
    def loaded(self):
        engine, surface = _engine({
            "dataSource1": feature_collection("Point", "Point", "Polygon"),
            "dataSource2": feature_collection("LineString"),
            "dataSource3": feature_collection("MultiPolygon"),
        })
        _run(engine, surface)
        return engine, surface

    def test_toggle_updates_surface(self, loaded):
        engine, surface = loaded
        assert engine.toggle("dataSource1-Polygon") is False
        assert surface.get_layout_property("dataSource1-Polygon", "visibility") == "none"

    def test_toggle_unknown_is_noop(self, loaded):
        engine, _ = loaded
        before = engine.registry.snapshot()
        assert engine.toggle("dataSource9-Point") is None
        assert engine.registry.snapshot() == before

    def test_hover_wired_per_layer(self, loaded):
        engine, surface = loaded
        surface.pointer_move("dataSource1-Point", 0)
        surface.pointer_move("dataSource1-Point", 1)
        assert engine.hover.highlighted("dataSource1-Point").feature_id == 1
        assert surface.hovered_features("dataSource1") == [1]
        assert engine.hover.inspector.properties == {"name": "Point 1"}

    def test_recenter(self, loaded):
        engine, surface = loaded
        surface.set_center((0, 0))
        surface.set_zoom(3)
        engine.recenter()
        assert surface.center == (-76.045441, 36.745131)
        assert surface.zoom == 10

    def test_sidebar_rows(self, loaded):
        engine, _ = loaded
        rows = {row.layer_id: row for row in engine.sidebar()}
        assert rows["dataSource3-MultiPolygon"].source_name == "Source 3"
        assert rows["dataSource3-MultiPolygon"].geometry_label == "MultiPolygon"

    def test_close_clears_hover(self, loaded):
        engine, surface = loaded
        surface.pointer_move("dataSource1-Point", 0)
        engine.close()
        assert surface.hovered_features("dataSource1") == []

    def test_descriptors_recorded(self, loaded):
        engine, _ = loaded
        assert engine.descriptors["dataSource1-Point"].render_type == "point-marker"


@pytest.mark.unit
class TestFromSettings:

    def test_uses_settings(self):
        settings = Settings(
            color_seed=0,
            color_stride=1,
            fill_opacity=0.5,
            data_sources=[{"id": "a", "name": "A", "data": feature_collection("Polygon")}],
        )
        surface = HeadlessMapSurface()
        engine = LayerSyncEngine.from_settings(surface, settings)
        surface.load()
        asyncio.run(engine.run())
        desc = engine.descriptors["a-Polygon"]
        assert desc.assigned_color == "#000001"
        assert desc.paint["fill-opacity"] == 0.5
        assert engine.home == ((settings.map_center_lng, settings.map_center_lat), settings.map_zoom)
