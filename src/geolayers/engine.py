"""LayerSyncEngine — data sources in, map layers out.

Once the map surface has loaded, every configured source is fetched as its
own asyncio task. Sources finish in any order. When one resolves its layers
are derived, added to the surface, registered as toggles, wired for hover
and added to the readiness gate's expected set, all before control returns
to the event loop. A source that fails to fetch or parse is logged and
dropped; the others carry on.

Usage:
    surface = HeadlessMapSurface(center=settings.map_center, zoom=settings.map_zoom)
    engine = LayerSyncEngine.from_settings(surface, settings)
    surface.load()
    await engine.run()
"""

from __future__ import annotations

import asyncio
from typing import Iterable

from loguru import logger

from geolayers.colors import ColorAllocator
from geolayers.config import Settings, StyleConfig
from geolayers.deriver import derive_layers
from geolayers.errors import FetchFailed, ParseFailed, UnknownLayer
from geolayers.fetcher import GeoJSONFetcher
from geolayers.hover import HoverController
from geolayers.models import DataSourceSpec, GeometryCollection, LayerDescriptor
from geolayers.readiness import ReadinessGate
from geolayers.registry import ToggleRegistry
from geolayers.sidebar import SidebarRow, sidebar_rows
from geolayers.surface import MapEvent, MapSurface


class LayerSyncEngine:
    """Keeps a map surface in sync with a fixed list of GeoJSON sources."""

    def __init__(
        self,
        surface: MapSurface,
        sources: Iterable[DataSourceSpec],
        *,
        fetcher: GeoJSONFetcher | None = None,
        allocator: ColorAllocator | None = None,
        style: StyleConfig | None = None,
        home: tuple[tuple[float, float], float] | None = None,
    ) -> None:
        self.sources = list(sources)
        ids = [s.id for s in self.sources]
        dupes = sorted({sid for sid in ids if ids.count(sid) > 1})
        if dupes:
            raise ValueError(f"Duplicate data source ids: {dupes}")

        self.surface = surface
        self.fetcher = fetcher or GeoJSONFetcher()
        self.allocator = allocator or ColorAllocator()
        self.style = style or StyleConfig()
        self.home = home
        self.registry = ToggleRegistry(surface)
        self.hover = HoverController(surface)
        self.gate = ReadinessGate(ids)
        self.descriptors: dict[str, LayerDescriptor] = {}
        self._source_layers: dict[str, list[str]] = {}

        self.surface.on("styledata", self._on_styledata)

    @classmethod
    def from_settings(cls, surface: MapSurface, settings: Settings) -> "LayerSyncEngine":
        return cls(
            surface,
            settings.data_sources,
            fetcher=GeoJSONFetcher(timeout=settings.fetch_timeout),
            allocator=ColorAllocator(seed=settings.color_seed, stride=settings.color_stride),
            style=settings.style_config(),
            home=(settings.map_center, settings.map_zoom),
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def run(self) -> bool:
        """Wait for the surface to load, then load every source.

        Returns:
            Whether the readiness gate is open afterwards.
        """
        await self._wait_for_load()
        await self.load_sources()
        return self.gate.check(self.surface)

    async def load_sources(self) -> None:
        """Fetch all sources concurrently and attach what resolves."""
        logger.info(f"Loading {len(self.sources)} data sources")
        await asyncio.gather(*(self._load_source(s) for s in self.sources))

    async def _load_source(self, source: DataSourceSpec) -> None:
        try:
            collection = await self.fetcher.fetch_source(source)
        except (FetchFailed, ParseFailed) as e:
            logger.warning(f"Data source {source.id} ({source.name}) skipped: {e}")
            self._source_failed(source)
            return
        except Exception as e:
            logger.opt(exception=e).error(f"Data source {source.id} ({source.name}) failed: {e}")
            self._source_failed(source)
            return
        try:
            self.attach_collection(source, collection)
        except Exception as e:
            logger.opt(exception=e).error(
                f"Data source {source.id} ({source.name}) failed to attach: {e}"
            )
            self._source_failed(source)

    def _source_failed(self, source: DataSourceSpec) -> None:
        # Layers this source never got onto the surface are no longer waited on.
        for layer_id in self._source_layers.get(source.id, []):
            if self.surface.get_layer(layer_id) is None:
                self.gate.withdraw(layer_id)
        self.gate.source_settled(source.id, ok=False)
        self.gate.check(self.surface)

    def attach_collection(
        self, source: DataSourceSpec, collection: GeometryCollection
    ) -> list[LayerDescriptor]:
        """Derive and attach the layers of one resolved source."""
        descriptors = derive_layers(collection, source.id, self.allocator, self.style)
        self._source_layers[source.id] = [d.layer_id for d in descriptors]
        for desc in descriptors:
            self.gate.expect(desc.layer_id)

        self.surface.add_source(
            source.id, {"type": "geojson", "data": collection.to_geojson()}
        )
        for desc in descriptors:
            self.surface.add_layer(desc.to_style_layer())
            self.registry.register(desc.layer_id, desc.assigned_color)
            self.hover.attach(desc.layer_id, source.id)
            self.descriptors[desc.layer_id] = desc

        self.gate.source_settled(source.id, ok=True)
        logger.info(
            f"Data source {source.id} ({source.name}): {len(collection.features)} features, "
            f"layers {[d.layer_id for d in descriptors]}"
        )
        self.gate.check(self.surface)
        return descriptors

    async def _wait_for_load(self) -> None:
        if self.surface.loaded():
            return
        loaded = asyncio.Event()

        def on_load(event: MapEvent) -> None:
            loaded.set()

        self.surface.on("load", on_load)
        try:
            await loaded.wait()
        finally:
            self.surface.off("load", on_load)

    def _on_styledata(self, event: MapEvent) -> None:
        self.gate.check(self.surface)

    # ------------------------------------------------------------------
    # UI actions
    # ------------------------------------------------------------------

    @property
    def ready(self) -> bool:
        return self.gate.ready

    def toggle(self, layer_id: str) -> bool | None:
        """Toggle a layer from the sidebar. Unknown ids are logged, not raised."""
        try:
            return self.registry.toggle(layer_id)
        except UnknownLayer as e:
            logger.warning(f"Toggle ignored: {e}")
            return None

    def recenter(self) -> None:
        """Reset the viewport to the configured home center and zoom."""
        if self.home is None:
            return
        center, zoom = self.home
        self.surface.set_center(center)
        self.surface.set_zoom(zoom)

    def sidebar(self) -> list[SidebarRow]:
        return sidebar_rows(self.registry.snapshot(), self.sources)

    def status(self) -> dict:
        return {
            "ready": self.gate.ready,
            "expected_layers": self.gate.expected,
            "pending_sources": sorted(self.gate.pending_sources),
            "failed_sources": sorted(self.gate.failed_sources),
        }

    def close(self) -> None:
        self.hover.clear_all()
        self.surface.off("styledata", self._on_styledata)
