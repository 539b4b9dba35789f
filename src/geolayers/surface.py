"""Map surface — the narrow interface the engine drives, plus a headless
in-memory implementation.

The engine never draws anything. It talks to a map widget through the
MapSurface protocol: sources, layers, layout visibility, per-feature state
and an event subscription API modelled on Mapbox GL (``load``,
``styledata``, per-layer ``mousemove`` / ``mouseleave``).

HeadlessMapSurface keeps all of that in dicts. The HTTP app uses it as the
server-side map model that the browser mirrors, and tests use it in place
of a real rendering backend.

Usage:
    surface = HeadlessMapSurface(center=(-76.0, 36.7), zoom=10)
    surface.on("styledata", lambda event: print(event.type))
    surface.load()
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

from loguru import logger

from geolayers.geojson import parse_feature_collection
from geolayers.models import Feature, GeometryCollection, base_geometry_kind

VISIBLE = "visible"
HIDDEN = "none"


@dataclass
class MapEvent:
    """An event delivered to surface subscribers.

    ``layer_id`` and ``features`` are only set for pointer events.
    """

    type: str
    layer_id: str | None = None
    features: list[Feature] = field(default_factory=list)


Handler = Callable[[MapEvent], Any]


def _matches_filter(layer: dict, feature: Feature) -> bool:
    """Evaluate the ``["==", "$type", kind]`` filters the deriver emits."""
    flt = layer.get("filter")
    if not flt:
        return True
    if len(flt) == 3 and flt[0] == "==" and flt[1] == "$type":
        return base_geometry_kind(feature.geometry_kind) == flt[2]
    return True


@runtime_checkable
class MapSurface(Protocol):
    """What the engine needs from a map widget."""

    def add_source(self, source_id: str, source: dict) -> None: ...

    def add_layer(self, layer: dict) -> None: ...

    def get_layer(self, layer_id: str) -> dict | None: ...

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None: ...

    def get_layout_property(self, layer_id: str, name: str) -> Any: ...

    def set_feature_state(self, target: dict, state: dict) -> None: ...

    def remove_feature_state(self, target: dict, key: str | None = None) -> None: ...

    def get_feature_state(self, target: dict) -> dict: ...

    def on(self, event: str, handler: Handler, layer_id: str | None = None) -> None: ...

    def off(self, event: str, handler: Handler, layer_id: str | None = None) -> None: ...

    def loaded(self) -> bool: ...

    def set_center(self, center: tuple[float, float]) -> None: ...

    def set_zoom(self, zoom: float) -> None: ...

    def set_cursor(self, cursor: str) -> None: ...


class HeadlessMapSurface:
    """In-memory MapSurface.

    Style mutations (``add_source``, ``add_layer``, ``set_layout_property``)
    fire ``styledata`` synchronously after the change, the way the browser
    widget does. Every feature-state write is appended to
    ``feature_state_log`` so ordering can be inspected.
    """

    def __init__(
        self,
        center: tuple[float, float] = (0.0, 0.0),
        zoom: float = 0.0,
        style: str = "",
    ) -> None:
        self.style = style
        self.center = center
        self.zoom = zoom
        self.cursor = ""
        self.feature_state_log: list[tuple[str, str, int | str, dict]] = []
        self._loaded = False
        self._sources: dict[str, dict] = {}
        self._source_features: dict[str, GeometryCollection] = {}
        self._layers: dict[str, dict] = {}
        self._feature_state: dict[tuple[str, int | str], dict] = {}
        self._handlers: dict[tuple[str, str | None], list[Handler]] = defaultdict(list)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, handler: Handler, layer_id: str | None = None) -> None:
        self._handlers[(event, layer_id)].append(handler)

    def off(self, event: str, handler: Handler, layer_id: str | None = None) -> None:
        try:
            self._handlers[(event, layer_id)].remove(handler)
        except ValueError:
            pass

    def fire(self, event: MapEvent) -> None:
        """Deliver ``event`` to its subscribers in subscription order."""
        for handler in list(self._handlers.get((event.type, event.layer_id), ())):
            handler(event)

    def load(self) -> None:
        """Mark the style as loaded and fire ``load`` once."""
        if self._loaded:
            return
        self._loaded = True
        self.fire(MapEvent("load"))

    def loaded(self) -> bool:
        return self._loaded

    # ------------------------------------------------------------------
    # Sources and layers
    # ------------------------------------------------------------------

    def add_source(self, source_id: str, source: dict) -> None:
        """Add a GeoJSON source.

        Raises:
            ValueError: A source with this id already exists.
        """
        if source_id in self._sources:
            raise ValueError(f"There is already a source with ID \"{source_id}\"")
        self._sources[source_id] = source
        data = source.get("data")
        if isinstance(data, dict):
            self._source_features[source_id] = parse_feature_collection(data, source_id)
        self.fire(MapEvent("styledata"))

    def add_layer(self, layer: dict) -> None:
        """Add a layer.

        Raises:
            ValueError: Duplicate layer id or missing source.
        """
        layer_id = layer["id"]
        if layer_id in self._layers:
            raise ValueError(f"Layer with id \"{layer_id}\" already exists on this map")
        if layer.get("source") not in self._sources:
            raise ValueError(f"Source \"{layer.get('source')}\" not found")
        stored = dict(layer)
        stored["layout"] = dict(layer.get("layout") or {})
        stored["layout"].setdefault("visibility", VISIBLE)
        self._layers[layer_id] = stored
        self.fire(MapEvent("styledata"))

    def get_layer(self, layer_id: str) -> dict | None:
        return self._layers.get(layer_id)

    def get_source(self, source_id: str) -> dict | None:
        return self._sources.get(source_id)

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None:
        """Set a layout property on an existing layer.

        Raises:
            KeyError: The layer does not exist.
        """
        layer = self._layers.get(layer_id)
        if layer is None:
            raise KeyError(f"The layer '{layer_id}' does not exist in the map's style")
        layer["layout"][name] = value
        self.fire(MapEvent("styledata"))

    def get_layout_property(self, layer_id: str, name: str) -> Any:
        layer = self._layers.get(layer_id)
        if layer is None:
            raise KeyError(f"The layer '{layer_id}' does not exist in the map's style")
        return layer["layout"].get(name)

    # ------------------------------------------------------------------
    # Feature state
    # ------------------------------------------------------------------

    def set_feature_state(self, target: dict, state: dict) -> None:
        key = (target["source"], target["id"])
        self._feature_state.setdefault(key, {}).update(state)
        self.feature_state_log.append(("set", key[0], key[1], dict(state)))

    def remove_feature_state(self, target: dict, key: str | None = None) -> None:
        fkey = (target["source"], target["id"])
        current = self._feature_state.get(fkey)
        if current is None:
            return
        if key is None:
            del self._feature_state[fkey]
        else:
            current.pop(key, None)
        self.feature_state_log.append(("remove", fkey[0], fkey[1], {} if key is None else {key: None}))

    def get_feature_state(self, target: dict) -> dict:
        return dict(self._feature_state.get((target["source"], target["id"]), {}))

    def hovered_features(self, source_id: str) -> list[int | str]:
        """Feature ids in ``source_id`` whose hover flag is currently set."""
        return [
            fid for (sid, fid), state in self._feature_state.items()
            if sid == source_id and state.get("hover")
        ]

    # ------------------------------------------------------------------
    # Viewport and pointer
    # ------------------------------------------------------------------

    def set_center(self, center: tuple[float, float]) -> None:
        self.center = (float(center[0]), float(center[1]))

    def set_zoom(self, zoom: float) -> None:
        self.zoom = float(zoom)

    def set_cursor(self, cursor: str) -> None:
        self.cursor = cursor

    def pointer_move(self, layer_id: str, feature_id: int | str) -> bool:
        """Simulate the pointer moving over ``feature_id`` in ``layer_id``.

        Returns False (and fires nothing) when the layer is unknown, hidden,
        or does not contain the feature.
        """
        layer = self._layers.get(layer_id)
        if layer is None or layer["layout"].get("visibility") == HIDDEN:
            return False
        collection = self._source_features.get(layer["source"])
        feature = collection.get_feature(feature_id) if collection else None
        if feature is None or not _matches_filter(layer, feature):
            logger.debug(f"pointer_move: no feature {feature_id!r} in {layer_id}")
            return False
        self.fire(MapEvent("mousemove", layer_id=layer_id, features=[feature]))
        return True

    def pointer_leave(self, layer_id: str) -> bool:
        """Simulate the pointer leaving ``layer_id``'s hit region."""
        if layer_id not in self._layers:
            return False
        self.fire(MapEvent("mouseleave", layer_id=layer_id))
        return True

    def style_snapshot(self) -> dict:
        """The current style as a JSON-able document for the browser."""
        return {
            "version": 8,
            "style": self.style,
            "center": list(self.center),
            "zoom": self.zoom,
            "sources": {sid: dict(src) for sid, src in self._sources.items()},
            "layers": [dict(layer) for layer in self._layers.values()],
        }
