"""Hover interaction — at most one highlighted feature per layer.

Each attached layer is a two-state machine:

    Idle --enter f--> Highlighting(f) --enter g--> Highlighting(g)
                            |
                            +--leave--> Idle

Highlighting sets ``{"hover": True}`` in the surface's feature state, which
the layer's paint expression turns into the highlight color. When the
pointer moves from f to g the flag on f is cleared before it is set on g.
The hovered feature's properties are published to the inspector.

Layers of one source whose filters overlap (Polygon and MultiPolygon) can
highlight the same feature. Its flag stays set until no layer holds it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

from geolayers.errors import UnknownLayer
from geolayers.models import Feature, HighlightState
from geolayers.surface import MapEvent, MapSurface

POINTER_CURSOR = "pointer"


@dataclass
class InspectorView:
    """What the inspector panel displays."""

    layer_id: str
    feature_id: int | str
    properties: dict = field(default_factory=dict)


class HoverController:
    """Per-layer hover state machines sharing one inspector."""

    def __init__(
        self,
        surface: MapSurface,
        on_publish: Callable[[InspectorView | None], None] | None = None,
    ) -> None:
        self._surface = surface
        self._on_publish = on_publish
        self._layer_sources: dict[str, str] = {}
        self._highlights: dict[str, HighlightState] = {}
        # Layers sharing a source and filter can highlight the same feature.
        self._hover_refs: dict[tuple[str, int | str], int] = {}
        self._listeners: dict[str, tuple[Callable, Callable]] = {}
        self.inspector: InspectorView | None = None

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach(self, layer_id: str, source_id: str) -> None:
        """Listen for pointer events on ``layer_id``."""
        if layer_id in self._listeners:
            self.detach(layer_id)

        def on_move(event: MapEvent) -> None:
            if event.features:
                self.pointer_move(layer_id, event.features[0])

        def on_leave(event: MapEvent) -> None:
            self.pointer_leave(layer_id)

        self._layer_sources[layer_id] = source_id
        self._listeners[layer_id] = (on_move, on_leave)
        self._surface.on("mousemove", on_move, layer_id=layer_id)
        self._surface.on("mouseleave", on_leave, layer_id=layer_id)

    def detach(self, layer_id: str) -> None:
        listeners = self._listeners.pop(layer_id, None)
        if listeners is None:
            return
        self.pointer_leave(layer_id)
        on_move, on_leave = listeners
        self._surface.off("mousemove", on_move, layer_id=layer_id)
        self._surface.off("mouseleave", on_leave, layer_id=layer_id)
        self._layer_sources.pop(layer_id, None)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def pointer_move(self, layer_id: str, feature: Feature) -> None:
        """The pointer is over ``feature`` in ``layer_id``.

        Raises:
            UnknownLayer: The layer was never attached.
        """
        source_id = self._layer_sources.get(layer_id)
        if source_id is None:
            raise UnknownLayer(layer_id)

        current = self._highlights.get(layer_id)
        if current is not None and current.feature_id == feature.feature_id:
            return
        if current is not None:
            self._release(current)

        state = HighlightState(layer_id, source_id, feature.feature_id)
        self._highlights[layer_id] = state
        self._acquire(state)
        self._surface.set_cursor(POINTER_CURSOR)
        self._publish(InspectorView(layer_id, feature.feature_id, dict(feature.properties)))

    def pointer_leave(self, layer_id: str) -> None:
        """The pointer left ``layer_id``. No-op when the layer is idle."""
        current = self._highlights.pop(layer_id, None)
        if current is None:
            return
        self._release(current)
        if not self._highlights:
            self._surface.set_cursor("")
        if self.inspector is not None and self.inspector.layer_id == layer_id:
            self._publish(None)

    def highlighted(self, layer_id: str) -> HighlightState | None:
        return self._highlights.get(layer_id)

    def clear_all(self) -> None:
        """Drop every hover flag from the surface (used on shutdown)."""
        for state in self._highlights.values():
            self._surface.remove_feature_state(
                {"source": state.source_id, "id": state.feature_id}, "hover"
            )
        self._highlights.clear()
        self._hover_refs.clear()
        self._publish(None)

    # ------------------------------------------------------------------

    def _acquire(self, state: HighlightState) -> None:
        key = (state.source_id, state.feature_id)
        self._hover_refs[key] = self._hover_refs.get(key, 0) + 1
        if self._hover_refs[key] == 1:
            self._set_hover(state, True)

    def _release(self, state: HighlightState) -> None:
        key = (state.source_id, state.feature_id)
        remaining = self._hover_refs.get(key, 0) - 1
        if remaining > 0:
            self._hover_refs[key] = remaining
            return
        self._hover_refs.pop(key, None)
        self._set_hover(state, False)

    def _set_hover(self, state: HighlightState, hover: bool) -> None:
        self._surface.set_feature_state(
            {"source": state.source_id, "id": state.feature_id}, {"hover": hover}
        )

    def _publish(self, view: InspectorView | None) -> None:
        self.inspector = view
        if view is not None:
            logger.debug(f"Inspector: {view.layer_id} feature {view.feature_id!r}")
        if self._on_publish is not None:
            self._on_publish(view)
