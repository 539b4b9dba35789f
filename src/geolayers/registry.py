"""ToggleRegistry — visibility and color for every derived layer.

The registry is the only writer of layer visibility on the map surface and
the only thing the sidebar reads from. Each toggle records the new value
before pushing it to the surface, so listeners reacting to the surface
change already see the new value. A rejected push restores the old one.
"""

from __future__ import annotations

from dataclasses import replace

from loguru import logger

from geolayers.errors import UnknownLayer
from geolayers.models import ToggleEntry
from geolayers.surface import HIDDEN, VISIBLE, MapSurface


class ToggleRegistry:
    """Registry of layer toggles bound to one map surface."""

    def __init__(self, surface: MapSurface) -> None:
        self._surface = surface
        self._entries: dict[str, ToggleEntry] = {}

    def register(self, layer_id: str, color: str) -> ToggleEntry:
        """Register a layer as visible with its assigned color.

        Registering an existing id replaces the entry.
        """
        if layer_id in self._entries:
            logger.warning(f"Layer {layer_id} registered twice; replacing entry")
        entry = ToggleEntry(layer_id=layer_id, color=color, visible=True)
        self._entries[layer_id] = entry
        return entry

    def toggle(self, layer_id: str) -> bool:
        """Flip a layer's visibility.

        Returns:
            The new visibility.

        Raises:
            UnknownLayer: If the layer_id was never registered.
        """
        entry = self._entries.get(layer_id)
        if entry is None:
            raise UnknownLayer(layer_id)
        return self.set_visibility(layer_id, not entry.visible)

    def set_visibility(self, layer_id: str, visible: bool) -> bool:
        """Record a layer's visibility and push it to the surface.

        If the surface rejects the change the entry is restored.

        Raises:
            UnknownLayer: If the layer_id was never registered.
        """
        entry = self._entries.get(layer_id)
        if entry is None:
            raise UnknownLayer(layer_id)
        previous = entry.visible
        entry.visible = visible
        try:
            self._surface.set_layout_property(
                layer_id, "visibility", VISIBLE if visible else HIDDEN
            )
        except Exception:
            entry.visible = previous
            raise
        return visible

    def is_visible(self, layer_id: str) -> bool:
        entry = self._entries.get(layer_id)
        if entry is None:
            raise UnknownLayer(layer_id)
        return entry.visible

    def __contains__(self, layer_id: str) -> bool:
        return layer_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> dict[str, ToggleEntry]:
        """Copies of all entries, in registration order."""
        return {lid: replace(entry) for lid, entry in self._entries.items()}
