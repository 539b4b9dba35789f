"""Sidebar rows built from a toggle registry snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from geolayers.models import DataSourceSpec, ToggleEntry


@dataclass
class SidebarRow:
    layer_id: str
    source_id: str
    source_name: str
    geometry_label: str
    color: str
    visible: bool


def owning_source(layer_id: str, sources: Iterable[DataSourceSpec]) -> DataSourceSpec | None:
    """The source whose id prefixes ``layer_id`` (``"<source_id>-"``).

    The longest matching id wins, so ``src1`` never claims ``src10-Point``.
    """
    best: DataSourceSpec | None = None
    for source in sources:
        if layer_id.startswith(f"{source.id}-"):
            if best is None or len(source.id) > len(best.id):
                best = source
    return best


def sidebar_rows(
    snapshot: dict[str, ToggleEntry],
    sources: Iterable[DataSourceSpec],
) -> list[SidebarRow]:
    """One row per toggle entry, labelled with its source name and geometry."""
    sources = list(sources)
    rows = []
    for layer_id, entry in snapshot.items():
        source = owning_source(layer_id, sources)
        if source is None:
            source_id, name, label = "", layer_id, layer_id
        else:
            source_id, name = source.id, source.name
            label = layer_id[len(source.id) + 1:]
        rows.append(
            SidebarRow(
                layer_id=layer_id,
                source_id=source_id,
                source_name=name,
                geometry_label=label,
                color=entry.color,
                visible=entry.visible,
            )
        )
    return rows
