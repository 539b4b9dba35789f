"""Layer deriver — one render layer per geometry kind per data source.

A source that mixes kinds (say Point and MultiPolygon) yields one layer per
kind found. Each layer gets its own color and a ``$type`` filter so the map
draws only its geometry. Multi* kinds filter on their base kind because the
map surface reports MultiPolygon features as ``Polygon``.

Paint color is a data-driven expression:

    ["case", ["boolean", ["feature-state", "hover"], False], <highlight>, <color>]

so the map recolors a feature while its hover flag is set without any
layer being rebuilt.
"""

from __future__ import annotations

from loguru import logger

from geolayers.colors import ColorAllocator
from geolayers.config import StyleConfig
from geolayers.errors import UnsupportedGeometry
from geolayers.models import (
    RENDER_TYPES,
    GeometryCollection,
    LayerDescriptor,
    base_geometry_kind,
    layer_id_for,
)


def hover_color_expression(color: str, highlight_color: str) -> list:
    """Paint expression: ``highlight_color`` while hovered, else ``color``."""
    return [
        "case",
        ["boolean", ["feature-state", "hover"], False],
        highlight_color,
        color,
    ]


def _paint_for(render_type: str, color: str, style: StyleConfig) -> dict:
    expr = hover_color_expression(color, style.highlight_color)
    if render_type == "point-marker":
        return {"circle-radius": style.circle_radius, "circle-color": expr}
    if render_type == "line":
        return {"line-width": style.line_width, "line-color": expr}
    return {"fill-color": expr, "fill-opacity": style.fill_opacity}


def describe_layer(
    geometry_kind: str,
    source_id: str,
    color: str,
    style: StyleConfig | None = None,
) -> LayerDescriptor:
    """Build the descriptor for one geometry kind.

    Raises:
        UnsupportedGeometry: ``geometry_kind`` is not one of the six
            GeoJSON geometry types with a render mapping.
    """
    render_type = RENDER_TYPES.get(geometry_kind)
    if render_type is None:
        raise UnsupportedGeometry(geometry_kind)
    style = style or StyleConfig()

    return LayerDescriptor(
        layer_id=layer_id_for(source_id, geometry_kind),
        source_id=source_id,
        geometry_kind=geometry_kind,
        render_type=render_type,
        paint=_paint_for(render_type, color, style),
        geometry_filter=base_geometry_kind(geometry_kind),
        assigned_color=color,
    )


def derive_layers(
    collection: GeometryCollection,
    source_id: str,
    allocator: ColorAllocator,
    style: StyleConfig | None = None,
) -> list[LayerDescriptor]:
    """Derive the render layers for one source's collection.

    Descriptors come out in first-seen geometry kind order. Unsupported
    kinds are logged and skipped, the remaining kinds are still derived.
    Colors are only allocated for kinds that get a layer.
    """
    descriptors: list[LayerDescriptor] = []
    for kind in collection.geometry_kinds():
        if kind not in RENDER_TYPES:
            err = UnsupportedGeometry(kind)
            logger.warning(f"{source_id}: {err}; skipping")
            continue
        descriptors.append(
            describe_layer(kind, source_id, allocator.next_color(), style)
        )
    return descriptors
