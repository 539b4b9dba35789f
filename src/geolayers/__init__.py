"""GeoJSON layer sync — remote GeoJSON sources rendered as toggleable,
hoverable map layers.

One render layer per geometry kind per source, deterministic colors, a
toggle registry that owns layer visibility, single-feature hover
highlighting and a readiness gate over the configured sources.
"""

from geolayers.colors import ColorAllocator
from geolayers.engine import LayerSyncEngine
from geolayers.errors import (
    FetchFailed,
    GeoLayersError,
    ParseFailed,
    UnknownLayer,
    UnsupportedGeometry,
)
from geolayers.models import DataSourceSpec, Feature, GeometryCollection, LayerDescriptor
from geolayers.surface import HeadlessMapSurface, MapSurface

__all__ = [
    "ColorAllocator",
    "DataSourceSpec",
    "Feature",
    "FetchFailed",
    "GeoLayersError",
    "GeometryCollection",
    "HeadlessMapSurface",
    "LayerDescriptor",
    "LayerSyncEngine",
    "MapSurface",
    "ParseFailed",
    "UnknownLayer",
    "UnsupportedGeometry",
]
