"""Data model for the layer sync engine.

Data sources are pydantic models because they are loaded from settings.
Everything derived at runtime is a plain dataclass. Coordinates stay in
GeoJSON convention ([lng, lat]); the engine only reads geometry kinds,
feature ids and properties.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

GEOMETRY_KINDS = (
    "Point",
    "LineString",
    "Polygon",
    "MultiPoint",
    "MultiLineString",
    "MultiPolygon",
)

# Render type per geometry kind. Multi* kinds share their base kind's type.
RENDER_TYPES = {
    "Point": "point-marker",
    "MultiPoint": "point-marker",
    "LineString": "line",
    "MultiLineString": "line",
    "Polygon": "fill",
    "MultiPolygon": "fill",
}

# render_type -> map surface layer type
SURFACE_LAYER_TYPES = {
    "point-marker": "circle",
    "line": "line",
    "fill": "fill",
}


def layer_id_for(source_id: str, geometry_kind: str) -> str:
    """Derive the layer id for one geometry kind of one source.

    The rule is exactly ``f"{source_id}-{geometry_kind}"``. The sidebar relies
    on it to slice the geometry label back out of the id.
    """
    return f"{source_id}-{geometry_kind}"


def base_geometry_kind(geometry_kind: str) -> str:
    """Collapse ``MultiPolygon`` to ``Polygon`` etc.; other kinds pass through."""
    if geometry_kind.startswith("Multi"):
        return geometry_kind[len("Multi"):]
    return geometry_kind


class DataSourceSpec(BaseModel):
    """A configured data source: a remote URL or an inline FeatureCollection."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str
    url: str | None = None
    data: dict | None = None

    @model_validator(mode="after")
    def _url_or_data(self) -> "DataSourceSpec":
        if (self.url is None) == (self.data is None):
            raise ValueError("exactly one of 'url' or 'data' must be set")
        return self

    @property
    def location(self) -> str:
        """Where the data comes from, for log lines and error messages."""
        return self.url if self.url is not None else f"inline:{self.id}"


@dataclass
class Feature:
    """A single GeoJSON feature.

    Attributes:
        feature_id: Identifier unique within its source. Taken from the
            GeoJSON ``id`` member, or the feature's index when absent.
        geometry_kind: GeoJSON geometry type, e.g. "Point" or "MultiPolygon".
            Unknown kinds are kept so the deriver can reject them.
        geometry: The raw GeoJSON geometry object.
        properties: Scalar key-value metadata shown in the inspector.
    """

    feature_id: int | str
    geometry_kind: str
    geometry: dict
    properties: dict = field(default_factory=dict)


@dataclass
class GeometryCollection:
    """The parsed contents of one data source."""

    features: list[Feature] = field(default_factory=list)

    def geometry_kinds(self) -> list[str]:
        """Distinct geometry kinds in first-seen order."""
        return list(dict.fromkeys(f.geometry_kind for f in self.features))

    def get_feature(self, feature_id: int | str) -> Feature | None:
        for feature in self.features:
            if feature.feature_id == feature_id:
                return feature
        return None

    def to_geojson(self) -> dict:
        return {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "id": f.feature_id,
                    "geometry": f.geometry,
                    "properties": f.properties,
                }
                for f in self.features
            ],
        }


@dataclass(frozen=True)
class LayerDescriptor:
    """One render layer: a single geometry kind of a single source.

    Attributes:
        layer_id: ``layer_id_for(source_id, geometry_kind)``.
        source_id: Id of the owning data source (also the map source id).
        geometry_kind: The geometry kind as found in the data.
        render_type: "point-marker", "line" or "fill".
        paint: Paint properties. The color entry is a ``case`` expression
            switching to the highlight color while the feature is hovered.
        geometry_filter: Base geometry kind this layer draws.
        assigned_color: ``#rrggbb`` color from the allocator.
    """

    layer_id: str
    source_id: str
    geometry_kind: str
    render_type: str
    paint: dict[str, Any]
    geometry_filter: str
    assigned_color: str

    def to_style_layer(self) -> dict:
        """The layer document handed to ``MapSurface.add_layer``."""
        return {
            "id": self.layer_id,
            "type": SURFACE_LAYER_TYPES[self.render_type],
            "source": self.source_id,
            "layout": {"visibility": "visible"},
            "paint": dict(self.paint),
            "filter": ["==", "$type", self.geometry_filter],
        }


@dataclass
class ToggleEntry:
    """Sidebar toggle state for one layer."""

    layer_id: str
    color: str
    visible: bool = True


@dataclass(frozen=True)
class HighlightState:
    """The feature currently hovered in one layer."""

    layer_id: str
    source_id: str
    feature_id: int | str
