"""Parse GeoJSON (RFC 7946) into a GeometryCollection using stdlib json.

Handles FeatureCollection and bare Feature documents. Features without a
geometry object are dropped; features without an ``id`` get their index.
Geometry kinds are not validated here, the layer deriver decides which
kinds it can render.
"""

from __future__ import annotations

import json

from loguru import logger

from geolayers.errors import ParseFailed
from geolayers.models import Feature, GeometryCollection


def parse_geojson(geojson_string: str | bytes, location: str = "<string>") -> GeometryCollection:
    """Parse a GeoJSON string into a GeometryCollection.

    Args:
        geojson_string: Raw GeoJSON content.
        location: URL or label of the document, used in error messages.

    Raises:
        ParseFailed: On malformed JSON or a document that is not a
            FeatureCollection / Feature.
    """
    try:
        data = json.loads(geojson_string)
    except (json.JSONDecodeError, TypeError, UnicodeDecodeError) as e:
        raise ParseFailed(location, f"invalid JSON: {e}") from e
    return parse_feature_collection(data, location)


def parse_feature_collection(data: object, location: str = "<object>") -> GeometryCollection:
    """Build a GeometryCollection from an already-decoded GeoJSON document."""
    if not isinstance(data, dict):
        raise ParseFailed(location, "document is not a JSON object")

    doc_type = data.get("type")
    if doc_type == "FeatureCollection":
        raw_features = data.get("features")
        if not isinstance(raw_features, list):
            raise ParseFailed(location, "FeatureCollection has no 'features' array")
    elif doc_type == "Feature":
        raw_features = [data]
    else:
        raise ParseFailed(location, f"unexpected GeoJSON type: {doc_type!r}")

    features: list[Feature] = []
    seen: set[int | str] = set()
    for idx, raw in enumerate(raw_features):
        feature = _parse_feature(raw, idx)
        if feature is None:
            continue
        if feature.feature_id in seen:
            logger.warning(
                f"{location}: duplicate feature id {feature.feature_id!r} at index {idx}; "
                f"hover may highlight the wrong feature"
            )
        seen.add(feature.feature_id)
        features.append(feature)

    return GeometryCollection(features=features)


def _parse_feature(raw: object, idx: int) -> Feature | None:
    """Parse a single GeoJSON Feature dict into a Feature."""
    if not isinstance(raw, dict):
        return None

    geometry = raw.get("geometry")
    if not isinstance(geometry, dict):
        return None

    geom_type = geometry.get("type")
    if not isinstance(geom_type, str) or not geom_type:
        return None

    properties = raw.get("properties") or {}
    if not isinstance(properties, dict):
        properties = {}

    feature_id = raw.get("id", idx)
    if not isinstance(feature_id, (int, str)) or isinstance(feature_id, bool):
        feature_id = str(feature_id)

    return Feature(
        feature_id=feature_id,
        geometry_kind=geom_type,
        geometry=geometry,
        properties=properties,
    )
