"""GeoJSON fetcher — one GET per data source, no retry.

Network and HTTP status errors become FetchFailed, bodies that are not a
FeatureCollection become ParseFailed. Callers decide what a failure means;
the engine drops the source and keeps going.
"""

from __future__ import annotations

import httpx

from geolayers.errors import FetchFailed
from geolayers.geojson import parse_feature_collection, parse_geojson
from geolayers.models import DataSourceSpec, GeometryCollection

_USER_AGENT = "GEOLAYERS/0.1.0"


class GeoJSONFetcher:
    """Retrieve remote GeoJSON FeatureCollections."""

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    async def fetch(self, url: str) -> GeometryCollection:
        """GET ``url`` and parse the body.

        Raises:
            FetchFailed: Connection error, timeout or non-2xx status.
            ParseFailed: Body is not valid GeoJSON.
        """
        async with httpx.AsyncClient() as client:
            try:
                resp = await client.get(
                    url,
                    headers={"User-Agent": _USER_AGENT},
                    timeout=self.timeout,
                    follow_redirects=True,
                )
                resp.raise_for_status()
            except httpx.HTTPError as e:
                raise FetchFailed(url, e) from e

        return parse_geojson(resp.content, url)

    async def fetch_source(self, source: DataSourceSpec) -> GeometryCollection:
        """Resolve a data source, skipping the network for inline data."""
        if source.data is not None:
            return parse_feature_collection(source.data, source.location)
        return await self.fetch(source.url)
