"""Error taxonomy for the layer sync engine.

None of these are fatal: the engine and the HTTP routers catch them where
the recovery happens and log a warning.
"""

from __future__ import annotations


class GeoLayersError(Exception):
    """Base class for all recoverable engine errors."""


class FetchFailed(GeoLayersError):
    """A data source could not be retrieved (network or HTTP status error)."""

    def __init__(self, url: str, cause: BaseException | None = None) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Fetch failed for {url}: {cause}")


class ParseFailed(GeoLayersError):
    """A data source body was not a valid GeoJSON FeatureCollection."""

    def __init__(self, url: str, reason: str = "malformed GeoJSON") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Parse failed for {url}: {reason}")


class UnsupportedGeometry(GeoLayersError):
    """A geometry kind has no render layer mapping."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Unsupported geometry type: {kind}")


class UnknownLayer(GeoLayersError, KeyError):
    """A toggle or lookup referenced a layer id that was never registered."""

    def __init__(self, layer_id: str) -> None:
        self.layer_id = layer_id
        super().__init__(f"Layer not found: {layer_id}")

    def __str__(self) -> str:
        return f"Layer not found: {self.layer_id}"
