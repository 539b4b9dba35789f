"""Configuration management using Pydantic settings."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from geolayers.models import DataSourceSpec

_VBGOV_REST = "https://geo.vbgov.com/mapservices/rest/services/Basemaps"
_GEOJSON_QUERY = "query?outFields=*&where=1%3D1&f=geojson"


def _default_data_sources() -> list[DataSourceSpec]:
    return [
        DataSourceSpec(
            id="dataSource1",
            name="City Boundary",
            url=f"{_VBGOV_REST}/Property_Information/MapServer/18/{_GEOJSON_QUERY}",
        ),
        DataSourceSpec(
            id="dataSource2",
            name="Aircraft Noise Levels (AICUZ)",
            url=f"{_VBGOV_REST}/AICUZ/MapServer/3/{_GEOJSON_QUERY}",
        ),
        DataSourceSpec(
            id="dataSource3",
            name="Road Surfaces",
            url=f"{_VBGOV_REST}/Structures_and_Physical_Features/MapServer/11/{_GEOJSON_QUERY}",
        ),
    ]


@dataclass(frozen=True)
class StyleConfig:
    """Paint constants handed to the layer deriver."""

    highlight_color: str = "#ff4500"
    circle_radius: float = 5
    line_width: float = 2
    fill_opacity: float = 0.25


_STYLE_DEFAULTS = StyleConfig()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "GEOLAYERS"
    debug: bool = False

    # Map widget
    mapbox_access_token: str = ""
    map_style: str = "mapbox://styles/mapbox/light-v11"
    map_center_lng: float = -76.045441
    map_center_lat: float = 36.745131
    map_zoom: float = 10

    # Color allocator. Changing either value changes every assigned color.
    color_seed: int = 12000
    color_stride: int = 24213

    # Paint
    highlight_color: str = _STYLE_DEFAULTS.highlight_color
    circle_radius: float = _STYLE_DEFAULTS.circle_radius
    line_width: float = _STYLE_DEFAULTS.line_width
    fill_opacity: float = _STYLE_DEFAULTS.fill_opacity

    # Fetching
    fetch_timeout: float = 30.0

    # Data sources (JSON list in the DATA_SOURCES env var)
    data_sources: list[DataSourceSpec] = Field(default_factory=_default_data_sources)

    @property
    def map_center(self) -> tuple[float, float]:
        return (self.map_center_lng, self.map_center_lat)

    def style_config(self) -> StyleConfig:
        return StyleConfig(
            highlight_color=self.highlight_color,
            circle_radius=self.circle_radius,
            line_width=self.line_width,
            fill_opacity=self.fill_opacity,
        )


settings = Settings()
