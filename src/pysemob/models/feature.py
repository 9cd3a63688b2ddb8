"""Raw GeoJSON feature collection envelope."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Geometry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    coordinates: Any = None


class GeoFeature(BaseModel):
    """A single feature. Properties are kept untyped."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | int | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    geometry: Geometry | None = None

    @field_validator("properties", mode="before")
    @classmethod
    def _null_properties(cls, value: Any) -> Any:
        return {} if value is None else value


class GeoFeatureCollection(BaseModel):
    """Top-level payload returned by the WFS service.

    Features are validated one by one by the transform layer so that a
    single malformed feature does not reject the whole collection.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str = "FeatureCollection"
    features: list[Any] = Field(default_factory=list)
