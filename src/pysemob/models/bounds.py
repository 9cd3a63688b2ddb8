"""Map viewport bounds."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MapBounds(BaseModel):
    """Geographic bounding box of the visible map, in degrees.

    Corners are not required to be ordered; consumers min/max-normalize.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    north: float = Field(ge=-90, le=90)
    south: float = Field(ge=-90, le=90)
    east: float = Field(ge=-180, le=180)
    west: float = Field(ge=-180, le=180)
