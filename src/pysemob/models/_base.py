"""Base model for geodata entities.

Every entity model inherits from :class:`SemobBaseModel` which provides:

* Candidate-key lookup through ``validation_alias=AliasChoices(...)``; the
  first key whose value survives sentinel stripping wins.
* A ``model_validator(mode="before")`` that strips upstream sentinel
  values (``""``, ``"NULL"``, ``"N/A"``, NaN) so the next candidate key or
  the field default is used.
* A ``raw`` dict that captures the original feature properties.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pysemob.ingestion.normalize import is_sentinel


class SemobBaseModel(BaseModel):
    """Base for entities built from WFS feature properties."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original feature properties."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in values.items() if not is_sentinel(value)}

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = SemobBaseModel._clean_dict(values)
        # Keep an explicit raw= from the caller.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
