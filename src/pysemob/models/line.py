"""Transit line (route geometry) model."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, Field, computed_field, field_validator, model_validator

from pysemob.ingestion.normalize import safe_float, safe_str
from pysemob.models._base import SemobBaseModel
from pysemob.models.bus import FARE_KEYS

LINE_CODE_KEYS: tuple[str, ...] = ("cd_linha", "linha", "servico", "codigo", "cod_linha")
# Extra keys consulted when matching a line against a requested code.
MATCH_CODE_KEYS: tuple[str, ...] = ("cd_linha", "linha", "servico", "cd_linha_principal", "codigo", "cod_linha")


class Line(SemobBaseModel):
    """A transit line with its route polyline.

    ``coordinates`` are ``[lon, lat]`` pairs; multi-part geometries are
    flattened into a single sequence and ``geometry_kind`` records the
    original type.
    """

    code: str = Field(validation_alias=AliasChoices(*LINE_CODE_KEYS, "code"))
    name: str = ""
    service_label: str = Field(default="", validation_alias=AliasChoices("servico", "service_label"), serialization_alias="serviceLabel")
    coordinates: list[tuple[float, float]] = Field(default_factory=list)
    geometry_kind: Literal["LineString", "MultiLineString"] = Field(
        default="LineString",
        validation_alias=AliasChoices("geometry_kind"),
        serialization_alias="geometryKind",
    )
    fare: float | None = Field(default=None, validation_alias=AliasChoices(*FARE_KEYS, "fare"))

    @field_validator("code", "name", "service_label", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("fare", mode="before")
    @classmethod
    def _coerce_fare(cls, value: Any) -> float | None:
        return safe_float(value)

    @model_validator(mode="after")
    def _default_labels(self) -> Line:
        if not self.name:
            object.__setattr__(self, "name", self.code)
        if not self.service_label:
            object.__setattr__(self, "service_label", self.code)
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return self.code

    def codes(self) -> list[str]:
        """All line codes this record answers to (own code first)."""
        found = [self.code]
        for key in MATCH_CODE_KEYS:
            value = safe_str(self.raw.get(key))
            if value and value not in found:
                found.append(value)
        return found

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_summary(self) -> dict[str, Any]:
        """Payload without the route geometry."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"coordinates"})
