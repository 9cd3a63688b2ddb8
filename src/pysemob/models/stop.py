"""Bus stop model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, computed_field, field_validator, model_validator

from pysemob._constants import DEFAULT_STOP_NAME
from pysemob.ingestion.normalize import is_active_status, safe_str
from pysemob.models._base import SemobBaseModel


class Stop(SemobBaseModel):
    """A bus stop.

    ``code`` falls back to a synthetic ``"lat-lon"`` key when the source
    record has none; ``id`` always equals ``code``.
    """

    code: str = Field(default="", validation_alias=AliasChoices("parada", "cd_parada", "codigo", "id", "code"))
    name: str = Field(
        default=DEFAULT_STOP_NAME,
        validation_alias=AliasChoices("descricao", "ds_ponto", "nm_parada", "nome", "ds_descricao", "name"),
    )
    lat: float
    lon: float
    status: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ativa", "ativo", "st_ativa", "status", "situacao"),
        exclude=True,
    )

    @field_validator("code", "name", "status", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return safe_str(value)

    @model_validator(mode="after")
    def _synthetic_code(self) -> Stop:
        if not self.code:
            object.__setattr__(self, "code", f"{self.lat}-{self.lon}")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return self.code

    @property
    def active(self) -> bool:
        """False only for recognised "inactive" status values."""
        return is_active_status(self.status)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
