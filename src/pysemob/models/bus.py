"""Live bus position model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, computed_field, field_validator

from pysemob.ingestion.normalize import safe_float, safe_str
from pysemob.models._base import SemobBaseModel
from pysemob.models.fleet import OperatorInfo

LINE_CODE_KEYS: tuple[str, ...] = ("cd_linha", "linha", "servico")
FARE_KEYS: tuple[str, ...] = ("tarifa", "vl_tarifa", "valor_tarifa", "preco", "valor")


class Bus(SemobBaseModel):
    """Last known position of a fleet vehicle.

    Parameters
    ----------
    prefix : str
        Vehicle prefix (fleet number). Also the bus id.
    line_code : str or None
        Line the vehicle is operating, ``None`` when not in service.
    lat, lon : float
        Position in geographic degrees.
    speed_kmh : float or None
        Reported speed; upstream uses a comma decimal separator.
    direction : str or None
        Direction of travel as reported (e.g. ``"IDA"``/``"VOLTA"``).
    local_timestamp : str or None
        Upstream local timestamp of the position report.
    fare : float or None
        Fare in BRL, when the position record carries one.
    operator : OperatorInfo or None
        Operator details joined from the fleet registry, when known.
    """

    prefix: str = Field(validation_alias=AliasChoices("prefixo", "prefix", "numero_veiculo", "veiculo", "cd_veiculo"))
    line_code: str | None = Field(
        default=None,
        validation_alias=AliasChoices(*LINE_CODE_KEYS, "line_code"),
        serialization_alias="lineCode",
    )
    lat: float
    lon: float
    speed_kmh: float | None = Field(
        default=None,
        validation_alias=AliasChoices("velocidade", "speed_kmh"),
        serialization_alias="speedKmh",
    )
    direction: str | None = Field(default=None, validation_alias=AliasChoices("sentido", "direction"))
    local_timestamp: str | None = Field(
        default=None,
        validation_alias=AliasChoices("datalocal", "local_timestamp"),
        serialization_alias="localTimestamp",
    )
    fare: float | None = Field(default=None, validation_alias=AliasChoices(*FARE_KEYS, "fare"))
    operator: OperatorInfo | None = None

    @field_validator("prefix", "line_code", "direction", "local_timestamp", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("speed_kmh", "fare", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return self.prefix

    @computed_field  # type: ignore[prop-decorator]
    @property
    def active(self) -> bool:
        """True iff the vehicle reports a line."""
        return bool(self.line_code)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
