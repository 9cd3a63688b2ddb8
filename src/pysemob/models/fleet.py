"""Fleet registry models: which operator runs which vehicle."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, computed_field, field_validator

from pysemob.ingestion.normalize import normalize_prefix, safe_str
from pysemob.models._base import SemobBaseModel


class FleetVehicle(SemobBaseModel):
    """One record of the fleet registry.

    Parameters
    ----------
    prefix : str
        Vehicle number; joins against :attr:`Bus.prefix`.
    fleet_id : str or None
        Registry record id.
    operator : str or None
        Full operator name as published.
    service : str or None
        Service class the vehicle is assigned to.
    bus_type : str or None
        Vehicle type (e.g. ``"BÁSICO"``, ``"ARTICULADO"``).
    reference_date : str or None
        Date the registry record refers to.
    """

    prefix: str = Field(validation_alias=AliasChoices("numero_veiculo", "prefixo", "prefix"))
    fleet_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("id_frota", "fleet_id"),
        serialization_alias="fleetId",
    )
    operator: str | None = Field(default=None, validation_alias=AliasChoices("operadora", "operator"))
    service: str | None = Field(default=None, validation_alias=AliasChoices("servico", "service"))
    bus_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("tipo_onibus", "bus_type"),
        serialization_alias="busType",
    )
    reference_date: str | None = Field(
        default=None,
        validation_alias=AliasChoices("data_referencia", "reference_date"),
        serialization_alias="referenceDate",
    )

    @field_validator("prefix", "fleet_id", "operator", "service", "bus_type", "reference_date", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return safe_str(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def key(self) -> str:
        return normalize_prefix(self.prefix)


class OperatorInfo(SemobBaseModel):
    """Operator details attached to a live bus."""

    name: str | None = None
    service: str | None = None
    bus_type: str | None = Field(default=None, serialization_alias="busType")
    reference_date: str | None = Field(default=None, serialization_alias="referenceDate")
    color: str | None = None
