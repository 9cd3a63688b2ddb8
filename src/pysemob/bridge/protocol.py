"""Bridge message protocol between the host and the rendering surface.

Every message is a single-line JSON object with a ``type`` discriminator.
Commands flow host -> surface, events flow surface -> host. Field names
are camelCase on the wire.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from pysemob.exceptions import SemobBridgeError

RequestId = int | str


class BridgeMessage(BaseModel):
    """Base for all bridge messages."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Commands (host -> surface)
# ---------------------------------------------------------------------------


class RecenterCommand(BridgeMessage):
    type: Literal["recenter"] = "recenter"
    lat: float
    lon: float
    zoom: float


class SetUserPositionCommand(BridgeMessage):
    type: Literal["setUserPosition"] = "setUserPosition"
    lat: float
    lon: float
    zoom: float | None = None


class SetUserMarkerVisibleCommand(BridgeMessage):
    type: Literal["setUserMarkerVisible"] = "setUserMarkerVisible"
    visible: bool


class SetBusRouteCommand(BridgeMessage):
    """Show the route overlay for ``line_code``; an empty code clears it."""

    type: Literal["setBusRoute"] = "setBusRoute"
    line_code: str = ""
    lines: list[dict[str, Any]] | None = None


class UserLocation(BridgeMessage):
    lat: float
    lon: float
    accuracy: float | None = None


class UpdateDataCommand(BridgeMessage):
    """Full entity snapshot for the surface. Replaces what it shows."""

    type: Literal["updateData"] = "updateData"
    buses: list[dict[str, Any]] = Field(default_factory=list)
    stops: list[dict[str, Any]] = Field(default_factory=list)
    lines: list[dict[str, Any]] = Field(default_factory=list)
    user_location: UserLocation | None = None
    style: dict[str, Any] = Field(default_factory=dict)
    marker_size: int | None = None


class ShowLoadingCommand(BridgeMessage):
    type: Literal["showLoading"] = "showLoading"
    text: str = ""
    progress: float | None = None


class HideLoadingCommand(BridgeMessage):
    type: Literal["hideLoading"] = "hideLoading"


class ShowToastCommand(BridgeMessage):
    type: Literal["showToast"] = "showToast"
    message: str
    duration_ms: int = 3000


class FetchResponseCommand(BridgeMessage):
    """Reply to a surface ``fetch`` event, correlated by ``id``."""

    type: Literal["fetchResponse"] = "fetchResponse"
    id: RequestId
    ok: bool
    status: int
    body: str = ""


BridgeCommand = Annotated[
    RecenterCommand
    | SetUserPositionCommand
    | SetUserMarkerVisibleCommand
    | SetBusRouteCommand
    | UpdateDataCommand
    | ShowLoadingCommand
    | HideLoadingCommand
    | ShowToastCommand
    | FetchResponseCommand,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Events (surface -> host)
# ---------------------------------------------------------------------------


class LogEvent(BridgeMessage):
    type: Literal["log"] = "log"
    level: str = "info"
    message: str = ""
    tag: str | None = None


class MapReadyEvent(BridgeMessage):
    type: Literal["mapReady"] = "mapReady"


class MapErrorEvent(BridgeMessage):
    type: Literal["mapError"] = "mapError"
    message: str = ""


class BoundsChangedEvent(BridgeMessage):
    type: Literal["boundsChanged"] = "boundsChanged"
    north: float
    south: float
    east: float
    west: float


class CenterChangedEvent(BridgeMessage):
    type: Literal["centerChanged"] = "centerChanged"
    lat: float
    lon: float


class ZoomChangedEvent(BridgeMessage):
    type: Literal["zoomChanged"] = "zoomChanged"
    zoom: float


class FetchEvent(BridgeMessage):
    """The surface asks the host to perform a GET on its behalf."""

    type: Literal["fetch"] = "fetch"
    id: RequestId
    url: str


class MarkerSelectedEvent(BridgeMessage):
    type: Literal["markerSelected"] = "markerSelected"
    kind: Literal["bus", "stop"]
    id: str
    line_code: str | None = None


BridgeEvent = Annotated[
    LogEvent
    | MapReadyEvent
    | MapErrorEvent
    | BoundsChangedEvent
    | CenterChangedEvent
    | ZoomChangedEvent
    | FetchEvent
    | MarkerSelectedEvent,
    Field(discriminator="type"),
]

_COMMAND_ADAPTER: TypeAdapter[BridgeCommand] = TypeAdapter(BridgeCommand)
_EVENT_ADAPTER: TypeAdapter[BridgeEvent] = TypeAdapter(BridgeEvent)


def parse_event(text: str | bytes) -> BridgeEvent:
    """Decode one surface event.

    Raises
    ------
    SemobBridgeError
        If the text is not JSON, has an unknown ``type`` or bad fields.
    """
    try:
        return _EVENT_ADAPTER.validate_json(text)
    except ValidationError as exc:
        raise SemobBridgeError(f"Invalid bridge event: {exc}") from exc


def parse_command(text: str | bytes) -> BridgeCommand:
    """Decode one host command. Raises :class:`SemobBridgeError`."""
    try:
        return _COMMAND_ADAPTER.validate_json(text)
    except ValidationError as exc:
        raise SemobBridgeError(f"Invalid bridge command: {exc}") from exc
