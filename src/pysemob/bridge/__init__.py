"""Bridge between the host process and the embedded rendering surface."""

from pysemob.bridge.channel import BridgeChannel, MemoryChannel, WebSocketChannel, create_memory_channel_pair
from pysemob.bridge.dispatcher import BridgeDispatcher
from pysemob.bridge.protocol import (
    BoundsChangedEvent,
    BridgeCommand,
    BridgeEvent,
    CenterChangedEvent,
    FetchEvent,
    FetchResponseCommand,
    HideLoadingCommand,
    LogEvent,
    MapErrorEvent,
    MapReadyEvent,
    MarkerSelectedEvent,
    RecenterCommand,
    SetBusRouteCommand,
    SetUserMarkerVisibleCommand,
    SetUserPositionCommand,
    ShowLoadingCommand,
    ShowToastCommand,
    UpdateDataCommand,
    UserLocation,
    ZoomChangedEvent,
    parse_command,
    parse_event,
)
from pysemob.bridge.surface import PendingRequest, SurfaceEndpoint

__all__ = [
    "BoundsChangedEvent",
    "BridgeChannel",
    "BridgeCommand",
    "BridgeDispatcher",
    "BridgeEvent",
    "CenterChangedEvent",
    "FetchEvent",
    "FetchResponseCommand",
    "HideLoadingCommand",
    "LogEvent",
    "MapErrorEvent",
    "MapReadyEvent",
    "MarkerSelectedEvent",
    "MemoryChannel",
    "PendingRequest",
    "RecenterCommand",
    "SetBusRouteCommand",
    "SetUserMarkerVisibleCommand",
    "SetUserPositionCommand",
    "ShowLoadingCommand",
    "ShowToastCommand",
    "SurfaceEndpoint",
    "UpdateDataCommand",
    "UserLocation",
    "WebSocketChannel",
    "ZoomChangedEvent",
    "create_memory_channel_pair",
    "parse_command",
    "parse_event",
]
