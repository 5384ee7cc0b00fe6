from .live_events import (
    LiveEventName,
    LiveRoomsChangedPayload,
    LiveStatusChangePayload,
    LiveStatusEventPayload,
    LiveStatusRedactedPayload,
    build_frame,
)
from .live_room import RoomLiveState
from .live_state import LivePhase

__all__ = [
    "LiveEventName",
    "LivePhase",
    "LiveRoomsChangedPayload",
    "LiveStatusChangePayload",
    "LiveStatusEventPayload",
    "LiveStatusRedactedPayload",
    "RoomLiveState",
    "build_frame",
]
