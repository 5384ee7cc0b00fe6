"""Push event payloads sent over the realtime transport.

Each event name has a fixed set of payload models; nothing else may be sent
under that name.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class LiveEventName(str, Enum):
    LIVE_STATUS_CHANGE = "live_status_change"
    LIVE_ROOMS_CHANGED = "live_rooms_changed"

    def __str__(self) -> str:
        return self.value


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude={"kind"})


class LiveStatusChangePayload(_Payload):
    """Full status change, sent to viewers allowed to see the publisher."""

    kind: Literal["full"] = "full"
    room: str
    is_live: bool = Field(alias="isLive")
    publisher_id: str | None = Field(default=None, alias="publisherId")
    publisher_name: str | None = Field(default=None, alias="publisherName")
    audio_only: bool = Field(default=False, alias="audioOnly")


class LiveStatusRedactedPayload(_Payload):
    """Status change for blocked viewers: only tells them to drop cached state."""

    kind: Literal["redacted"] = "redacted"
    room: str


class LiveRoomsChangedPayload(_Payload):
    """Room-list invalidation signal; carries nothing about the publisher."""

    kind: Literal["rooms_changed"] = "rooms_changed"
    room: str
    is_live: bool = Field(alias="isLive")


LiveStatusEventPayload = LiveStatusChangePayload | LiveStatusRedactedPayload

EVENT_PAYLOADS: dict[LiveEventName, tuple[type[_Payload], ...]] = {
    LiveEventName.LIVE_STATUS_CHANGE: (LiveStatusChangePayload, LiveStatusRedactedPayload),
    LiveEventName.LIVE_ROOMS_CHANGED: (LiveRoomsChangedPayload,),
}


def build_frame(event: LiveEventName, payload: _Payload) -> dict:
    """Build the wire frame `{"event": name, "data": payload}`."""
    allowed = EVENT_PAYLOADS[event]
    if not isinstance(payload, allowed):
        raise TypeError(f"{type(payload).__name__} is not a valid payload for {event}")
    return {"event": event.value, "data": payload.to_wire()}
