"""Per-viewer visibility of live broadcasts.

Blocking is bilateral: a viewer cannot see a publisher when either of them
ignores the other's ihash, and an identity whose ihash cannot be resolved is
treated as blocked. Filtering happens when events are emitted, against a
snapshot of connected endpoints; room session state itself is never filtered.
"""

from dataclasses import dataclass

from loguru import logger

from roomcast.domain.accounts.account_directory import AccountLookup
from roomcast.schemas import (
    LiveEventName,
    LiveRoomsChangedPayload,
    LiveStatusChangePayload,
    LiveStatusRedactedPayload,
    build_frame,
)
from roomcast.services.realtime.push_hub import EndpointView, PushHub


def can_see(viewer_id: str | None, publisher_id: str | None, lookup: AccountLookup) -> bool:
    """Whether `viewer_id` may see that `publisher_id` is broadcasting."""
    if viewer_id is not None and viewer_id == publisher_id:
        return True
    if not viewer_id or not publisher_id:
        return False

    viewer_ihash = lookup.get_ihash(viewer_id)
    publisher_ihash = lookup.get_ihash(publisher_id)
    if not viewer_ihash or not publisher_ihash:
        return False

    viewer_ignores_publisher = lookup.is_ignored(viewer_id, publisher_ihash)
    publisher_ignores_viewer = lookup.is_ignored(publisher_id, viewer_ihash)

    return not (viewer_ignores_publisher or publisher_ignores_viewer)


@dataclass(frozen=True)
class FanoutReport:
    full: int = 0
    redacted: int = 0
    delivered: int = 0


class VisibilityFilter:
    def __init__(self, hub: PushHub, lookup: AccountLookup):
        self._hub = hub
        self._lookup = lookup

    def can_see(self, viewer_id: str | None, publisher_id: str | None) -> bool:
        return can_see(viewer_id, publisher_id, self._lookup)

    async def emit_room_status_change(
        self,
        room: str,
        publisher_id: str | None,
        payload: LiveStatusChangePayload,
    ) -> FanoutReport:
        """Send `live_status_change` to every endpoint joined to `room`.

        Viewers allowed to see the publisher get `payload`; everyone else gets
        a redacted payload holding only the room. With no publisher attached
        the payload identifies nobody and is sent to all room members.
        """
        redacted_frame = build_frame(LiveEventName.LIVE_STATUS_CHANGE, LiveStatusRedactedPayload(room=room))
        full_frame = build_frame(LiveEventName.LIVE_STATUS_CHANGE, payload)

        deliveries: list[tuple[EndpointView, dict]] = []
        full = redacted = 0
        for view in self._hub.snapshot():
            if not view.in_room(room):
                continue

            if publisher_id is None or self.can_see(view.account_id, publisher_id):
                deliveries.append((view, full_frame))
                full += 1
            else:
                deliveries.append((view, redacted_frame))
                redacted += 1

        delivered = await self._hub.deliver(deliveries)
        logger.debug(
            "live_status_change room={} isLive={} full={} redacted={} delivered={}",
            room,
            payload.is_live,
            full,
            redacted,
            delivered,
        )
        return FanoutReport(full=full, redacted=redacted, delivered=delivered)

    async def emit_room_list_invalidate(self, payload: LiveRoomsChangedPayload) -> FanoutReport:
        """Broadcast `live_rooms_changed` to all connected endpoints, unfiltered."""
        frame = build_frame(LiveEventName.LIVE_ROOMS_CHANGED, payload)
        deliveries = [(view, frame) for view in self._hub.snapshot()]

        delivered = await self._hub.deliver(deliveries)
        logger.debug("live_rooms_changed room={} delivered={}", payload.room, delivered)
        return FanoutReport(full=len(deliveries), delivered=delivered)
