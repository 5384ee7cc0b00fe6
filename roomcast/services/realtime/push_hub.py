"""Registry of connected push endpoints.

Each endpoint is one realtime connection (a websocket in production) owned by
an account and joined to zero or more rooms. Fan-out always works on a
snapshot taken under the hub lock, so endpoints may connect, join, leave or
disconnect while a broadcast is in flight.
"""

import asyncio
import threading
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

from loguru import logger

from roomcast.domain.utils.idgen import new_endpoint_id

FrameSender = Callable[[dict], Awaitable[None]]


@dataclass
class _Endpoint:
    endpoint_id: str
    account_id: str | None
    sender: FrameSender
    rooms: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class EndpointView:
    """Immutable copy of an endpoint taken for one fan-out pass."""

    endpoint_id: str
    account_id: str | None
    rooms: frozenset[str]
    sender: FrameSender

    def in_room(self, room: str) -> bool:
        return room in self.rooms


class PushHub:
    def __init__(self):
        self._endpoints: dict[str, _Endpoint] = {}
        self._lock = threading.Lock()

    def connect(
        self,
        account_id: str | None,
        sender: FrameSender,
        rooms: Iterable[str] = (),
        endpoint_id: str | None = None,
    ) -> str:
        endpoint_id = endpoint_id or new_endpoint_id()
        with self._lock:
            self._endpoints[endpoint_id] = _Endpoint(
                endpoint_id=endpoint_id,
                account_id=account_id,
                sender=sender,
                rooms=set(rooms),
            )
        logger.debug("Push endpoint {} connected account={}", endpoint_id, account_id)
        return endpoint_id

    def disconnect(self, endpoint_id: str) -> None:
        with self._lock:
            removed = self._endpoints.pop(endpoint_id, None)
        if removed is not None:
            logger.debug("Push endpoint {} disconnected", endpoint_id)

    def join(self, endpoint_id: str, room: str) -> bool:
        with self._lock:
            endpoint = self._endpoints.get(endpoint_id)
            if endpoint is None:
                return False
            endpoint.rooms.add(room)
            return True

    def leave(self, endpoint_id: str, room: str) -> bool:
        with self._lock:
            endpoint = self._endpoints.get(endpoint_id)
            if endpoint is None:
                return False
            endpoint.rooms.discard(room)
            return True

    def snapshot(self) -> list[EndpointView]:
        with self._lock:
            return [
                EndpointView(
                    endpoint_id=ep.endpoint_id,
                    account_id=ep.account_id,
                    rooms=frozenset(ep.rooms),
                    sender=ep.sender,
                )
                for ep in self._endpoints.values()
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._endpoints)

    async def deliver(self, deliveries: list[tuple[EndpointView, dict]]) -> int:
        """Send each frame to its endpoint concurrently.

        Endpoints whose send fails are dropped from the hub.

        Returns:
            Number of frames delivered successfully
        """
        if not deliveries:
            return 0

        results = await asyncio.gather(
            *(view.sender(frame) for view, frame in deliveries),
            return_exceptions=True,
        )

        delivered = 0
        for (view, frame), result in zip(deliveries, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Failed to push {} to endpoint {}: {}: {}",
                    frame.get("event"),
                    view.endpoint_id,
                    type(result).__name__,
                    result,
                )
                self.disconnect(view.endpoint_id)
            else:
                delivered += 1
        return delivered
