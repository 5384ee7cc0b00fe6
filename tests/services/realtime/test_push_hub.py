"""Tests for the push endpoint registry."""

from roomcast.services.realtime.push_hub import PushHub
from tests.fixtures.live_fixtures import RecordingSender


class TestPushHub:
    def test_connect_assigns_endpoint_id(self):
        """Each connection gets its own endpoint id."""
        hub = PushHub()

        endpoint_id = hub.connect("u1", RecordingSender(), rooms=["a"])

        assert endpoint_id.startswith("ep_")
        assert len(hub) == 1

    def test_join_and_leave(self):
        """Endpoints join and leave rooms."""
        hub = PushHub()
        endpoint_id = hub.connect("u1", RecordingSender())

        assert hub.join(endpoint_id, "a") is True
        assert hub.snapshot()[0].in_room("a") is True

        assert hub.leave(endpoint_id, "a") is True
        assert hub.snapshot()[0].in_room("a") is False

    def test_join_unknown_endpoint(self):
        """Joining with an unknown endpoint is a no-op."""
        hub = PushHub()
        assert hub.join("ep_missing", "a") is False
        assert hub.leave("ep_missing", "a") is False

    def test_snapshot_is_detached(self):
        """Snapshots do not follow later changes."""
        hub = PushHub()
        endpoint_id = hub.connect("u1", RecordingSender(), rooms=["a"])

        snapshot = hub.snapshot()
        hub.join(endpoint_id, "b")
        hub.disconnect(endpoint_id)

        assert len(snapshot) == 1
        assert snapshot[0].rooms == frozenset({"a"})
        assert len(hub) == 0

    def test_disconnect_twice(self):
        """Disconnecting twice is harmless."""
        hub = PushHub()
        endpoint_id = hub.connect("u1", RecordingSender())

        hub.disconnect(endpoint_id)
        hub.disconnect(endpoint_id)

        assert len(hub) == 0

    async def test_deliver_counts_and_drops_failures(self):
        """Delivery counts successes and drops failing endpoints."""
        hub = PushHub()
        good, bad = RecordingSender(), RecordingSender(fail=True)
        hub.connect("u1", good, endpoint_id="ep_good")
        hub.connect("u2", bad, endpoint_id="ep_bad")
        frame = {"event": "live_rooms_changed", "data": {"room": "a", "isLive": True}}

        delivered = await hub.deliver([(view, frame) for view in hub.snapshot()])

        assert delivered == 1
        assert good.frames == [frame]
        assert [view.endpoint_id for view in hub.snapshot()] == ["ep_good"]

    async def test_deliver_nothing(self):
        """Delivering to no endpoints sends nothing."""
        assert await PushHub().deliver([]) == 0
