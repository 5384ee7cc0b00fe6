"""Tests for the push websocket endpoint."""

import time

import pytest
from fastapi import FastAPI, WebSocketDisconnect, status
from fastapi.testclient import TestClient

from roomcast.api.realtime.routers.ws import router
from roomcast.domain.accounts.account_directory import InMemoryAccountDirectory
from roomcast.domain.live.live_context import LiveContext
from roomcast.services.realtime.push_hub import PushHub
from tests.fixtures.live_fixtures import ROOM


@pytest.fixture
def test_client(live_context: LiveContext) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    app.state.live = live_context
    return TestClient(app)


def wait_for_endpoints(hub: PushHub, count: int, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while len(hub) != count and time.monotonic() < deadline:
        time.sleep(0.01)


class TestPushSocket:
    def test_connection_joins_current_room(self, test_client: TestClient, live_context: LiveContext):
        """A socket joins the account's current room and leaves on close."""
        with test_client.websocket_connect("/ws?token=tok_bob"):
            wait_for_endpoints(live_context.hub, 1)

            views = live_context.hub.snapshot()
            assert len(views) == 1
            assert views[0].account_id == "u_bob"
            assert views[0].rooms == frozenset({ROOM})

        wait_for_endpoints(live_context.hub, 0)
        assert len(live_context.hub) == 0

    def test_unknown_token_rejected(self, test_client: TestClient, live_context: LiveContext):
        """Unknown tokens are closed with a policy violation."""
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with test_client.websocket_connect("/ws?token=tok_nobody") as ws:
                ws.receive_text()

        assert exc_info.value.code == status.WS_1008_POLICY_VIOLATION
        assert len(live_context.hub) == 0

    def test_missing_token_rejected(self, test_client: TestClient):
        """Connections without a token are refused."""
        with pytest.raises(WebSocketDisconnect):
            with test_client.websocket_connect("/ws") as ws:
                ws.receive_text()

    def test_dead_account_rejected(
        self,
        test_client: TestClient,
        accounts: InMemoryAccountDirectory,
    ):
        """Dead accounts cannot open a socket."""
        accounts.set_alive("u_bob", False)

        with pytest.raises(WebSocketDisconnect):
            with test_client.websocket_connect("/ws?token=tok_bob") as ws:
                ws.receive_text()
