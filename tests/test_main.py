"""Tests for application composition and lifespan."""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from roomcast.domain.accounts.account_directory import InMemoryAccountDirectory
from roomcast.main import build_granian_kwargs, create_app
from tests.fixtures.live_fixtures import EDGE_SECRET, ROOM, FakeClock, make_settings


@pytest_asyncio.fixture
async def running_app(accounts: InMemoryAccountDirectory, clock: FakeClock):
    app = create_app(settings=make_settings(), accounts=accounts, clock=clock)
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(running_app):
    transport = ASGITransport(app=running_app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestCreateApp:
    async def test_lifespan_starts_and_stops_sweeper(self, accounts: InMemoryAccountDirectory, clock: FakeClock):
        """The lifespan starts and stops the sweeper."""
        app = create_app(settings=make_settings(), accounts=accounts, clock=clock)
        sweeper = app.state.live.sweeper

        async with app.router.lifespan_context(app):
            assert sweeper.running is True

        assert sweeper.running is False

    async def test_health(self, client: AsyncClient):
        """The health route answers."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["success"] is True

    async def test_live_routes_mounted_under_prefix(self, client: AsyncClient):
        """Live routes are mounted under the API prefix."""
        response = await client.post(f"/api/live/{ROOM}/start", headers={"X-Chat-Token": "tok_alice"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    async def test_error_envelope(self, client: AsyncClient):
        """Errors use the failure envelope."""
        response = await client.get("/api/live/rooms")

        assert response.status_code == 401
        data = response.json()
        assert data["success"] is False
        assert data["errcode"] == "E_UNAUTHORIZED"
        assert data["error"] == "unauthorized"

    async def test_edge_routes_mounted(self, client: AsyncClient):
        """Edge callbacks are mounted under the API prefix."""
        response = await client.get(
            "/api/internal/live/whip-auth",
            headers={"X-Edge-Secret": EDGE_SECRET, "X-Original-URI": "/rtc/v1/whip/"},
        )

        assert response.status_code == 403
        assert response.headers["X-Live-Auth-Reason"] == "missing-params"

    def test_default_app_fails_closed_without_configuration(self):
        """Without configuration live streaming is off."""
        app = create_app()

        settings = app.state.live.settings
        assert settings.enabled is False
        assert app.state.live.service.tokens is None


class TestGranianKwargs:
    def test_defaults(self):
        """Server settings fall back to defaults."""
        kwargs = build_granian_kwargs()

        assert kwargs["interface"] == "asgi"
        assert isinstance(kwargs["port"], int)
        assert isinstance(kwargs["workers"], int)
