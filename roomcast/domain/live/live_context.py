"""Composition of the live subsystem for one process."""

import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from roomcast.app_config import LiveSettings
from roomcast.domain.accounts.account_directory import AccountLookup, InMemoryAccountDirectory
from roomcast.domain.live.live_domain import LiveService
from roomcast.domain.live.session.session_registry import SessionRegistry
from roomcast.domain.live.token.stream_token import StreamTokenService
from roomcast.domain.live.visibility.visibility_filter import VisibilityFilter
from roomcast.services.realtime.push_hub import PushHub
from roomcast.workers.live_sweeper import LiveExpirySweeper


@dataclass
class LiveContext:
    settings: LiveSettings
    accounts: AccountLookup
    registry: SessionRegistry
    hub: PushHub
    visibility: VisibilityFilter
    service: LiveService
    sweeper: LiveExpirySweeper

    async def start(self) -> None:
        self.sweeper.start()

    async def stop(self) -> None:
        await self.sweeper.stop()


def build_live_context(
    settings: LiveSettings,
    accounts: AccountLookup | None = None,
    clock: Callable[[], float] = time.time,
) -> LiveContext:
    accounts = accounts if accounts is not None else InMemoryAccountDirectory()
    registry = SessionRegistry(clock=clock)
    hub = PushHub()
    visibility = VisibilityFilter(hub, accounts)

    tokens = None
    if settings.signing_ready:
        tokens = StreamTokenService(
            settings.token_secret.get_secret_value(),
            ttl_seconds=settings.token_ttl_seconds,
            clock=clock,
        )
    else:
        logger.warning("Stream token service unavailable: signing secret is not usable")

    service = LiveService(
        registry=registry,
        tokens=tokens,
        visibility=visibility,
        accounts=accounts,
        settings=settings,
        clock=clock,
    )
    sweeper = LiveExpirySweeper(service.reclaim_expired, interval_seconds=settings.sweep_interval_seconds)

    return LiveContext(
        settings=settings,
        accounts=accounts,
        registry=registry,
        hub=hub,
        visibility=visibility,
        service=service,
        sweeper=sweeper,
    )
