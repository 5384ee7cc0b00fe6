"""Live session service.

Translates client and media-edge intents into registry transitions, token
minting and filtered push notifications.
"""

import time
from collections.abc import Callable
from urllib.parse import parse_qs, urlencode, urlsplit

from loguru import logger

from roomcast.app_config import LiveSettings
from roomcast.domain.accounts.account_directory import Account, AccountLookup
from roomcast.domain.live.live_models import (
    EdgeDecision,
    EdgeDenyReason,
    LiveRole,
    LiveRoomEntry,
    LiveStatusView,
    WebrtcConfig,
)
from roomcast.domain.live.session.session_registry import (
    SessionRegistry,
    StartOutcome,
    StartResult,
    StopOutcome,
    StopResult,
)
from roomcast.domain.live.token.stream_token import StreamTokenService, TokenScope
from roomcast.domain.live.visibility.visibility_filter import VisibilityFilter
from roomcast.schemas import (
    LivePhase,
    LiveRoomsChangedPayload,
    LiveStatusChangePayload,
    RoomLiveState,
)
from roomcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


def _not_found(room: str) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_NOT_FOUND,
        errmesg=f"No live session visible in room {room}",
        status_code=HttpStatusCode.NOT_FOUND,
    )


class LiveService:
    """Live broadcast operations for one process.

    Args:
        registry: Room session registry
        tokens: Token service, or None when the signing secret is unusable
        visibility: Visibility filter used for checks and push fan-out
        accounts: Account directory
        settings: Validated live settings
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        registry: SessionRegistry,
        tokens: StreamTokenService | None,
        visibility: VisibilityFilter,
        accounts: AccountLookup,
        settings: LiveSettings,
        clock: Callable[[], float] = time.time,
    ):
        self.registry = registry
        self.tokens = tokens
        self.visibility = visibility
        self.accounts = accounts
        self.settings = settings
        self._clock = clock

    def _require_enabled(self) -> None:
        if not self.settings.enabled:
            raise AppError(
                errcode=AppErrorCode.E_LIVE_DISABLED,
                errmesg="Live streaming is disabled",
                status_code=HttpStatusCode.FORBIDDEN,
            )

    def _require_tokens(self) -> StreamTokenService:
        if not self.settings.signing_ready or self.tokens is None:
            raise AppError(
                errcode=AppErrorCode.E_LIVE_MISCONFIGURED,
                errmesg="Stream token signing is not configured",
                status_code=HttpStatusCode.SERVICE_UNAVAILABLE,
            )
        return self.tokens

    def _publisher_name(self, publisher_id: str | None) -> str | None:
        if not publisher_id:
            return None
        account = self.accounts.get_account(publisher_id)
        return account.name if account else None

    def _media_url(self, kind: str, stream_key: str, token: str) -> str:
        query = urlencode({"app": self.settings.media_app, "stream": stream_key, "token": token})
        return f"{self.settings.media_base_url}/rtc/v1/{kind}/?{query}"

    def _status_payload(self, room: str, state: RoomLiveState, is_live: bool) -> LiveStatusChangePayload:
        return LiveStatusChangePayload(
            room=room,
            is_live=is_live,
            publisher_id=state.publisher_id if is_live else None,
            publisher_name=self._publisher_name(state.publisher_id) if is_live else None,
            audio_only=state.audio_only if is_live else False,
        )

    async def announce_live(self, room: str, state: RoomLiveState) -> None:
        await self.visibility.emit_room_status_change(
            room, state.publisher_id, self._status_payload(room, state, is_live=True)
        )
        await self.visibility.emit_room_list_invalidate(LiveRoomsChangedPayload(room=room, is_live=True))

    async def announce_ended(self, room: str, previous: RoomLiveState) -> None:
        await self.visibility.emit_room_status_change(
            room, previous.publisher_id, self._status_payload(room, previous, is_live=False)
        )
        if previous.phase == LivePhase.LIVE:
            await self.visibility.emit_room_list_invalidate(LiveRoomsChangedPayload(room=room, is_live=False))

    async def start(self, room: str, account: Account, audio_only: bool = False) -> StartResult:
        self._require_enabled()
        self._require_tokens()

        result = self.registry.try_start(room, account.account_id, audio_only)
        if result.outcome == StartOutcome.ALREADY_LIVE:
            raise AppError(
                errcode=AppErrorCode.E_LIVE_ALREADY_LIVE,
                errmesg=f"Room {room} already has a publisher",
                status_code=HttpStatusCode.CONFLICT,
            )

        logger.info("Live start room={} publisher={} outcome={}", room, account.account_id, result.outcome.value)
        return result

    async def stop(self, room: str, account: Account) -> StopResult:
        result = self.registry.release(room, account.account_id)

        if result.outcome == StopOutcome.NOT_PUBLISHER:
            raise AppError(
                errcode=AppErrorCode.E_LIVE_NOT_PUBLISHER,
                errmesg=f"Only the publisher can stop the live session in room {room}",
                status_code=HttpStatusCode.FORBIDDEN,
            )

        if result.outcome == StopOutcome.CLEARED:
            logger.info("Live stop room={} publisher={} from={}", room, account.account_id, result.previous.phase)
            await self.announce_ended(room, result.previous)

        return result

    def status(self, room: str, viewer: Account) -> LiveStatusView:
        state = self.registry.get(room)
        if state.phase != LivePhase.LIVE:
            return LiveStatusView()

        if not self.visibility.can_see(viewer.account_id, state.publisher_id):
            raise _not_found(room)

        return LiveStatusView(
            is_live=True,
            publisher_id=state.publisher_id,
            publisher_name=self._publisher_name(state.publisher_id),
            audio_only=state.audio_only,
        )

    def webrtc_config(self, room: str, viewer: Account) -> WebrtcConfig:
        self._require_enabled()
        tokens = self._require_tokens()

        state = self.registry.get(room)
        if state.phase == LivePhase.IDLE or not state.stream_key:
            raise AppError(
                errcode=AppErrorCode.E_LIVE_NO_LOCK,
                errmesg=f"No live session in room {room}",
                status_code=HttpStatusCode.CONFLICT,
            )

        subscribe = tokens.issue(state.stream_key, TokenScope.SUBSCRIBE)
        whep_url = self._media_url("whep", state.stream_key, subscribe.token)

        if state.publisher_id == viewer.account_id:
            publish = tokens.issue(state.stream_key, TokenScope.PUBLISH)
            return WebrtcConfig(
                role=LiveRole.PUBLISHER,
                whip_url=self._media_url("whip", state.stream_key, publish.token),
                whep_url=whep_url,
                expires_at=min(publish.expires_at, subscribe.expires_at),
            )

        if not self.visibility.can_see(viewer.account_id, state.publisher_id):
            raise _not_found(room)

        return WebrtcConfig(role=LiveRole.VIEWER, whep_url=whep_url, expires_at=subscribe.expires_at)

    def list_live_rooms(self, viewer: Account) -> list[LiveRoomEntry]:
        try:
            entries = self.registry.list_live_entries()
            return [
                LiveRoomEntry(
                    room=room,
                    is_live=True,
                    publisher_name=self._publisher_name(state.publisher_id),
                    audio_only=state.audio_only,
                )
                for room, state in entries
                if self.visibility.can_see(viewer.account_id, state.publisher_id)
            ]
        except AppError:
            raise
        except Exception as exc:
            logger.exception("Failed to enumerate live rooms")
            raise AppError(
                errcode=AppErrorCode.E_LIVE_ENUMERATION_FAILED,
                errmesg="Failed to enumerate live rooms",
                status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
            ) from exc

    async def admit_edge(self, scope: TokenScope, original_uri: str | None) -> EdgeDecision:
        """Decide whether the media edge may open a WHIP/WHEP session.

        A successful publish admission confirms the room as LIVE and, on the
        first confirmation, pushes the change to room members and the room list.
        """
        if self.tokens is None or not self.settings.signing_ready:
            return EdgeDecision(admitted=False, reason=EdgeDenyReason.MISCONFIGURED)

        query = parse_qs(urlsplit(original_uri or "").query)
        stream = (query.get("stream") or [None])[0]
        token = (query.get("auth") or query.get("token") or [None])[0]

        verdict = self.tokens.verify(stream, token, scope)
        if not verdict.ok:
            return EdgeDecision(admitted=False, reason=EdgeDenyReason.from_token_reason(verdict.reason))

        if scope == TokenScope.SUBSCRIBE:
            # Snapshot is taken under the room lock that matched the key
            found = self.registry.find_by_stream_key(stream)
            if found is None or not found[1].publisher_id:
                return EdgeDecision(admitted=False, reason=EdgeDenyReason.INVALID_SIGNATURE)
            room, state = found
            if state.phase != LivePhase.LIVE:
                return EdgeDecision(admitted=False, reason=EdgeDenyReason.NOT_LIVE, room=room)
            return EdgeDecision(admitted=True, room=room)

        confirmed = self.registry.mark_live_by_stream_key(stream)
        if confirmed is None:
            return EdgeDecision(admitted=False, reason=EdgeDenyReason.INVALID_SIGNATURE)

        room, _, became_live = confirmed
        if became_live:
            live_state = self.registry.get(room)
            # Cleared between mark_live and get: nothing to announce
            if live_state.phase == LivePhase.LIVE and live_state.stream_key == stream:
                await self.announce_live(room, live_state)

        return EdgeDecision(admitted=True, room=room, became_live=became_live)

    async def reclaim_expired(self) -> list[str]:
        """Reclaim stale STARTING rooms and push a correction to their members."""
        rooms = self.registry.sweep_expired_starting(self.settings.starting_ttl_seconds)
        for room in rooms:
            await self.visibility.emit_room_status_change(
                room,
                None,
                LiveStatusChangePayload(room=room, is_live=False),
            )
        return rooms
