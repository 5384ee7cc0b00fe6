"""Client control surface for live broadcasts.

Every route requires the `X-Chat-Token` header of an account that is
currently in a room. Per-room routes additionally require the caller to be a
member of that room. Room identifiers may contain `/`.
"""

from fastapi import APIRouter, Body, Depends

from roomcast.api.dependency import PresentAccount, RoomMember, get_live_service
from roomcast.api.live.schemas.live import (
    LiveOkOut,
    LiveRoomOut,
    LiveStatusOut,
    StartLiveIn,
    WebrtcConfigOut,
)
from roomcast.domain.live.live_domain import LiveService

router = APIRouter(prefix="/live", tags=["Live"])


@router.get("/rooms")
async def list_live_rooms(
    account: PresentAccount,
    service: LiveService = Depends(get_live_service),
) -> list[LiveRoomOut]:
    """Rooms whose broadcast is confirmed live, sorted by room identifier."""
    return [LiveRoomOut.from_entry(entry) for entry in service.list_live_rooms(account)]


@router.post("/{room:path}/start")
async def start_live(
    room: str,
    account: RoomMember,
    body: StartLiveIn | None = Body(default=None),
    service: LiveService = Depends(get_live_service),
) -> LiveOkOut:
    audio_only = body.audio_only if body else False
    await service.start(room, account, audio_only=audio_only)
    return LiveOkOut()


@router.post("/{room:path}/stop")
async def stop_live(
    room: str,
    account: RoomMember,
    service: LiveService = Depends(get_live_service),
) -> LiveOkOut:
    await service.stop(room, account)
    return LiveOkOut()


@router.get("/{room:path}/status")
async def get_live_status(
    room: str,
    account: RoomMember,
    service: LiveService = Depends(get_live_service),
) -> LiveStatusOut:
    return LiveStatusOut.from_view(service.status(room, account))


@router.get("/{room:path}/webrtc-config", response_model_exclude_none=True)
async def get_webrtc_config(
    room: str,
    account: RoomMember,
    service: LiveService = Depends(get_live_service),
) -> WebrtcConfigOut:
    """Signed WHIP/WHEP URLs for the caller's role in the room's session."""
    return WebrtcConfigOut.from_config(service.webrtc_config(room, account))
