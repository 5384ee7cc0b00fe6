from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from loguru import logger

from roomcast.domain.live.live_context import LiveContext

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def push_socket(websocket: WebSocket, token: str | None = Query(None)):
    """Push channel for live events.

    The connection is owned by the account behind `token` and joined to the
    account's current room. Incoming frames are ignored.
    """
    context: LiveContext = websocket.app.state.live

    account = context.accounts.get_account_by_token(token) if token else None
    if account is None or not account.alive:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    rooms = [account.current_room] if account.current_room else []
    endpoint_id = context.hub.connect(account.account_id, websocket.send_json, rooms=rooms)
    logger.info("Push socket {} opened account={} rooms={}", endpoint_id, account.account_id, rooms)

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        context.hub.disconnect(endpoint_id)
        logger.info("Push socket {} closed", endpoint_id)
