from typing import Annotated

from fastapi import Depends, Header, Request
from loguru import logger

from roomcast.domain.accounts.account_directory import Account
from roomcast.domain.live.live_context import LiveContext
from roomcast.domain.live.live_domain import LiveService
from roomcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

ACCOUNT_TOKEN_HEADER = "X-Chat-Token"


def get_live_context(request: Request) -> LiveContext:
    return request.app.state.live


def get_live_service(request: Request) -> LiveService:
    return get_live_context(request).service


def _unauthorized() -> AppError:
    return AppError(
        errcode=AppErrorCode.E_UNAUTHORIZED,
        errmesg="Invalid token",
        status_code=HttpStatusCode.UNAUTHORIZED,
    )


async def get_present_account(
    context: LiveContext = Depends(get_live_context),
    x_chat_token: str | None = Header(None, alias=ACCOUNT_TOKEN_HEADER),
) -> Account:
    """Account behind the request token; must be alive and inside some room."""
    if not x_chat_token:
        raise _unauthorized()

    account = context.accounts.get_account_by_token(x_chat_token)
    if account is None or not account.current_room or not account.alive:
        raise _unauthorized()

    logger.debug("Authenticated account_id: {}", account.account_id)
    return account


async def get_room_member(
    room: str,
    account: Account = Depends(get_present_account),
) -> Account:
    """Account that is currently a member of the `room` path parameter."""
    if account.current_room != room:
        raise AppError(
            errcode=AppErrorCode.E_FORBIDDEN,
            errmesg=f"Not a member of room {room}",
            status_code=HttpStatusCode.FORBIDDEN,
        )
    return account


PresentAccount = Annotated[Account, Depends(get_present_account)]
RoomMember = Annotated[Account, Depends(get_room_member)]
