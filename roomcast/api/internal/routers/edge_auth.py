"""Media-edge verification callbacks.

The edge gateway forwards every WHIP (publish) and WHEP (subscribe) request
here before letting it reach the media server:

- `X-Edge-Secret`: shared gateway secret, compared in constant time
- `X-Original-URI`: the client's original request URI carrying the
  `stream` and `auth` (or `token`) query parameters

`200` admits the session, `403` denies it. Bodies are always empty; the
denial reason is only exposed to the gateway through `X-Live-Auth-Reason`.
"""

import hmac

from fastapi import APIRouter, Depends, Header, Response
from loguru import logger

from roomcast.api.dependency import get_live_context
from roomcast.domain.live.live_context import LiveContext
from roomcast.domain.live.live_models import EdgeDecision, EdgeDenyReason
from roomcast.domain.live.token.stream_token import TokenScope

router = APIRouter(prefix="/internal/live", tags=["Internal"], include_in_schema=False)

REASON_HEADER = "X-Live-Auth-Reason"


def _gateway_authorized(context: LiveContext, presented: str | None) -> bool:
    if not context.settings.edge_ready or not presented:
        return False
    expected = context.settings.edge_shared_secret.get_secret_value()
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


def _deny(reason: EdgeDenyReason) -> Response:
    return Response(status_code=403, headers={REASON_HEADER: reason.value})


async def _authorize(
    scope: TokenScope,
    context: LiveContext,
    edge_secret: str | None,
    original_uri: str | None,
) -> Response:
    if not _gateway_authorized(context, edge_secret):
        logger.warning("Edge {} callback rejected: gateway not authorized", scope.value)
        return _deny(EdgeDenyReason.UNAUTHORIZED_GATEWAY)

    decision: EdgeDecision = await context.service.admit_edge(scope, original_uri)
    if not decision.admitted:
        reason = decision.reason or EdgeDenyReason.INVALID_SIGNATURE
        logger.info("Edge {} denied room={} reason={}", scope.value, decision.room, reason.value)
        return _deny(reason)

    logger.info("Edge {} admitted room={} became_live={}", scope.value, decision.room, decision.became_live)
    return Response(status_code=200)


@router.get("/whip-auth")
async def whip_auth(
    context: LiveContext = Depends(get_live_context),
    x_edge_secret: str | None = Header(None),
    x_original_uri: str | None = Header(None),
) -> Response:
    return await _authorize(TokenScope.PUBLISH, context, x_edge_secret, x_original_uri)


@router.get("/whep-auth")
async def whep_auth(
    context: LiveContext = Depends(get_live_context),
    x_edge_secret: str | None = Header(None),
    x_original_uri: str | None = Header(None),
) -> Response:
    return await _authorize(TokenScope.SUBSCRIBE, context, x_edge_secret, x_original_uri)
