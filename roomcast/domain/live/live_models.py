"""Live domain models."""

from enum import Enum

from pydantic import BaseModel

from roomcast.domain.live.token.stream_token import TokenRejectReason


class LiveRole(str, Enum):
    PUBLISHER = "publisher"
    VIEWER = "viewer"

    def __str__(self) -> str:
        return self.value


class LiveStatusView(BaseModel):
    """Room status as shown to one viewer."""

    is_live: bool = False
    publisher_id: str | None = None
    publisher_name: str | None = None
    audio_only: bool = False


class LiveRoomEntry(BaseModel):
    room: str
    is_live: bool = True
    publisher_name: str | None = None
    audio_only: bool = False


class WebrtcConfig(BaseModel):
    role: LiveRole
    whip_url: str | None = None
    whep_url: str
    expires_at: int


class EdgeDenyReason(str, Enum):
    MISSING_PARAMS = "missing-params"
    BAD_FORMAT = "bad-format"
    EXPIRED = "expired"
    # Also covers unknown stream keys and wrong scopes
    INVALID_SIGNATURE = "invalid-signature"
    NOT_LIVE = "not-live"
    MISCONFIGURED = "misconfigured"
    UNAUTHORIZED_GATEWAY = "unauthorized-gateway"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_token_reason(cls, reason: TokenRejectReason | None) -> "EdgeDenyReason":
        if reason is None:
            return cls.INVALID_SIGNATURE
        return cls(reason.value)


class EdgeDecision(BaseModel):
    admitted: bool
    reason: EdgeDenyReason | None = None
    room: str | None = None
    became_live: bool = False
