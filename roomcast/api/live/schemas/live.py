from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from roomcast.domain.live.live_models import LiveRole, LiveRoomEntry, LiveStatusView, WebrtcConfig


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartLiveIn(_CamelModel):
    audio_only: bool = False


class LiveOkOut(BaseModel):
    ok: bool = True


class LiveStatusOut(_CamelModel):
    is_live: bool = False
    publisher_id: str | None = None
    publisher_name: str | None = None
    audio_only: bool = False

    @classmethod
    def from_view(cls, view: LiveStatusView) -> "LiveStatusOut":
        return cls(**view.model_dump())


class LiveRoomOut(_CamelModel):
    room: str
    is_live: bool = True
    publisher_name: str | None = None
    audio_only: bool = False

    @classmethod
    def from_entry(cls, entry: LiveRoomEntry) -> "LiveRoomOut":
        return cls(**entry.model_dump())


class WebrtcConfigOut(_CamelModel):
    """Media-edge URLs for the caller. `whipUrl` is only present for the publisher."""

    role: LiveRole
    whip_url: str | None = Field(default=None)
    whep_url: str
    expires_at: int

    @classmethod
    def from_config(cls, cfg: WebrtcConfig) -> "WebrtcConfigOut":
        return cls(**cfg.model_dump())
