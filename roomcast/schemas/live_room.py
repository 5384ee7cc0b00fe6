"""In-memory room live-session record."""

from pydantic import BaseModel

from .live_state import LivePhase


class RoomLiveState(BaseModel):
    """Live-session state of a single room.

    Timestamps are epoch seconds taken from the registry clock.
    """

    publisher_id: str | None = None
    stream_key: str | None = None
    audio_only: bool = False
    phase: LivePhase = LivePhase.IDLE

    started_at: float | None = None
    # Refreshed when entering STARTING; only used for TTL reclamation
    last_lock_at: float | None = None

    @property
    def is_live(self) -> bool:
        return self.phase == LivePhase.LIVE

    @property
    def is_locked(self) -> bool:
        return self.phase in LivePhase.locked_states()

    def reset(self) -> None:
        self.publisher_id = None
        self.stream_key = None
        self.audio_only = False
        self.phase = LivePhase.IDLE
        self.started_at = None
        self.last_lock_at = None
