"""Common enums used across live schemas."""

from enum import Enum


class LivePhase(str, Enum):
    """Room live-session phases.

    State Transition Flow:

    IDLE → STARTING → LIVE
             ↓  ↺       ↓
            IDLE       IDLE

    State Descriptions:
    - IDLE: No publisher. Initial state of every room, restored by stop/clear.
    - STARTING: A publisher holds the room lock and received tokens, but the
      media edge has not admitted its first ingest session yet. Reclaimed by
      the expiry sweeper when left too long.
    - LIVE: The media edge confirmed the publisher's ingest session.

    There is no terminal state; rooms cycle indefinitely.
    """

    IDLE = "idle"
    STARTING = "starting"
    LIVE = "live"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def locked_states(cls) -> list["LivePhase"]:
        """Phases in which a publisher holds the room."""
        return [LivePhase.STARTING, LivePhase.LIVE]


__all__ = ["LivePhase"]
