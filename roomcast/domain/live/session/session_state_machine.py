"""Live phase state machine for room sessions."""

from roomcast.schemas import LivePhase


class LiveStateMachine:
    """State machine for room live-session phase transitions.

    State flow with triggers:
    - IDLE -> STARTING (start by a publisher)
    - STARTING -> STARTING (same publisher re-issues start, key is reused)
    - STARTING -> LIVE (media edge admits the first ingest session)
    - STARTING -> IDLE (explicit stop or TTL reclamation by the sweeper)
    - LIVE -> IDLE (publisher stops)

    Clearing to IDLE is always allowed, including IDLE -> IDLE.
    """

    TRANSITIONS: dict[LivePhase, set[LivePhase]] = {
        LivePhase.IDLE: {LivePhase.STARTING, LivePhase.IDLE},
        LivePhase.STARTING: {LivePhase.STARTING, LivePhase.LIVE, LivePhase.IDLE},
        LivePhase.LIVE: {LivePhase.IDLE},
    }

    @classmethod
    def can_transition(cls, current: LivePhase, new: LivePhase) -> bool:
        """Check if state transition is valid.

        Args:
            current: Current room phase
            new: Target phase

        Returns:
            True if transition is valid, False otherwise
        """
        return new in cls.TRANSITIONS.get(current, set())
