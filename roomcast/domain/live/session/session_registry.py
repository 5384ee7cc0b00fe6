"""In-memory registry of per-room live sessions.

Every read-modify-write on a room runs under that room's re-entrant lock, so
check-then-transition sequences (start conflicts, sweeper re-checks, edge
confirmations) never interleave on the same room. A separate map lock only
guards lazy creation of room records. Records are never removed; clearing a
room resets it to idle defaults.
"""

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from roomcast.domain.utils.idgen import new_stream_key
from roomcast.schemas import LivePhase, RoomLiveState
from roomcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .session_state_machine import LiveStateMachine


def _short_key(stream_key: str | None) -> str:
    if not stream_key:
        return "-"
    return f"{stream_key[:8]}…"


class StartOutcome(str, Enum):
    STARTED = "started"
    REUSED = "reused"
    ALREADY_LIVE = "already_live"


class StopOutcome(str, Enum):
    CLEARED = "cleared"
    ALREADY_IDLE = "already_idle"
    NOT_PUBLISHER = "not_publisher"


@dataclass(frozen=True)
class StartResult:
    outcome: StartOutcome
    state: RoomLiveState

    @property
    def accepted(self) -> bool:
        return self.outcome != StartOutcome.ALREADY_LIVE


@dataclass(frozen=True)
class StopResult:
    outcome: StopOutcome
    # State as it was before the stop was applied
    previous: RoomLiveState


class SessionRegistry:
    """Per-room live-session state machine.

    Args:
        clock: Returns the current time in epoch seconds
        key_factory: Mints new stream keys
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        key_factory: Callable[[], str] = new_stream_key,
    ):
        self._clock = clock
        self._key_factory = key_factory
        self._rooms: dict[str, RoomLiveState] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._map_lock = threading.Lock()

    def _entry(self, room: str) -> tuple[threading.RLock, RoomLiveState]:
        with self._map_lock:
            state = self._rooms.get(room)
            if state is None:
                state = RoomLiveState()
                self._rooms[room] = state
                self._locks[room] = threading.RLock()
            return self._locks[room], state

    def _existing(self, room: str) -> tuple[threading.RLock, RoomLiveState] | None:
        with self._map_lock:
            state = self._rooms.get(room)
            if state is None:
                return None
            return self._locks[room], state

    def _snapshot_entries(self) -> list[tuple[str, threading.RLock, RoomLiveState]]:
        with self._map_lock:
            return [(room, self._locks[room], state) for room, state in self._rooms.items()]

    @contextmanager
    def lock(self, room: str) -> Iterator[None]:
        """Hold the room lock so several registry calls run as one atomic step."""
        room_lock, _ = self._entry(room)
        with room_lock:
            yield

    def get(self, room: str) -> RoomLiveState:
        """Return a snapshot of the room state, creating an idle record if absent."""
        room_lock, state = self._entry(room)
        with room_lock:
            return state.model_copy()

    def set_starting(
        self,
        room: str,
        publisher_id: str,
        audio_only: bool,
        stream_key: str | None = None,
    ) -> RoomLiveState:
        """Move the room into STARTING for `publisher_id`.

        The caller must already have checked that no other identity holds the
        room. The current stream key is kept when the same publisher re-enters
        STARTING; a supplied key is only used for a free room; otherwise a new
        key is minted.

        Raises:
            AppError: If the room is LIVE (STARTING cannot be re-entered from LIVE)
        """
        room_lock, state = self._entry(room)
        with room_lock:
            if not LiveStateMachine.can_transition(state.phase, LivePhase.STARTING):
                raise AppError(
                    errcode=AppErrorCode.E_LIVE_INVALID_TRANSITION,
                    errmesg=f"Invalid live transition for room {room}: {state.phase} -> {LivePhase.STARTING}",
                    status_code=HttpStatusCode.CONFLICT,
                )

            if state.publisher_id == publisher_id and state.stream_key:
                key = state.stream_key
            elif state.publisher_id is None and stream_key:
                key = stream_key
            else:
                key = self._key_factory()

            state.publisher_id = publisher_id
            state.stream_key = key
            state.audio_only = audio_only
            state.phase = LivePhase.STARTING
            state.started_at = None
            state.last_lock_at = self._clock()

            logger.info(
                "Room {} STARTING publisher={} audio_only={} key={}",
                room,
                publisher_id,
                audio_only,
                _short_key(key),
            )
            return state.model_copy()

    def try_start(self, room: str, publisher_id: str, audio_only: bool) -> StartResult:
        """Atomically apply the start conflict policy and enter STARTING.

        - Room held by another identity: rejected with ALREADY_LIVE, no change
        - Room LIVE for the same identity: reused, stays LIVE
        - Room STARTING for the same identity: reused, key kept, lock refreshed
        - Room IDLE: STARTED with a fresh key
        """
        room_lock, state = self._entry(room)
        with room_lock:
            if state.is_locked and state.publisher_id != publisher_id:
                logger.info(
                    "Room {} start rejected for {}: held by {} ({})",
                    room,
                    publisher_id,
                    state.publisher_id,
                    state.phase,
                )
                return StartResult(StartOutcome.ALREADY_LIVE, state.model_copy())

            if state.phase == LivePhase.LIVE:
                return StartResult(StartOutcome.REUSED, state.model_copy())

            outcome = StartOutcome.REUSED if state.phase == LivePhase.STARTING else StartOutcome.STARTED
            started = self.set_starting(room, publisher_id, audio_only)
            return StartResult(outcome, started)

    def mark_live(self, room: str) -> bool:
        """Transition STARTING -> LIVE.

        Returns False without touching the room when it is already LIVE, or
        when the publisher/key were cleared in the meantime.
        """
        room_lock, state = self._entry(room)
        with room_lock:
            return self._mark_live_locked(room, state)

    def _mark_live_locked(self, room: str, state: RoomLiveState) -> bool:
        if state.phase == LivePhase.LIVE:
            return False
        if not state.publisher_id or not state.stream_key:
            logger.debug("Room {} mark_live ignored: no publisher lock", room)
            return False
        if not LiveStateMachine.can_transition(state.phase, LivePhase.LIVE):
            return False

        now = self._clock()
        state.phase = LivePhase.LIVE
        state.started_at = now
        state.last_lock_at = now

        logger.info("Room {} LIVE publisher={} key={}", room, state.publisher_id, _short_key(state.stream_key))
        return True

    def mark_live_by_stream_key(self, stream_key: str | None) -> tuple[str, RoomLiveState, bool] | None:
        """Confirm the session owning `stream_key` as LIVE.

        The key match and the transition happen under the same room lock, so a
        key that was cleared or replaced never confirms the room's next session.

        Returns:
            (room, state after the call, became_live), or None when no room
            with a publisher currently holds the key
        """
        if not stream_key:
            return None

        for room, room_lock, state in self._snapshot_entries():
            with room_lock:
                if state.stream_key != stream_key:
                    continue
                if not state.publisher_id:
                    return None
                became_live = self._mark_live_locked(room, state)
                return room, state.model_copy(), became_live
        return None

    def clear(self, room: str) -> None:
        """Reset the room to idle defaults unconditionally."""
        room_lock, state = self._entry(room)
        with room_lock:
            if state.phase != LivePhase.IDLE:
                logger.info("Room {} cleared from {} publisher={}", room, state.phase, state.publisher_id)
            state.reset()

    def release(self, room: str, publisher_id: str) -> StopResult:
        """Clear the room if `publisher_id` holds it.

        An idle room is left untouched and reported as ALREADY_IDLE.
        """
        room_lock, state = self._entry(room)
        with room_lock:
            previous = state.model_copy()
            if state.phase == LivePhase.IDLE:
                return StopResult(StopOutcome.ALREADY_IDLE, previous)
            if state.publisher_id != publisher_id:
                return StopResult(StopOutcome.NOT_PUBLISHER, previous)

            self.clear(room)
            return StopResult(StopOutcome.CLEARED, previous)

    def _clear_if_expired_locked(self, room: str, state: RoomLiveState, ttl: float, now: float) -> bool:
        if state.phase != LivePhase.STARTING:
            return False
        if state.last_lock_at is not None and now - state.last_lock_at <= ttl:
            return False

        logger.warning(
            "Room {} STARTING lock expired publisher={} age={}",
            room,
            state.publisher_id,
            "unknown" if state.last_lock_at is None else f"{now - state.last_lock_at:.1f}s",
        )
        state.reset()
        return True

    def clear_if_expired_starting(self, room: str, ttl: float) -> bool:
        """Reclaim a room stuck in STARTING for longer than `ttl` seconds."""
        entry = self._existing(room)
        if entry is None:
            return False

        room_lock, state = entry
        with room_lock:
            return self._clear_if_expired_locked(room, state, ttl, self._clock())

    def sweep_expired_starting(self, ttl: float) -> list[str]:
        """Reclaim every expired STARTING room; returns the rooms cleared."""
        cleared: list[str] = []
        now = self._clock()

        for room, room_lock, state in self._snapshot_entries():
            # Phase is re-checked under the lock so a concurrent mark_live wins
            with room_lock:
                if self._clear_if_expired_locked(room, state, ttl, now):
                    cleared.append(room)

        return sorted(cleared)

    def find_by_stream_key(self, stream_key: str | None) -> tuple[str, RoomLiveState] | None:
        if not stream_key:
            return None

        for room, room_lock, state in self._snapshot_entries():
            with room_lock:
                if state.stream_key == stream_key:
                    return room, state.model_copy()
        return None

    def list_live_entries(self) -> list[tuple[str, RoomLiveState]]:
        """LIVE rooms only, sorted by room identifier."""
        entries: list[tuple[str, RoomLiveState]] = []
        for room, room_lock, state in self._snapshot_entries():
            with room_lock:
                if state.phase == LivePhase.LIVE:
                    entries.append((room, state.model_copy()))

        entries.sort(key=lambda item: item[0])
        return entries
