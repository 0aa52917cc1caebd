"""Client-side countdown used while the timer API is unreachable."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Optional

from .clock import ClockSource, SystemClock
from .models import (
    CompletedSession,
    SessionType,
    SnapshotSource,
    TimerSettings,
    TimerSnapshot,
    TimerState,
)

LOGGER = logging.getLogger(__name__)

# Absorbs float error in `now - started_at` so whole seconds floor correctly.
ELAPSED_EPSILON = 1e-6


class LocalFallbackTimer:
    """Countdown state machine with no external dependency.

    Remaining time is always derived from the captured start instant:
    ``remaining = max(0, total - floor(now - started_at))``. Resuming after a
    pause back-dates ``started_at`` so the same formula keeps holding.
    Reaching zero stops the timer and fires ``on_complete`` exactly once.
    """

    def __init__(
        self,
        settings: Optional[TimerSettings] = None,
        clock: Optional[ClockSource] = None,
        on_complete: Callable[[CompletedSession], None] | None = None,
        wall_clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or TimerSettings()
        self.clock = clock or SystemClock()
        self.on_complete = on_complete
        # Calendar time for session records; countdown math only uses ``clock``.
        self.wall_clock = wall_clock or datetime.now
        self.session_type = SessionType.WORK
        self.total_duration_seconds = self.settings.duration_for(SessionType.WORK)
        self.remaining_seconds = self.total_duration_seconds
        self.state = TimerState.STOPPED
        self.started_at: float | None = None
        self.completed_work_sessions = 0
        self._pending_total: int | None = None
        self._completion_fired = False
        self._wall_started: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self.state == TimerState.RUNNING

    def start(self, now: float | None = None) -> bool:
        if self.state == TimerState.RUNNING:
            return False
        if now is None:
            now = self.clock.now()
        if self.state == TimerState.STOPPED:
            if self.remaining_seconds == 0:
                self._advance_session()
            elif self._pending_total is not None:
                self.total_duration_seconds = self._pending_total
                self.remaining_seconds = self._pending_total
                self._pending_total = None
        already_elapsed = self.total_duration_seconds - self.remaining_seconds
        self.started_at = now - already_elapsed
        if already_elapsed == 0 or self._wall_started is None:
            self._wall_started = self.wall_clock() - timedelta(seconds=already_elapsed)
        self.state = TimerState.RUNNING
        self._completion_fired = False
        LOGGER.debug("Local timer started (%s, %ss left)", self.session_type.value, self.remaining_seconds)
        return True

    def pause(self, now: float | None = None) -> bool:
        if self.state != TimerState.RUNNING:
            return False
        self.recompute(now)
        if self.state != TimerState.RUNNING:
            # Reached zero at the instant of the pause.
            return False
        self.state = TimerState.PAUSED
        self.started_at = None
        LOGGER.debug("Local timer paused at %ss", self.remaining_seconds)
        return True

    def stop(self) -> None:
        if self._pending_total is not None:
            self.total_duration_seconds = self._pending_total
            self._pending_total = None
        self.remaining_seconds = self.total_duration_seconds
        self.state = TimerState.STOPPED
        self.started_at = None
        self._wall_started = None
        self._completion_fired = False
        LOGGER.debug("Local timer stopped and reset")

    def configure(self, total_duration_seconds: int) -> None:
        """Change the session length; a running countdown keeps its length.

        A finished session keeps its completed form so the next ``start()``
        still advances to the following session type.
        """
        if total_duration_seconds <= 0:
            raise ValueError("Duration must be positive")
        if self.state == TimerState.RUNNING or self._is_finished():
            self._pending_total = total_duration_seconds
            return
        self._pending_total = None
        self.total_duration_seconds = total_duration_seconds
        self.remaining_seconds = total_duration_seconds
        self.state = TimerState.STOPPED
        self.started_at = None
        self._wall_started = None
        self._completion_fired = False

    def _is_finished(self) -> bool:
        return self.state == TimerState.STOPPED and self.remaining_seconds == 0

    def apply_settings(self, settings: TimerSettings) -> None:
        self.settings = settings
        self.configure(settings.duration_for(self.session_type))

    def recompute(self, now: float | None = None) -> bool:
        """Refresh ``remaining_seconds``; return True only on the call that completes the session."""
        if self.state != TimerState.RUNNING or self.started_at is None:
            return False
        if now is None:
            now = self.clock.now()
        elapsed = max(0, math.floor(now - self.started_at + ELAPSED_EPSILON))
        self.remaining_seconds = max(0, self.total_duration_seconds - elapsed)
        if self.remaining_seconds > 0:
            return False
        self.state = TimerState.STOPPED
        self.started_at = None
        return self._finish(self.total_duration_seconds)

    def complete(self, now: float | None = None) -> bool:
        """End the current session early, as a user-initiated completion."""
        if self.recompute(now):
            return True
        if self._completion_fired:
            return False
        if self.state == TimerState.STOPPED and self.remaining_seconds == self.total_duration_seconds:
            return False
        worked = self.total_duration_seconds - self.remaining_seconds
        self.remaining_seconds = 0
        self.state = TimerState.STOPPED
        self.started_at = None
        return self._finish(worked)

    def seed(self, snapshot: TimerSnapshot, captured_at: float | None = None) -> None:
        """Continue from ``snapshot`` as it was at the instant ``captured_at``."""
        if captured_at is None:
            captured_at = self.clock.now()
        self.session_type = snapshot.session_type
        self.total_duration_seconds = max(snapshot.total_duration_seconds, snapshot.remaining_seconds)
        self.remaining_seconds = snapshot.remaining_seconds
        self.completed_work_sessions = max(self.completed_work_sessions, snapshot.completed_work_sessions)
        self.state = snapshot.state
        self._pending_total = None
        elapsed = self.total_duration_seconds - self.remaining_seconds
        if self.state == TimerState.RUNNING:
            self.started_at = captured_at - elapsed
        else:
            self.started_at = None
        self._wall_started = self.wall_clock() - timedelta(seconds=elapsed) if elapsed else None
        # A session the server already finished must not be recorded again.
        self._completion_fired = self.state == TimerState.STOPPED and self.remaining_seconds == 0
        LOGGER.info(
            "Local timer seeded: %s %s, %ss of %ss left",
            self.session_type.value,
            self.state.value,
            self.remaining_seconds,
            self.total_duration_seconds,
        )

    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            session_type=self.session_type,
            state=self.state,
            total_duration_seconds=self.total_duration_seconds,
            remaining_seconds=self.remaining_seconds,
            completed_work_sessions=self.completed_work_sessions,
            source=SnapshotSource.LOCAL,
        )

    def _finish(self, worked_seconds: int) -> bool:
        if self._completion_fired:
            return False
        self._completion_fired = True
        if self.session_type == SessionType.WORK:
            self.completed_work_sessions += 1
        end = self.wall_clock()
        record = CompletedSession(
            id=None,
            session_type=self.session_type,
            start_time=self._wall_started or end - timedelta(seconds=worked_seconds),
            end_time=end,
            duration_seconds=worked_seconds,
        )
        self._wall_started = None
        LOGGER.info("Local %s session completed (%ss)", self.session_type.value, worked_seconds)
        if self.on_complete:
            try:
                self.on_complete(record)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Session completion callback failed")
        return True

    def _advance_session(self) -> None:
        if self.session_type == SessionType.WORK:
            interval = max(1, self.settings.long_break_interval)
            if self.completed_work_sessions and self.completed_work_sessions % interval == 0:
                next_type = SessionType.LONG_BREAK
            else:
                next_type = SessionType.SHORT_BREAK
        else:
            next_type = SessionType.WORK
        self.session_type = next_type
        self._pending_total = None
        self.total_duration_seconds = self.settings.duration_for(next_type)
        self.remaining_seconds = self.total_duration_seconds
        self._wall_started = None
