"""Keeps one timer display consistent across the server and the local fallback.

The reconciler starts in REMOTE mode and asks the server for every
snapshot. The first failed status poll or ``start`` command switches it to
LOCAL mode, seeding :class:`LocalFallbackTimer` from the last server
snapshot so the countdown continues where it was. LOCAL mode is sticky:
polls stop calling the server until a recheck (only while the local timer
is idle) or an explicit :meth:`TimerReconciler.reconnect` succeeds.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional

from .api import ApiError, RemoteTimerProxy
from .clock import ClockSource, SystemClock
from .models import CompletedSession, SnapshotSource, TimerSettings, TimerSnapshot, TimerState
from .timers import LocalFallbackTimer

LOGGER = logging.getLogger(__name__)


class Mode(str, Enum):
    REMOTE = "REMOTE"
    LOCAL = "LOCAL"


@dataclass(frozen=True)
class ModeState:
    mode: Mode = Mode.REMOTE
    since: Optional[float] = None


# Which failed remote calls move the engine to the local timer.
FALLBACK_ON_FAILURE: Dict[str, bool] = {
    "status": True,
    "start": True,
    "pause": False,
    "stop": False,
    "complete": False,
    "settings": False,
}


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    message: str
    source: SnapshotSource


@dataclass(frozen=True)
class _Messages:
    remote_ok: str
    local_ok: str
    failed: str


_COMMAND_MESSAGES = {
    "start": _Messages("Timer started!", "Timer started (local mode)!", "Failed to start timer"),
    "pause": _Messages("Timer paused", "Timer paused (local mode)", "Failed to pause timer"),
    "stop": _Messages("Timer stopped", "Timer stopped (local mode)", "Failed to stop timer"),
    "complete": _Messages("Session completed!", "Session completed (local mode)!", "Failed to complete session"),
}


class TimerReconciler:
    """Owns the remote/local mode decision and hands out normalized snapshots."""

    def __init__(
        self,
        proxy: RemoteTimerProxy,
        clock: Optional[ClockSource] = None,
        settings: Optional[TimerSettings] = None,
        recorder: Callable[[CompletedSession], None] | None = None,
        on_session_completed: Callable[[], None] | None = None,
        on_message: Callable[[str, str], None] | None = None,
        recheck_interval: float | None = None,
        wall_clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.proxy = proxy
        self.clock = clock or SystemClock()
        self.settings = settings or TimerSettings()
        self.recorder = recorder
        self.on_session_completed = on_session_completed
        self.on_message = on_message
        self.recheck_interval = recheck_interval
        self.local = LocalFallbackTimer(
            self.settings, self.clock, on_complete=self._on_local_complete, wall_clock=wall_clock
        )
        self._mode = ModeState()
        self._last_remote: TimerSnapshot | None = None
        self._last_remote_at: float | None = None
        self._last_recheck_at: float | None = None
        self._last_snapshot: TimerSnapshot | None = None
        self._lock = threading.RLock()
        self._status_in_flight = threading.Lock()

    @property
    def mode(self) -> Mode:
        return self._mode.mode

    @property
    def mode_state(self) -> ModeState:
        return self._mode

    @property
    def is_local(self) -> bool:
        return self._mode.mode == Mode.LOCAL

    @property
    def last_snapshot(self) -> TimerSnapshot | None:
        return self._last_snapshot

    # Snapshots

    def get_snapshot(self) -> TimerSnapshot:
        """Return the current snapshot; never raises for remote failures."""
        with self._lock:
            now = self.clock.now()
            if self.is_local and not self._recheck_due(now):
                return self._local_snapshot(now)
        return self._poll_remote()

    def _poll_remote(self) -> TimerSnapshot:
        if not self._status_in_flight.acquire(blocking=False):
            LOGGER.debug("Status request already in flight; reusing last snapshot")
            with self._lock:
                if self._last_snapshot is not None:
                    return self._last_snapshot
                if self.is_local:
                    return self._local_snapshot(self.clock.now())
                return self._placeholder_snapshot()
        try:
            with self._lock:
                probing = self.is_local
                self._last_recheck_at = self.clock.now()
            try:
                data = self.proxy.status()
            except ApiError as exc:
                with self._lock:
                    if probing:
                        LOGGER.info("Timer API still unavailable: %s", exc)
                        return self._local_snapshot(self.clock.now())
                    return self._fall_back("status", exc)
            with self._lock:
                now = self.clock.now()
                snapshot = TimerSnapshot.from_json(data, self.settings)
                if self.is_local:
                    if not probing or self.local.state != TimerState.STOPPED:
                        return self._local_snapshot(now)
                    LOGGER.warning("Timer API reachable again; leaving local mode")
                    self._mode = ModeState()
                self._last_remote = snapshot
                self._last_remote_at = now
                self._last_snapshot = snapshot
                return snapshot
        finally:
            self._status_in_flight.release()

    def _placeholder_snapshot(self) -> TimerSnapshot:
        """Configured work session, shown until the first status reply arrives."""
        total = self.settings.work_duration_seconds
        return TimerSnapshot(total_duration_seconds=total, remaining_seconds=total, source=SnapshotSource.REMOTE)

    def _local_snapshot(self, now: float) -> TimerSnapshot:
        self.local.recompute(now)
        snapshot = self.local.snapshot()
        self._last_snapshot = snapshot
        return snapshot

    def _fall_back(self, command: str, exc: ApiError) -> Optional[TimerSnapshot]:
        now = self.clock.now()
        if not FALLBACK_ON_FAILURE.get(command, False):
            return None
        if self.is_local:
            return self._local_snapshot(now)
        LOGGER.warning("Timer API unavailable during %s (%s); switching to local mode", command, exc)
        if self._last_remote is not None:
            self.local.seed(self._last_remote, captured_at=self._last_remote_at)
        else:
            self.local.apply_settings(self.settings)
        self._mode = ModeState(Mode.LOCAL, since=now)
        return self._local_snapshot(now)

    def _recheck_due(self, now: float) -> bool:
        if not self.recheck_interval or self.recheck_interval <= 0:
            return False
        if self.local.state != TimerState.STOPPED:
            return False
        last = self._last_recheck_at if self._last_recheck_at is not None else self._mode.since
        return last is None or now - last >= self.recheck_interval

    def reconnect(self) -> bool:
        """Try the server now; only allowed while the local timer is idle."""
        with self._lock:
            if not self.is_local:
                return True
            if self.local.state != TimerState.STOPPED:
                self.notify("Stop the local session before reconnecting", "error")
                return False
        self._poll_remote()
        if self.is_local:
            self.notify("Server still unreachable", "error")
            return False
        self.notify("Reconnected to server", "success")
        return True

    # Commands

    def start(self) -> CommandResult:
        return self._dispatch("start", self.proxy.start, self.local.start)

    def pause(self) -> CommandResult:
        return self._dispatch("pause", self.proxy.pause, self.local.pause)

    def stop(self) -> CommandResult:
        return self._dispatch("stop", self.proxy.stop, lambda _now: self.local.stop())

    def complete(self) -> CommandResult:
        return self._dispatch("complete", self.proxy.complete, self.local.complete)

    def _dispatch(
        self,
        command: str,
        remote_call: Callable[[], None],
        local_call: Callable[[float], object],
    ) -> CommandResult:
        messages = _COMMAND_MESSAGES[command]
        with self._lock:
            if self.is_local:
                now = self.clock.now()
                local_call(now)
                self._local_snapshot(now)
                return self._result(True, messages.local_ok, SnapshotSource.LOCAL)
        try:
            remote_call()
        except ApiError as exc:
            if FALLBACK_ON_FAILURE[command]:
                with self._lock:
                    self._fall_back(command, exc)
                    now = self.clock.now()
                    local_call(now)
                    self._local_snapshot(now)
                return self._result(True, messages.local_ok, SnapshotSource.LOCAL)
            LOGGER.warning("Timer %s failed: %s", command, exc)
            return self._result(False, messages.failed, SnapshotSource.REMOTE)
        self.get_snapshot()
        if command == "complete":
            self._session_completed()
        return self._result(True, messages.remote_ok, SnapshotSource.REMOTE)

    # Settings

    def load_settings(self) -> TimerSettings:
        """Fetch durations from the server, keeping the current ones on failure."""
        if self.is_local:
            return self.settings
        try:
            settings = self.proxy.get_settings()
        except ApiError as exc:
            LOGGER.warning("Failed to load settings: %s", exc)
            return self.settings
        with self._lock:
            self._apply_settings(settings)
        return settings

    def _apply_settings(self, settings: TimerSettings) -> None:
        self.settings = settings
        self.local.apply_settings(settings)

    def update_settings(self, settings: TimerSettings) -> CommandResult:
        """Apply new durations; a rejected remote save leaves the current ones in place."""
        with self._lock:
            if self.is_local:
                self._apply_settings(settings)
                self._local_snapshot(self.clock.now())
                return self._result(True, "Timer settings updated (local mode)", SnapshotSource.LOCAL)
        try:
            self.proxy.update_settings(settings)
        except ApiError as exc:
            LOGGER.warning("Failed to save settings: %s", exc)
            return self._result(False, "Failed to save settings", SnapshotSource.REMOTE)
        with self._lock:
            self._apply_settings(settings)
        self.get_snapshot()
        return self._result(True, "Timer settings updated successfully!", SnapshotSource.REMOTE)

    # Callbacks

    def _on_local_complete(self, record: CompletedSession) -> None:
        if self.recorder:
            self.recorder(record)
        self._session_completed()

    def _session_completed(self) -> None:
        if not self.on_session_completed:
            return
        try:
            self.on_session_completed()
        except Exception:  # noqa: BLE001
            LOGGER.exception("Session completion refresh failed")

    def _result(self, ok: bool, message: str, source: SnapshotSource) -> CommandResult:
        self.notify(message, "success" if ok else "error")
        return CommandResult(ok=ok, message=message, source=source)

    def notify(self, message: str, level: str) -> None:
        """Log a user-facing message and forward it to the UI callback."""
        LOGGER.info("%s", message)
        if not self.on_message:
            return
        try:
            self.on_message(message, level)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Message callback failed")
