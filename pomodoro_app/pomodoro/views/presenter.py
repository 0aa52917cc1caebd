"""Turns timer snapshots into plain display values for the wx widgets."""
from __future__ import annotations

from dataclasses import dataclass

from ..models import SessionType, TimerSnapshot, TimerState, format_time

SESSION_LABELS = {
    SessionType.WORK: "Work Session",
    SessionType.SHORT_BREAK: "Short Break",
    SessionType.LONG_BREAK: "Long Break",
}

STATE_LABELS = {
    TimerState.STOPPED: "Ready to start",
    TimerState.RUNNING: "Running",
    TimerState.PAUSED: "Paused",
}


@dataclass(frozen=True)
class TimerDisplay:
    time_text: str
    session_text: str
    state_text: str
    sessions_text: str
    mode_text: str
    progress_percent: int
    start_enabled: bool
    pause_enabled: bool
    stop_enabled: bool
    complete_enabled: bool
    reconnect_visible: bool


def present(snapshot: TimerSnapshot, is_local: bool = False) -> TimerDisplay:
    running = snapshot.state == TimerState.RUNNING
    paused = snapshot.state == TimerState.PAUSED
    total = snapshot.total_duration_seconds
    done = total - snapshot.remaining_seconds
    percent = int(done * 100 / total) if total > 0 else 0
    return TimerDisplay(
        time_text=format_time(snapshot.remaining_seconds),
        session_text=SESSION_LABELS.get(snapshot.session_type, "Work Session"),
        state_text=STATE_LABELS.get(snapshot.state, "Ready to start"),
        sessions_text=f"Completed sessions: {snapshot.completed_work_sessions}",
        mode_text="Offline (local timer)" if is_local else "Connected",
        progress_percent=max(0, min(100, percent)),
        start_enabled=not running,
        pause_enabled=running,
        stop_enabled=running or paused,
        complete_enabled=running or paused,
        reconnect_visible=is_local,
    )
