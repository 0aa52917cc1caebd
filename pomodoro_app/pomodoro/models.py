"""Data models for the Pomodoro Desk client."""
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Mapping, Optional


class SessionType(str, Enum):
    WORK = "WORK"
    SHORT_BREAK = "SHORT_BREAK"
    LONG_BREAK = "LONG_BREAK"


class TimerState(str, Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"


class SnapshotSource(str, Enum):
    REMOTE = "REMOTE"
    LOCAL = "LOCAL"


WORK_MINUTES_RANGE = (1, 120)
BREAK_MINUTES_RANGE = (1, 60)
INVALID_DURATIONS_MESSAGE = "Please enter valid durations (Work: 1-120 min, Breaks: 1-60 min)"

LEVEL_COLORS = {
    0: "#ebedf0",
    1: "#9be9a8",
    2: "#40c463",
    3: "#216e39",
}


def _as_int(value: Any, default: int = 0) -> int:
    """Coerce a JSON number to a non-negative int, or return ``default``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return max(0, int(value))


def _as_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return float(value)


def _parse_enum(enum_cls, value: Any, default):
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        return default


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def format_time(seconds: Any) -> str:
    """Render remaining seconds as ``MM:SS``; bad or negative input shows ``00:00``."""
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        seconds = 0
    elif not math.isfinite(seconds) or seconds < 0:
        seconds = 0
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def format_duration(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}m {secs}s"


def productivity_level(hours: float) -> int:
    if hours <= 0:
        return 0
    if hours < 1:
        return 1
    if hours <= 3:
        return 2
    return 3


@dataclass(frozen=True)
class TimerSettings:
    """Session durations shared by the server and the fallback timer."""

    work_duration_seconds: int = 25 * 60
    short_break_duration_seconds: int = 5 * 60
    long_break_duration_seconds: int = 15 * 60
    long_break_interval: int = 4

    @classmethod
    def from_minutes(
        cls,
        work_minutes: int,
        short_break_minutes: int,
        long_break_minutes: int,
        long_break_interval: int = 4,
    ) -> "TimerSettings":
        low, high = WORK_MINUTES_RANGE
        if not low <= work_minutes <= high:
            raise ValueError(INVALID_DURATIONS_MESSAGE)
        low, high = BREAK_MINUTES_RANGE
        for value in (short_break_minutes, long_break_minutes):
            if not low <= value <= high:
                raise ValueError(INVALID_DURATIONS_MESSAGE)
        if long_break_interval < 1:
            raise ValueError("Long break interval must be at least 1")
        return cls(
            work_duration_seconds=work_minutes * 60,
            short_break_duration_seconds=short_break_minutes * 60,
            long_break_duration_seconds=long_break_minutes * 60,
            long_break_interval=long_break_interval,
        )

    @classmethod
    def from_json(cls, data: Any) -> "TimerSettings":
        defaults = cls()
        if not isinstance(data, Mapping):
            return defaults
        return cls(
            work_duration_seconds=_as_int(data.get("workDurationSeconds"), defaults.work_duration_seconds)
            or defaults.work_duration_seconds,
            short_break_duration_seconds=_as_int(
                data.get("shortBreakDurationSeconds"), defaults.short_break_duration_seconds
            )
            or defaults.short_break_duration_seconds,
            long_break_duration_seconds=_as_int(
                data.get("longBreakDurationSeconds"), defaults.long_break_duration_seconds
            )
            or defaults.long_break_duration_seconds,
            long_break_interval=_as_int(data.get("longBreakInterval"), defaults.long_break_interval)
            or defaults.long_break_interval,
        )

    def to_json(self) -> dict:
        return {
            "workDurationSeconds": self.work_duration_seconds,
            "shortBreakDurationSeconds": self.short_break_duration_seconds,
            "longBreakDurationSeconds": self.long_break_duration_seconds,
        }

    def duration_for(self, session_type: SessionType) -> int:
        if session_type == SessionType.SHORT_BREAK:
            return self.short_break_duration_seconds
        if session_type == SessionType.LONG_BREAK:
            return self.long_break_duration_seconds
        return self.work_duration_seconds


@dataclass(frozen=True)
class TimerSnapshot:
    """Immutable read of the timer at one instant."""

    session_type: SessionType = SessionType.WORK
    state: TimerState = TimerState.STOPPED
    total_duration_seconds: int = 25 * 60
    remaining_seconds: int = 25 * 60
    completed_work_sessions: int = 0
    source: SnapshotSource = SnapshotSource.REMOTE

    @classmethod
    def from_json(
        cls,
        data: Any,
        settings: Optional[TimerSettings] = None,
        source: SnapshotSource = SnapshotSource.REMOTE,
    ) -> "TimerSnapshot":
        """Build a snapshot from server JSON, defaulting absent or malformed fields."""
        settings = settings or TimerSettings()
        if not isinstance(data, Mapping):
            data = {}
        session_type = _parse_enum(SessionType, data.get("sessionType", ""), SessionType.WORK)
        raw_state = str(data.get("state", "")).upper()
        # The server reports a finished session as COMPLETED.
        if raw_state == "COMPLETED":
            raw_state = TimerState.STOPPED.value
        state = _parse_enum(TimerState, raw_state, TimerState.STOPPED)
        remaining = _as_int(data.get("remainingSeconds"))
        total = _as_int(data.get("totalDurationSeconds"), settings.duration_for(session_type))
        return cls(
            session_type=session_type,
            state=state,
            total_duration_seconds=max(total, remaining),
            remaining_seconds=remaining,
            completed_work_sessions=_as_int(data.get("completedWorkSessions")),
            source=source,
        )

    def to_json(self) -> dict:
        return {
            "sessionType": self.session_type.value,
            "state": self.state.value,
            "totalDurationSeconds": self.total_duration_seconds,
            "remainingSeconds": self.remaining_seconds,
            "completedWorkSessions": self.completed_work_sessions,
        }

    @property
    def display_time(self) -> str:
        return format_time(self.remaining_seconds)

    @property
    def is_running(self) -> bool:
        return self.state == TimerState.RUNNING


@dataclass
class Task:
    """A daily task as returned by the task API."""

    id: Optional[int]
    text: str
    completed: bool = False
    priority: int = 0
    task_date: Optional[date] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Task":
        raw_id = data.get("id")
        return cls(
            id=int(raw_id) if isinstance(raw_id, int) else None,
            text=str(data.get("text") or ""),
            completed=bool(data.get("completed", False)),
            priority=_as_int(data.get("priority")),
            task_date=_parse_date(data.get("taskDate")),
        )

    @property
    def is_high_priority(self) -> bool:
        return self.priority >= 1


@dataclass
class CompletedSession:
    """A finished session, either logged by the server or recorded locally."""

    id: Optional[int]
    session_type: SessionType
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    duration_seconds: int

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "CompletedSession":
        raw_id = data.get("id")
        return cls(
            id=int(raw_id) if isinstance(raw_id, int) else None,
            session_type=_parse_enum(SessionType, data.get("sessionType", ""), SessionType.WORK),
            start_time=_parse_datetime(data.get("startTime")),
            end_time=_parse_datetime(data.get("endTime")),
            duration_seconds=_as_int(data.get("durationSeconds")),
        )

    @classmethod
    def from_row(cls, row: tuple) -> "CompletedSession":
        return cls(
            id=row[0],
            session_type=_parse_enum(SessionType, row[1], SessionType.WORK),
            start_time=_parse_datetime(row[2]),
            end_time=_parse_datetime(row[3]),
            duration_seconds=int(row[4] or 0),
        )

    @property
    def duration_hours(self) -> float:
        return self.duration_seconds / 3600.0


@dataclass
class ProgressDay:
    date: date
    total_hours: float = 0.0
    session_count: int = 0
    productivity_level: int = 0

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ProgressDay":
        hours = _as_float(data.get("totalHours"))
        level = data.get("productivityLevel")
        return cls(
            date=_parse_date(data.get("date")) or date.today(),
            total_hours=hours,
            session_count=_as_int(data.get("sessionCount")),
            productivity_level=min(3, _as_int(level)) if level is not None else productivity_level(hours),
        )

    @property
    def css_color(self) -> str:
        return LEVEL_COLORS.get(self.productivity_level, LEVEL_COLORS[0])

    @property
    def description(self) -> str:
        if self.productivity_level == 0:
            return "No work sessions"
        return f"{self.total_hours:.1f} hours, {self.session_count} sessions"


@dataclass
class ProgressMonth:
    year: int
    month: int
    days: List[ProgressDay] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ProgressMonth":
        today = date.today()
        year = _as_int(data.get("year"), today.year) or today.year
        month = _as_int(data.get("month"), 0)
        if not 1 <= month <= 12:
            # Spring serialises java.time.Month as its name.
            names = [name.upper() for name in calendar.month_name]
            raw = str(data.get("month", "")).upper()
            month = names.index(raw) if raw in names else today.month
        days = [ProgressDay.from_json(item) for item in data.get("days") or [] if isinstance(item, Mapping)]
        return cls(year=year, month=month, days=days)

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month]

    @property
    def total_hours(self) -> float:
        return sum(day.total_hours for day in self.days)

    @property
    def total_sessions(self) -> int:
        return sum(day.session_count for day in self.days)
