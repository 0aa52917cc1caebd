from datetime import date, datetime

import pytest

from pomodoro_app.pomodoro.models import (
    INVALID_DURATIONS_MESSAGE,
    CompletedSession,
    ProgressDay,
    ProgressMonth,
    SessionType,
    SnapshotSource,
    Task,
    TimerSettings,
    TimerSnapshot,
    TimerState,
    format_duration,
    format_time,
    productivity_level,
)


def test_format_time_clamps_bad_input():
    assert format_time(65) == "01:05"
    assert format_time(1500) == "25:00"
    assert format_time(-5) == "00:00"
    assert format_time(float("nan")) == "00:00"
    assert format_time(float("inf")) == "00:00"
    assert format_time(None) == "00:00"
    assert format_time("12") == "00:00"
    assert format_time(True) == "00:00"


def test_format_time_over_an_hour_keeps_minutes():
    assert format_time(7200) == "120:00"


def test_format_duration():
    assert format_duration(1500) == "25m 0s"
    assert format_duration(-3) == "0m 0s"


def test_snapshot_from_json_defaults_missing_fields():
    snap = TimerSnapshot.from_json({})
    assert snap.session_type == SessionType.WORK
    assert snap.state == TimerState.STOPPED
    assert snap.remaining_seconds == 0
    assert snap.completed_work_sessions == 0
    assert snap.total_duration_seconds == 1500
    assert snap.source == SnapshotSource.REMOTE


def test_snapshot_from_json_rejects_malformed_values():
    snap = TimerSnapshot.from_json(
        {
            "sessionType": "COFFEE",
            "state": "spinning",
            "remainingSeconds": -10,
            "completedWorkSessions": "three",
        }
    )
    assert snap.session_type == SessionType.WORK
    assert snap.state == TimerState.STOPPED
    assert snap.remaining_seconds == 0
    assert snap.completed_work_sessions == 0


def test_snapshot_from_json_reads_server_payload():
    snap = TimerSnapshot.from_json(
        {
            "sessionType": "SHORT_BREAK",
            "state": "RUNNING",
            "remainingSeconds": 120,
            "totalDurationSeconds": 300,
            "completedWorkSessions": 2,
        }
    )
    assert snap.session_type == SessionType.SHORT_BREAK
    assert snap.is_running
    assert snap.display_time == "02:00"
    assert snap.to_json()["totalDurationSeconds"] == 300


def test_snapshot_completed_state_folds_into_stopped():
    snap = TimerSnapshot.from_json({"state": "COMPLETED", "remainingSeconds": 0})
    assert snap.state == TimerState.STOPPED


def test_snapshot_total_never_below_remaining():
    snap = TimerSnapshot.from_json({"remainingSeconds": 2000, "totalDurationSeconds": 1500})
    assert snap.total_duration_seconds == 2000


def test_snapshot_total_defaults_to_settings_duration():
    settings = TimerSettings(long_break_duration_seconds=1200)
    snap = TimerSnapshot.from_json({"sessionType": "LONG_BREAK", "remainingSeconds": 10}, settings)
    assert snap.total_duration_seconds == 1200


def test_settings_from_minutes_validates_ranges():
    settings = TimerSettings.from_minutes(50, 10, 30)
    assert settings.work_duration_seconds == 3000
    assert settings.duration_for(SessionType.SHORT_BREAK) == 600
    assert settings.duration_for(SessionType.LONG_BREAK) == 1800

    for args in ((0, 5, 15), (121, 5, 15), (25, 0, 15), (25, 5, 61)):
        with pytest.raises(ValueError) as exc:
            TimerSettings.from_minutes(*args)
        assert str(exc.value) == INVALID_DURATIONS_MESSAGE


def test_settings_from_json_falls_back_to_defaults():
    settings = TimerSettings.from_json({"workDurationSeconds": 600, "shortBreakDurationSeconds": "x"})
    assert settings.work_duration_seconds == 600
    assert settings.short_break_duration_seconds == 300
    assert TimerSettings.from_json(None) == TimerSettings()


def test_task_from_json():
    task = Task.from_json({"id": 4, "text": "Write report", "completed": True, "priority": 1, "taskDate": "2024-03-02"})
    assert task.id == 4
    assert task.completed is True
    assert task.is_high_priority
    assert task.task_date == date(2024, 3, 2)


def test_completed_session_from_row_handles_nulls():
    session = CompletedSession.from_row((1, "WORK", None, "2024-01-02T10:25:00", None))
    assert session.start_time is None
    assert session.end_time == datetime(2024, 1, 2, 10, 25)
    assert session.duration_seconds == 0


def test_productivity_levels():
    assert productivity_level(0) == 0
    assert productivity_level(0.5) == 1
    assert productivity_level(1) == 2
    assert productivity_level(3) == 2
    assert productivity_level(3.5) == 3


def test_progress_month_accepts_month_names():
    month = ProgressMonth.from_json(
        {
            "year": 2024,
            "month": "FEBRUARY",
            "days": [{"date": "2024-02-01", "totalHours": 2.0, "sessionCount": 4}],
        }
    )
    assert month.month == 2
    assert month.month_name == "February"
    assert month.total_sessions == 4
    assert month.days[0].productivity_level == 2


def test_progress_day_description():
    assert ProgressDay(date(2024, 1, 1)).description == "No work sessions"
    busy = ProgressDay(date(2024, 1, 1), total_hours=4.0, session_count=8, productivity_level=3)
    assert busy.description == "4.0 hours, 8 sessions"
    assert busy.css_color == "#216e39"
