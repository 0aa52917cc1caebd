from datetime import date, datetime

import pytest

from pomodoro_app.pomodoro.api import ApiError
from pomodoro_app.pomodoro.clock import ManualClock
from pomodoro_app.pomodoro.controllers import AppController, ConfigManager
from pomodoro_app.pomodoro.models import (
    INVALID_DURATIONS_MESSAGE,
    CompletedSession,
    ProgressMonth,
    SessionType,
    Task,
    TimerSettings,
)
from pomodoro_app.pomodoro.reconciler import TimerReconciler
from pomodoro_app.pomodoro.storage import SessionLog


class FakeProxy:
    def __init__(self):
        self.down = False
        self.saved_settings = None

    def _check(self):
        if self.down:
            raise ApiError("unreachable")

    def status(self):
        self._check()
        return {"state": "STOPPED", "remainingSeconds": 1500, "totalDurationSeconds": 1500}

    def start(self):
        self._check()

    def pause(self):
        self._check()

    def stop(self):
        self._check()

    def complete(self):
        self._check()

    def get_settings(self):
        self._check()
        return TimerSettings()

    def update_settings(self, settings):
        self._check()
        self.saved_settings = settings


class FakeTaskApi:
    def __init__(self):
        self.down = False
        self.tasks = {
            1: Task(id=1, text="Plan sprint", completed=True, priority=1),
            2: Task(id=2, text="Review PR", completed=False),
        }
        self.updates = []

    def _check(self):
        if self.down:
            raise ApiError("unreachable")

    def list_for_date(self, day):
        self._check()
        return list(self.tasks.values())

    def get(self, task_id):
        self._check()
        return self.tasks[task_id]

    def add(self, text, priority=0):
        self._check()
        new_id = max(self.tasks) + 1
        self.tasks[new_id] = Task(id=new_id, text=text, priority=priority)

    def update(self, task_id, text, priority, completed):
        self._check()
        self.updates.append((task_id, text, priority, completed))
        self.tasks[task_id].completed = completed

    def complete(self, task_id):
        self._check()
        self.tasks[task_id].completed = True

    def delete(self, task_id):
        self._check()
        del self.tasks[task_id]


class FakeSessionApi:
    def __init__(self):
        self.down = False
        self.sessions = [
            CompletedSession(1, SessionType.WORK, datetime(2024, 5, 6, 9, 0), datetime(2024, 5, 6, 9, 25), 1500),
            CompletedSession(2, SessionType.WORK, datetime(2024, 6, 2, 9, 0), datetime(2024, 6, 2, 9, 25), 1500),
        ]

    def work_sessions_for_date(self, day):
        if self.down:
            raise ApiError("unreachable")
        return [s for s in self.sessions if s.end_time.date() == day]

    def sessions_for_month(self, year, month):
        if self.down:
            raise ApiError("unreachable")
        return [s for s in self.sessions if (s.end_time.year, s.end_time.month) == (year, month)]


class FakeProgressApi:
    def __init__(self):
        self.down = False

    def month(self, year, month):
        if self.down:
            raise ApiError("unreachable")
        return ProgressMonth(year=year, month=month, days=[])


class FakeExporter:
    def __init__(self):
        self.exported = None

    def export(self, sessions):
        self.exported = list(sessions)
        return "export.xlsx"


@pytest.fixture
def app(tmp_path):
    config_manager = ConfigManager(tmp_path / "config")
    log = SessionLog(tmp_path / "sessions.db")
    proxy = FakeProxy()
    reconciler = TimerReconciler(proxy, clock=ManualClock(0.0), recorder=log.record)
    controller = AppController(
        reconciler,
        FakeTaskApi(),
        FakeSessionApi(),
        FakeProgressApi(),
        log,
        FakeExporter(),
        config_manager,
    )
    controller.today = date(2024, 5, 6)
    return controller


def test_save_settings_rejects_invalid_durations(app):
    messages = []
    app.reconciler.on_message = lambda text, level: messages.append((text, level))
    result = app.save_settings(0, 5, 15)
    assert not result.ok
    assert result.message == INVALID_DURATIONS_MESSAGE
    assert messages == [(INVALID_DURATIONS_MESSAGE, "error")]
    assert app.reconciler.proxy.saved_settings is None


def test_save_settings_persists_minutes(app):
    result = app.save_settings(50, 10, 20)
    assert result.ok
    assert app.reconciler.proxy.saved_settings.work_duration_seconds == 3000
    reloaded = ConfigManager(app.config_manager.config_dir).config
    assert (reloaded.work_minutes, reloaded.short_break_minutes, reloaded.long_break_minutes) == (50, 10, 20)


def test_display_time_falls_back_when_offline(app):
    assert app.display_time() == "25:00"
    app.reconciler.proxy.down = True
    assert app.display_time() == "25:00"
    assert app.is_local_mode


def test_list_tasks_filters(app):
    assert [t.id for t in app.list_tasks("all")] == [1, 2]
    assert [t.id for t in app.list_tasks("completed")] == [1]
    assert [t.id for t in app.list_tasks("incomplete")] == [2]
    app.set_task_filter("completed")
    assert [t.id for t in app.list_tasks()] == [1]
    with pytest.raises(ValueError):
        app.set_task_filter("someday")


def test_list_tasks_returns_empty_on_error(app):
    app.tasks.down = True
    assert app.list_tasks() == []
    assert app.task_stats_text() == "0/0 tasks completed today"


def test_task_stats_text(app):
    assert app.task_stats_text() == "1/2 tasks completed today"


def test_add_task_ignores_blank_text(app):
    assert app.add_task("   ") is False
    assert app.add_task("Write tests", 1) is True
    assert app.task_stats_text() == "1/3 tasks completed today"


def test_toggle_task_uncomplete_uses_update(app):
    assert app.toggle_task(1, False) is True
    assert app.tasks.updates == [(1, "Plan sprint", 1, False)]
    assert app.toggle_task(2, True) is True
    assert app.tasks.tasks[2].completed is True


def test_delete_task_failure_is_reported(app):
    app.tasks.down = True
    assert app.delete_task(1) is False


def test_session_history_merges_local_log(app):
    app.session_log.record(
        CompletedSession(None, SessionType.WORK, datetime(2024, 5, 6, 14, 0), datetime(2024, 5, 6, 14, 25), 1500)
    )
    history = app.session_history()
    assert len(history) == 2
    app.sessions.down = True
    assert len(app.session_history()) == 1


def test_progress_month_falls_back_to_local_log(app):
    app.progress.down = True
    month = app.progress_month(2024, 5)
    assert month.month == 5
    assert len(month.days) == 31


def test_export_combines_remote_and_local_sessions(app):
    app.session_log.record(
        CompletedSession(None, SessionType.WORK, datetime(2024, 5, 7, 14, 0), datetime(2024, 5, 7, 14, 25), 1500)
    )
    path = app.export_sessions(date(2024, 5, 1), date(2024, 5, 31))
    assert path == "export.xlsx"
    assert len(app.exporter.exported) == 2

    app.reconciler.proxy.down = True
    app.snapshot()
    app.export_sessions(date(2024, 5, 1), date(2024, 6, 30))
    assert len(app.exporter.exported) == 1


def test_save_window_size(app):
    app.save_window_size(1200, 800)
    reloaded = ConfigManager(app.config_manager.config_dir).config
    assert (reloaded.last_window_width, reloaded.last_window_height) == (1200, 800)
