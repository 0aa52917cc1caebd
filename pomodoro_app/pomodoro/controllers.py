"""Controllers orchestrating the timer engine, API clients, storage and exports."""
from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from .api import ApiError, ProgressApi, SessionApi, TaskApi
from .models import (
    CompletedSession,
    ProgressMonth,
    SnapshotSource,
    Task,
    TimerSettings,
    TimerSnapshot,
    format_time,
)
from .reconciler import CommandResult, TimerReconciler
from .storage import SessionLog

if TYPE_CHECKING:
    from reports.excel_export import ExcelExporter

LOGGER = logging.getLogger(__name__)


CONFIG_DIR = Path.home() / ".pomodoro_desk"
CONFIG_FILE = CONFIG_DIR / "config.toml"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default_config.toml"

TASK_FILTERS = ("all", "completed", "incomplete")


def _float(data: dict, key: str, default: float) -> float:
    try:
        value = float(data.get(key, default))
    except (TypeError, ValueError):
        return default
    return value if value >= 0 else default


def _int(data: dict, key: str, default: int) -> int:
    try:
        value = int(data.get(key, default))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


@dataclass
class AppConfig:
    api_base_url: str = "http://localhost:8080"
    status_timeout_seconds: float = 2.0
    request_timeout_seconds: float = 5.0
    poll_interval_seconds: float = 1.0
    refresh_interval_seconds: float = 30.0
    recheck_interval_seconds: float = 60.0
    work_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    long_break_interval: int = 4
    export_path: str = "pomodoro_sessions.xlsx"
    database_path: str = ""
    last_window_width: int = 900
    last_window_height: int = 640

    @classmethod
    def from_toml(cls, data: dict) -> "AppConfig":
        defaults = cls()
        return cls(
            api_base_url=str(data.get("api_base_url") or defaults.api_base_url),
            status_timeout_seconds=_float(data, "status_timeout_seconds", defaults.status_timeout_seconds)
            or defaults.status_timeout_seconds,
            request_timeout_seconds=_float(data, "request_timeout_seconds", defaults.request_timeout_seconds)
            or defaults.request_timeout_seconds,
            poll_interval_seconds=_float(data, "poll_interval_seconds", defaults.poll_interval_seconds)
            or defaults.poll_interval_seconds,
            refresh_interval_seconds=_float(data, "refresh_interval_seconds", defaults.refresh_interval_seconds)
            or defaults.refresh_interval_seconds,
            recheck_interval_seconds=_float(data, "recheck_interval_seconds", defaults.recheck_interval_seconds),
            work_minutes=_int(data, "work_minutes", defaults.work_minutes),
            short_break_minutes=_int(data, "short_break_minutes", defaults.short_break_minutes),
            long_break_minutes=_int(data, "long_break_minutes", defaults.long_break_minutes),
            long_break_interval=_int(data, "long_break_interval", defaults.long_break_interval),
            export_path=str(data.get("export_path") or defaults.export_path),
            database_path=str(data.get("database_path") or ""),
            last_window_width=_int(data, "last_window_width", defaults.last_window_width),
            last_window_height=_int(data, "last_window_height", defaults.last_window_height),
        )

    def to_toml(self) -> str:
        lines = [
            f"api_base_url = \"{self.api_base_url}\"",
            f"status_timeout_seconds = {self.status_timeout_seconds}",
            f"request_timeout_seconds = {self.request_timeout_seconds}",
            f"poll_interval_seconds = {self.poll_interval_seconds}",
            f"refresh_interval_seconds = {self.refresh_interval_seconds}",
            f"recheck_interval_seconds = {self.recheck_interval_seconds}",
            f"work_minutes = {self.work_minutes}",
            f"short_break_minutes = {self.short_break_minutes}",
            f"long_break_minutes = {self.long_break_minutes}",
            f"long_break_interval = {self.long_break_interval}",
            f"export_path = \"{self.export_path}\"",
            f"database_path = \"{self.database_path}\"",
            f"last_window_width = {self.last_window_width}",
            f"last_window_height = {self.last_window_height}",
        ]
        return "\n".join(lines) + "\n"

    def timer_settings(self) -> TimerSettings:
        try:
            return TimerSettings.from_minutes(
                self.work_minutes, self.short_break_minutes, self.long_break_minutes, self.long_break_interval
            )
        except ValueError:
            LOGGER.warning("Configured durations out of range; using defaults")
            return TimerSettings()

    def resolved_database_path(self, config_dir: Path = CONFIG_DIR) -> Path:
        return Path(self.database_path).expanduser() if self.database_path else config_dir / "sessions.db"


class ConfigManager:
    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self.config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self.config_file = self.config_dir / CONFIG_FILE.name
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config = self._load()

    def _load(self) -> AppConfig:
        if self.config_file.exists():
            with open(self.config_file, "rb") as fh:
                data = tomllib.load(fh)
                return AppConfig.from_toml(data)
        if DEFAULT_CONFIG_PATH.exists():
            with open(DEFAULT_CONFIG_PATH, "rb") as fh:
                config = AppConfig.from_toml(tomllib.load(fh))
        else:
            config = AppConfig()
        self.save(config)
        return config

    def save(self, config: Optional[AppConfig] = None) -> None:
        cfg = config or self.config
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(cfg.to_toml(), encoding="utf-8")
        LOGGER.info("Saved configuration to %s", self.config_file)


class AppController:
    def __init__(
        self,
        reconciler: TimerReconciler,
        tasks: TaskApi,
        sessions: SessionApi,
        progress: ProgressApi,
        session_log: SessionLog,
        exporter: ExcelExporter,
        config_manager: ConfigManager,
    ) -> None:
        self.reconciler = reconciler
        self.tasks = tasks
        self.sessions = sessions
        self.progress = progress
        self.session_log = session_log
        self.exporter = exporter
        self.config_manager = config_manager
        self.task_filter = "all"
        self.today = date.today()

    # Timer operations
    def snapshot(self) -> TimerSnapshot:
        return self.reconciler.get_snapshot()

    def display_time(self) -> str:
        return format_time(self.snapshot().remaining_seconds)

    def start(self) -> CommandResult:
        return self.reconciler.start()

    def pause(self) -> CommandResult:
        return self.reconciler.pause()

    def stop(self) -> CommandResult:
        return self.reconciler.stop()

    def complete(self) -> CommandResult:
        return self.reconciler.complete()

    def reconnect(self) -> bool:
        return self.reconciler.reconnect()

    @property
    def is_local_mode(self) -> bool:
        return self.reconciler.is_local

    def load_settings(self) -> TimerSettings:
        return self.reconciler.load_settings()

    def save_settings(self, work_minutes: int, short_break_minutes: int, long_break_minutes: int) -> CommandResult:
        """Validate and apply new durations; invalid input never reaches the server."""
        cfg = self.config_manager.config
        try:
            settings = TimerSettings.from_minutes(
                work_minutes, short_break_minutes, long_break_minutes, cfg.long_break_interval
            )
        except ValueError as exc:
            message = str(exc)
            self.reconciler.notify(message, "error")
            source = SnapshotSource.LOCAL if self.reconciler.is_local else SnapshotSource.REMOTE
            return CommandResult(ok=False, message=message, source=source)
        result = self.reconciler.update_settings(settings)
        if result.ok:
            cfg.work_minutes = work_minutes
            cfg.short_break_minutes = short_break_minutes
            cfg.long_break_minutes = long_break_minutes
            self.config_manager.save(cfg)
        return result

    # Tasks
    def set_task_filter(self, task_filter: str) -> None:
        if task_filter not in TASK_FILTERS:
            raise ValueError(f"Unknown task filter: {task_filter}")
        self.task_filter = task_filter

    def list_tasks(self, task_filter: Optional[str] = None) -> List[Task]:
        task_filter = task_filter or self.task_filter
        try:
            tasks = self.tasks.list_for_date(self.today)
        except ApiError as exc:
            LOGGER.error("Failed to load tasks: %s", exc)
            return []
        if task_filter == "completed":
            return [t for t in tasks if t.completed]
        if task_filter == "incomplete":
            return [t for t in tasks if not t.completed]
        return tasks

    def add_task(self, text: str, priority: int = 0) -> bool:
        text = text.strip()
        if not text:
            return False
        try:
            self.tasks.add(text, priority)
        except ApiError as exc:
            LOGGER.warning("Failed to add task: %s", exc)
            self.reconciler.notify("Failed to add task", "error")
            return False
        self.reconciler.notify("Task added!", "success")
        return True

    def toggle_task(self, task_id: int, completed: bool) -> bool:
        try:
            if completed:
                self.tasks.complete(task_id)
            else:
                task = self.tasks.get(task_id)
                self.tasks.update(task_id, task.text, task.priority, completed=False)
        except ApiError as exc:
            LOGGER.warning("Failed to update task %s: %s", task_id, exc)
            self.reconciler.notify("Failed to update task", "error")
            return False
        return True

    def delete_task(self, task_id: int) -> bool:
        try:
            self.tasks.delete(task_id)
        except ApiError as exc:
            LOGGER.warning("Failed to delete task %s: %s", task_id, exc)
            self.reconciler.notify("Failed to delete task", "error")
            return False
        self.reconciler.notify("Task deleted", "success")
        return True

    def task_stats_text(self, tasks: Optional[List[Task]] = None) -> str:
        if tasks is None:
            tasks = self.list_tasks("all")
        completed = sum(1 for t in tasks if t.completed)
        return f"{completed}/{len(tasks)} tasks completed today"

    # Session history and progress
    def session_history(self, day: Optional[date] = None) -> List[CompletedSession]:
        day = day or self.today
        local = self.session_log.work_sessions_for_date(day)
        if self.reconciler.is_local:
            return local
        try:
            remote = self.sessions.work_sessions_for_date(day)
        except ApiError as exc:
            LOGGER.error("Failed to load session history: %s", exc)
            return local
        return remote + local

    def progress_month(self, year: Optional[int] = None, month: Optional[int] = None) -> ProgressMonth:
        year = year or self.today.year
        month = month or self.today.month
        if not self.reconciler.is_local:
            try:
                return self.progress.month(year, month)
            except ApiError as exc:
                LOGGER.error("Failed to load progress chart: %s", exc)
        return self.session_log.productivity_month(year, month)

    def render_progress_chart(self, year: Optional[int], month: Optional[int], path: Path) -> Path:
        from reports.progress_chart import render_month

        return render_month(self.progress_month(year, month), path)

    def export_sessions(self, start_date: date, end_date: date) -> Path:
        sessions = list(self.session_log.sessions_between(start_date, end_date))
        if not self.reconciler.is_local:
            sessions = self._remote_sessions_between(start_date, end_date) + sessions
        return self.exporter.export(sessions)

    def _remote_sessions_between(self, start_date: date, end_date: date) -> List[CompletedSession]:
        found: List[CompletedSession] = []
        year, month = start_date.year, start_date.month
        try:
            while (year, month) <= (end_date.year, end_date.month):
                for session in self.sessions.sessions_for_month(year, month):
                    when = session.end_time or session.start_time
                    if when and start_date <= when.date() <= end_date:
                        found.append(session)
                year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        except ApiError as exc:
            LOGGER.error("Failed to load sessions for export: %s", exc)
        return found

    def save_window_size(self, width: int, height: int) -> None:
        cfg = self.config_manager.config
        cfg.last_window_width = width
        cfg.last_window_height = height
        self.config_manager.save(cfg)

    def refresh_today(self) -> None:
        self.today = date.today()
