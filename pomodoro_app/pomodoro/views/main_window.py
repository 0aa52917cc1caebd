"""Main window and wxPython application wiring."""
from __future__ import annotations

import logging
import tempfile
import threading
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional

import wx
import wx.adv

from ..controllers import TASK_FILTERS, AppController, ConfigManager
from ..models import CompletedSession, SessionType, Task, TimerSnapshot, format_duration
from ..scheduler import RefreshScheduler
from .presenter import SESSION_LABELS, present

LOGGER = logging.getLogger(__name__)

PRIMARY = "#4A90E2"
ACCENT = "#63C297"
BACKGROUND = "#F6F7FB"
CARD = "#FFFFFF"
TEXT_SECONDARY = "#4D4F57"
MUTED = "#8A8C93"
ERROR = "#E14C4C"
WARNING = "#FFC857"
SUCCESS = "#57C785"

SESSION_COLOURS = {
    SessionType.WORK: "#E74C3C",
    SessionType.SHORT_BREAK: "#27AE60",
    SessionType.LONG_BREAK: "#2980B9",
}


def _styled_button(parent: wx.Window, label: str, handler, colour: str = PRIMARY) -> wx.Button:
    btn = wx.Button(parent, label=label)
    btn.SetBackgroundColour(colour)
    btn.SetForegroundColour("white")
    btn.Bind(wx.EVT_BUTTON, handler)
    return btn


class SettingsDialog(wx.Dialog):
    """Edit the three session durations in minutes."""

    def __init__(self, parent: wx.Window, work: int, short_break: int, long_break: int) -> None:
        super().__init__(parent, title="Timer settings", style=wx.DEFAULT_DIALOG_STYLE)
        sizer = wx.BoxSizer(wx.VERTICAL)
        grid = wx.FlexGridSizer(rows=3, cols=2, vgap=6, hgap=8)
        self.work_ctrl = wx.SpinCtrl(self, min=0, max=999, initial=work)
        self.short_ctrl = wx.SpinCtrl(self, min=0, max=999, initial=short_break)
        self.long_ctrl = wx.SpinCtrl(self, min=0, max=999, initial=long_break)
        for label, ctrl in (
            ("Work (min)", self.work_ctrl),
            ("Short break (min)", self.short_ctrl),
            ("Long break (min)", self.long_ctrl),
        ):
            grid.Add(wx.StaticText(self, label=label), 0, wx.ALIGN_CENTER_VERTICAL)
            grid.Add(ctrl, 0)
        sizer.Add(grid, 0, wx.ALL, 10)
        hint = wx.StaticText(self, label="Work: 1-120 min, Breaks: 1-60 min")
        hint.SetForegroundColour(MUTED)
        sizer.Add(hint, 0, wx.LEFT | wx.RIGHT, 10)
        sizer.Add(self.CreateButtonSizer(wx.OK | wx.CANCEL), 0, wx.ALIGN_RIGHT | wx.ALL, 8)
        self.SetSizerAndFit(sizer)

    def get_values(self) -> tuple[int, int, int]:
        return self.work_ctrl.GetValue(), self.short_ctrl.GetValue(), self.long_ctrl.GetValue()


class TimerPanel(wx.Panel):
    """Countdown display and the timer command buttons."""

    def __init__(self, parent: wx.Window, frame: "PomodoroFrame") -> None:
        super().__init__(parent)
        self.frame = frame
        self.SetBackgroundColour(CARD)
        self._build_ui()

    def _build_ui(self) -> None:
        sizer = wx.BoxSizer(wx.VERTICAL)
        self.session_label = wx.StaticText(self, label="Work Session")
        font = self.session_label.GetFont()
        font.MakeBold()
        font.PointSize += 2
        self.session_label.SetFont(font)
        sizer.Add(self.session_label, 0, wx.ALL | wx.ALIGN_CENTER_HORIZONTAL, 6)

        self.time_label = wx.StaticText(self, label="25:00", style=wx.ALIGN_CENTER_HORIZONTAL)
        time_font = self.time_label.GetFont()
        time_font.PointSize += 20
        time_font.MakeBold()
        self.time_label.SetFont(time_font)
        sizer.Add(self.time_label, 0, wx.ALL | wx.ALIGN_CENTER_HORIZONTAL, 6)

        self.state_label = wx.StaticText(self, label="Ready to start")
        self.state_label.SetForegroundColour(TEXT_SECONDARY)
        sizer.Add(self.state_label, 0, wx.ALL | wx.ALIGN_CENTER_HORIZONTAL, 2)

        self.progress = wx.Gauge(self, range=100)
        sizer.Add(self.progress, 0, wx.EXPAND | wx.ALL, 6)

        btns = wx.BoxSizer(wx.HORIZONTAL)
        self.start_btn = _styled_button(self, "Start", self.on_start, ACCENT)
        self.pause_btn = _styled_button(self, "Pause", self.on_pause, WARNING)
        self.stop_btn = _styled_button(self, "Stop", self.on_stop, ERROR)
        self.complete_btn = _styled_button(self, "Complete", self.on_complete)
        for btn in (self.start_btn, self.pause_btn, self.stop_btn, self.complete_btn):
            btns.Add(btn, 1, wx.ALL, 4)
        sizer.Add(btns, 0, wx.EXPAND)

        info = wx.BoxSizer(wx.HORIZONTAL)
        self.sessions_label = wx.StaticText(self, label="Completed sessions: 0")
        self.mode_label = wx.StaticText(self, label="Connected")
        self.mode_label.SetForegroundColour(SUCCESS)
        self.reconnect_btn = _styled_button(self, "Reconnect", self.on_reconnect)
        self.reconnect_btn.Hide()
        settings_btn = _styled_button(self, "Settings", self.on_settings, MUTED)
        info.Add(self.sessions_label, 1, wx.ALL | wx.ALIGN_CENTER_VERTICAL, 4)
        info.Add(self.mode_label, 0, wx.ALL | wx.ALIGN_CENTER_VERTICAL, 4)
        info.Add(self.reconnect_btn, 0, wx.ALL, 4)
        info.Add(settings_btn, 0, wx.ALL, 4)
        sizer.Add(info, 0, wx.EXPAND)
        self.SetSizer(sizer)

    def render(self, snapshot: TimerSnapshot, is_local: bool) -> None:
        display = present(snapshot, is_local)
        self.time_label.SetLabel(display.time_text)
        self.time_label.SetForegroundColour(SESSION_COLOURS.get(snapshot.session_type, PRIMARY))
        self.session_label.SetLabel(display.session_text)
        self.state_label.SetLabel(display.state_text)
        self.sessions_label.SetLabel(display.sessions_text)
        self.mode_label.SetLabel(display.mode_text)
        self.mode_label.SetForegroundColour(WARNING if is_local else SUCCESS)
        self.progress.SetValue(display.progress_percent)
        self.start_btn.Enable(display.start_enabled)
        self.pause_btn.Enable(display.pause_enabled)
        self.stop_btn.Enable(display.stop_enabled)
        self.complete_btn.Enable(display.complete_enabled)
        self.reconnect_btn.Show(display.reconnect_visible)
        self.Layout()

    def on_start(self, event: wx.CommandEvent) -> None:
        self.frame.run_command(self.frame.controller.start)

    def on_pause(self, event: wx.CommandEvent) -> None:
        self.frame.run_command(self.frame.controller.pause)

    def on_stop(self, event: wx.CommandEvent) -> None:
        self.frame.run_command(self.frame.controller.stop)

    def on_complete(self, event: wx.CommandEvent) -> None:
        self.frame.run_command(self.frame.controller.complete)

    def on_reconnect(self, event: wx.CommandEvent) -> None:
        self.frame.run_command(self.frame.controller.reconnect)

    def on_settings(self, event: wx.CommandEvent) -> None:
        settings = self.frame.controller.reconciler.settings
        dlg = SettingsDialog(
            self,
            settings.work_duration_seconds // 60,
            settings.short_break_duration_seconds // 60,
            settings.long_break_duration_seconds // 60,
        )
        if dlg.ShowModal() == wx.ID_OK:
            work, short_break, long_break = dlg.get_values()
            self.frame.run_command(lambda: self.frame.controller.save_settings(work, short_break, long_break))
        dlg.Destroy()


class TaskPanel(wx.Panel):
    """Today's task list with add, filter, toggle and delete."""

    def __init__(self, parent: wx.Window, frame: "PomodoroFrame") -> None:
        super().__init__(parent)
        self.frame = frame
        self.tasks: List[Task] = []
        self._build_ui()

    def _build_ui(self) -> None:
        sizer = wx.BoxSizer(wx.VERTICAL)
        add_row = wx.BoxSizer(wx.HORIZONTAL)
        self.task_input = wx.TextCtrl(self, style=wx.TE_PROCESS_ENTER)
        self.task_input.SetHint("Add a task for today")
        self.task_input.Bind(wx.EVT_TEXT_ENTER, self.on_add)
        self.priority_check = wx.CheckBox(self, label="High priority")
        add_row.Add(self.task_input, 1, wx.ALL, 4)
        add_row.Add(self.priority_check, 0, wx.ALL | wx.ALIGN_CENTER_VERTICAL, 4)
        add_row.Add(_styled_button(self, "Add", self.on_add), 0, wx.ALL, 4)
        sizer.Add(add_row, 0, wx.EXPAND)

        filter_row = wx.BoxSizer(wx.HORIZONTAL)
        self.filter_choice = wx.Choice(self, choices=[name.title() for name in TASK_FILTERS])
        self.filter_choice.SetSelection(0)
        self.filter_choice.Bind(wx.EVT_CHOICE, self.on_filter)
        filter_row.Add(wx.StaticText(self, label="Show"), 0, wx.ALL | wx.ALIGN_CENTER_VERTICAL, 4)
        filter_row.Add(self.filter_choice, 0, wx.ALL, 4)
        self.stats_label = wx.StaticText(self, label="0/0 tasks completed today")
        self.stats_label.SetForegroundColour(TEXT_SECONDARY)
        filter_row.Add(self.stats_label, 1, wx.ALL | wx.ALIGN_CENTER_VERTICAL, 4)
        sizer.Add(filter_row, 0, wx.EXPAND)

        self.task_list = wx.CheckListBox(self)
        self.task_list.Bind(wx.EVT_CHECKLISTBOX, self.on_toggle)
        sizer.Add(self.task_list, 1, wx.EXPAND | wx.ALL, 4)
        sizer.Add(_styled_button(self, "Delete selected", self.on_delete, ERROR), 0, wx.ALIGN_RIGHT | wx.ALL, 4)
        self.SetSizer(sizer)

    def render(self, tasks: List[Task], stats_text: str) -> None:
        self.tasks = tasks
        self.task_list.Clear()
        for idx, task in enumerate(tasks):
            prefix = "! " if task.is_high_priority else ""
            self.task_list.Append(f"{prefix}{task.text}")
            self.task_list.Check(idx, task.completed)
        self.stats_label.SetLabel(stats_text)

    def on_add(self, event: wx.Event) -> None:
        text = self.task_input.GetValue()
        priority = 1 if self.priority_check.GetValue() else 0
        self.task_input.SetValue("")
        self.frame.run_data_action(lambda: self.frame.controller.add_task(text, priority))

    def on_filter(self, event: wx.CommandEvent) -> None:
        self.frame.controller.set_task_filter(TASK_FILTERS[self.filter_choice.GetSelection()])
        self.frame.refresh_data()

    def on_toggle(self, event: wx.CommandEvent) -> None:
        idx = event.GetInt()
        if not 0 <= idx < len(self.tasks) or self.tasks[idx].id is None:
            return
        task_id = self.tasks[idx].id
        checked = self.task_list.IsChecked(idx)
        self.frame.run_data_action(lambda: self.frame.controller.toggle_task(task_id, checked))

    def on_delete(self, event: wx.CommandEvent) -> None:
        idx = self.task_list.GetSelection()
        if idx == wx.NOT_FOUND or self.tasks[idx].id is None:
            return
        if wx.MessageBox("Delete this task?", "Confirm", wx.YES_NO | wx.ICON_QUESTION) != wx.YES:
            return
        task_id = self.tasks[idx].id
        self.frame.run_data_action(lambda: self.frame.controller.delete_task(task_id))


class HistoryPanel(wx.Panel):
    """Today's completed work sessions plus the Excel export."""

    def __init__(self, parent: wx.Window, frame: "PomodoroFrame") -> None:
        super().__init__(parent)
        self.frame = frame
        self._build_ui()

    def _build_ui(self) -> None:
        sizer = wx.BoxSizer(wx.VERTICAL)
        self.list_ctrl = wx.ListCtrl(self, style=wx.LC_REPORT | wx.BORDER_SUNKEN)
        for i, heading in enumerate(["Type", "Start", "End", "Duration"]):
            self.list_ctrl.InsertColumn(i, heading)
        sizer.Add(self.list_ctrl, 1, wx.EXPAND | wx.ALL, 4)

        export_row = wx.BoxSizer(wx.HORIZONTAL)
        self.start_picker = wx.adv.DatePickerCtrl(self)
        self.end_picker = wx.adv.DatePickerCtrl(self)
        for label, ctrl in (("From", self.start_picker), ("To", self.end_picker)):
            export_row.Add(wx.StaticText(self, label=label), 0, wx.ALL | wx.ALIGN_CENTER_VERTICAL, 4)
            export_row.Add(ctrl, 0, wx.ALL, 4)
        export_row.Add(_styled_button(self, "Export to Excel", self.on_export, ACCENT), 0, wx.ALL, 4)
        sizer.Add(export_row, 0, wx.EXPAND)
        self.SetSizer(sizer)

    def render(self, sessions: List[CompletedSession]) -> None:
        self.list_ctrl.DeleteAllItems()
        if not sessions:
            self.list_ctrl.InsertItem(0, "No sessions completed today")
            return
        for session in sessions:
            idx = self.list_ctrl.InsertItem(
                self.list_ctrl.GetItemCount(), SESSION_LABELS.get(session.session_type, "Work Session")
            )
            self.list_ctrl.SetItem(idx, 1, session.start_time.strftime("%H:%M") if session.start_time else "")
            self.list_ctrl.SetItem(idx, 2, session.end_time.strftime("%H:%M") if session.end_time else "")
            self.list_ctrl.SetItem(idx, 3, format_duration(session.duration_seconds))
        for col in range(4):
            self.list_ctrl.SetColumnWidth(col, wx.LIST_AUTOSIZE)

    def on_export(self, event: wx.CommandEvent) -> None:
        start_date = date.fromisoformat(self.start_picker.GetValue().FormatISODate())
        end_date = date.fromisoformat(self.end_picker.GetValue().FormatISODate())
        if end_date < start_date:
            wx.MessageBox("The end date must not be before the start date.", "Export", wx.ICON_WARNING)
            return

        def done(path: Path) -> None:
            self.frame.show_message(f"Exported sessions to {path}", "success")

        self.frame.in_background(lambda: self.frame.controller.export_sessions(start_date, end_date), done)


class ProgressPanel(wx.ScrolledWindow):
    """Monthly productivity grid rendered to a PNG by matplotlib."""

    def __init__(self, parent: wx.Window, frame: "PomodoroFrame") -> None:
        super().__init__(parent)
        self.frame = frame
        self.SetScrollRate(10, 10)
        self.chart_path = Path(tempfile.gettempdir()) / "pomodoro_desk_progress.png"
        sizer = wx.BoxSizer(wx.VERTICAL)
        self.summary_label = wx.StaticText(self, label="")
        sizer.Add(self.summary_label, 0, wx.ALL, 6)
        self.bitmap = wx.StaticBitmap(self)
        sizer.Add(self.bitmap, 1, wx.EXPAND | wx.ALL, 6)
        self.SetSizer(sizer)

    def render(self, path: Optional[Path], summary: str) -> None:
        self.summary_label.SetLabel(summary)
        if path and path.exists():
            self.bitmap.SetBitmap(wx.Bitmap(str(path), wx.BITMAP_TYPE_PNG))
        self.FitInside()
        self.Layout()


class PomodoroFrame(wx.Frame):
    def __init__(self, controller: AppController, config_manager: ConfigManager) -> None:
        cfg = config_manager.config
        super().__init__(None, title="Pomodoro Desk", size=(cfg.last_window_width, cfg.last_window_height))
        self.controller = controller
        self.config_manager = config_manager
        self._closed = False
        self.SetBackgroundColour(BACKGROUND)
        self.CreateStatusBar()

        notebook = wx.Notebook(self)
        timer_page = wx.Panel(notebook)
        page_sizer = wx.BoxSizer(wx.VERTICAL)
        self.timer_panel = TimerPanel(timer_page, self)
        self.task_panel = TaskPanel(timer_page, self)
        page_sizer.Add(self.timer_panel, 0, wx.EXPAND | wx.ALL, 6)
        page_sizer.Add(self.task_panel, 1, wx.EXPAND | wx.ALL, 6)
        timer_page.SetSizer(page_sizer)
        self.history_panel = HistoryPanel(notebook, self)
        self.progress_panel = ProgressPanel(notebook, self)
        notebook.AddPage(timer_page, "Timer")
        notebook.AddPage(self.history_panel, "History")
        notebook.AddPage(self.progress_panel, "Progress")

        reconciler = controller.reconciler
        reconciler.on_message = lambda text, level: wx.CallAfter(self.show_message, text, level)
        reconciler.on_session_completed = lambda: wx.CallAfter(self._on_session_completed)

        self.scheduler = RefreshScheduler(
            self._timer_tick,
            self._data_refresh,
            tick_interval=cfg.poll_interval_seconds,
            refresh_interval=cfg.refresh_interval_seconds,
        )
        self.Bind(wx.EVT_CLOSE, self.on_close)
        self.Bind(wx.EVT_ACTIVATE, self.on_activate)
        self.Bind(wx.EVT_ICONIZE, self.on_iconize)

    def start(self) -> None:
        self.in_background(self.controller.load_settings)
        self.scheduler.start()
        self.refresh_all()

    # Background plumbing
    def in_background(self, work: Callable[[], object], done: Optional[Callable[[object], None]] = None) -> None:
        """Run ``work`` off the UI thread; ``done`` receives its result on the UI thread."""

        def runner() -> None:
            try:
                result = work()
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("Background action failed")
                wx.CallAfter(self._show_error, str(exc))
                return
            if done is not None:
                wx.CallAfter(self._guarded, done, result)

        threading.Thread(target=runner, daemon=True).start()

    def _guarded(self, func: Callable[..., None], *args) -> None:
        if self._closed:
            return
        func(*args)

    def run_command(self, command: Callable[[], object]) -> None:
        self.in_background(command, lambda _result: self.refresh_timer())

    def run_data_action(self, action: Callable[[], object]) -> None:
        self.in_background(action, lambda _result: self.refresh_data())

    # Refresh paths
    def _timer_tick(self) -> None:
        snapshot = self.controller.snapshot()
        wx.CallAfter(self._guarded, self.timer_panel.render, snapshot, self.controller.is_local_mode)

    def _data_refresh(self) -> None:
        self.controller.refresh_today()
        tasks = self.controller.list_tasks()
        stats = self.controller.task_stats_text(self.controller.list_tasks("all"))
        sessions = self.controller.session_history()
        wx.CallAfter(self._guarded, self.task_panel.render, tasks, stats)
        wx.CallAfter(self._guarded, self.history_panel.render, sessions)
        self._chart_refresh()

    def _chart_refresh(self) -> None:
        month = self.controller.progress_month()
        path = None
        try:
            path = self.controller.render_progress_chart(month.year, month.month, self.progress_panel.chart_path)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Progress chart rendering failed")
        summary = f"{month.month_name} {month.year}: {month.total_hours:.1f} hours, {month.total_sessions} sessions"
        wx.CallAfter(self._guarded, self.progress_panel.render, path, summary)

    def refresh_timer(self) -> None:
        self.in_background(self._timer_tick)

    def refresh_data(self) -> None:
        self.in_background(self._data_refresh)

    def refresh_all(self) -> None:
        self.in_background(self.scheduler.refresh_now)

    def _on_session_completed(self) -> None:
        if self._closed:
            return
        wx.Bell()
        self.refresh_data()

    # Messages
    def show_message(self, text: str, level: str = "info") -> None:
        if self._closed:
            return
        self.SetStatusText(text)

    def _show_error(self, text: str) -> None:
        if self._closed:
            return
        wx.MessageBox(f"Something went wrong.\n\n{text}", "Pomodoro Desk", wx.ICON_ERROR)

    # Window events
    def on_activate(self, event: wx.ActivateEvent) -> None:
        if event.GetActive() and not self._closed:
            self.refresh_all()
        event.Skip()

    def on_iconize(self, event: wx.IconizeEvent) -> None:
        if not event.IsIconized() and not self._closed:
            self.refresh_all()
        event.Skip()

    def on_close(self, event: wx.CloseEvent) -> None:  # type: ignore[override]
        self._closed = True
        self.scheduler.stop()
        width, height = self.GetSize()
        self.controller.save_window_size(width, height)
        event.Skip()


class PomodoroApp(wx.App):
    def __init__(self, controller: AppController, config_manager: ConfigManager):
        self.controller = controller
        self.config_manager = config_manager
        super().__init__(clearSigInt=True)

    def OnInit(self) -> bool:  # type: ignore[override]
        self.frame = PomodoroFrame(self.controller, self.config_manager)
        self.frame.Show()
        self.frame.start()
        return True

    def run(self) -> None:
        self.MainLoop()
