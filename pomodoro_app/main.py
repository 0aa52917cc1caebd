"""Application entry point for Pomodoro Desk (wxPython edition)."""
from __future__ import annotations

import importlib.util
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pomodoro_app.pomodoro import __version__
from pomodoro_app.pomodoro.api import ProgressApi, RemoteTimerProxy, SessionApi, TaskApi
from pomodoro_app.pomodoro.controllers import AppController, ConfigManager
from pomodoro_app.pomodoro.reconciler import TimerReconciler
from pomodoro_app.pomodoro.storage import SessionLog

if TYPE_CHECKING:  # pragma: no cover - hints only
    from pomodoro_app.pomodoro.views.main_window import PomodoroApp

ExcelExporter = None
PomodoroApp = None

LOG_DIR = Path.home() / ".pomodoro_desk" / "logs"
LOG_FILE = LOG_DIR / "app.log"


def ensure_wx_dependencies() -> None:
    """Exit early with a clear message when wxPython bindings are missing."""

    def _missing_message() -> str:
        return (
            "wxPython runtime is missing. Install wxPython (pip install wxPython) and ensure system "
            "GTK3 or native widgets are available. On Debian/Ubuntu, you may need `libgtk-3-dev` and "
            "related dependencies.\n"
        )

    if importlib.util.find_spec("wx") is None:
        sys.stderr.write(_missing_message())
        sys.exit(1)


def load_runtime_modules() -> None:
    """Load wx and report modules after dependency checks."""

    ensure_wx_dependencies()

    global ExcelExporter, PomodoroApp
    from reports.excel_export import ExcelExporter as _ExcelExporter
    from pomodoro_app.pomodoro.views.main_window import PomodoroApp as _PomodoroApp

    ExcelExporter = _ExcelExporter
    PomodoroApp = _PomodoroApp


def configure_logging(log_file: Path = LOG_FILE) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=1024 * 1024, backupCount=3)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[handler, logging.StreamHandler()],
    )
    logging.info("Pomodoro Desk v%s starting", __version__)


def build_controller(config_manager: ConfigManager, exporter=None) -> AppController:
    if exporter is None:
        if ExcelExporter is None:
            raise RuntimeError("Report modules not loaded; call load_runtime_modules() first.")
        exporter = ExcelExporter(Path(config_manager.config.export_path))

    cfg = config_manager.config
    base_url = cfg.api_base_url
    timeout = cfg.request_timeout_seconds
    session_log = SessionLog(cfg.resolved_database_path(config_manager.config_dir))
    proxy = RemoteTimerProxy(base_url, timeout=timeout, status_timeout=cfg.status_timeout_seconds)
    reconciler = TimerReconciler(
        proxy,
        settings=cfg.timer_settings(),
        recorder=session_log.record,
        recheck_interval=cfg.recheck_interval_seconds,
    )
    return AppController(
        reconciler,
        TaskApi(base_url, timeout=timeout, session=proxy.session),
        SessionApi(base_url, timeout=timeout, session=proxy.session),
        ProgressApi(base_url, timeout=timeout, session=proxy.session),
        session_log,
        exporter,
        config_manager,
    )


def main() -> None:
    load_runtime_modules()
    configure_logging()
    config_manager = ConfigManager()
    controller = build_controller(config_manager)
    app = PomodoroApp(controller, config_manager)
    app.run()


if __name__ == "__main__":
    main()
