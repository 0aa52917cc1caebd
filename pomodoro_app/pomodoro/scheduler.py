"""Periodic refresh loops driving the timer display and collaborator data."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)

TIMER_TICK_SECONDS = 1.0
DATA_REFRESH_SECONDS = 30.0


class PeriodicTask:
    """Run ``callback`` every ``interval`` seconds on a daemon thread.

    A tick that arrives while the previous run is still busy is dropped, so
    slow callbacks never pile up.
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], None]) -> None:
        self.name = name
        self.interval = interval
        self.callback = callback
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._busy = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        LOGGER.debug("Started periodic task %s every %.1fs", self.name, self.interval)

    def stop(self) -> None:
        if self._stop_event:
            self._stop_event.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=1)
        self._thread = None
        self._stop_event = None
        LOGGER.debug("Stopped periodic task %s", self.name)

    def run_once(self) -> bool:
        """Run the callback now unless a run is already in progress."""
        if not self._busy.acquire(blocking=False):
            LOGGER.debug("Skipping %s tick; previous run still busy", self.name)
            return False
        try:
            self.callback()
        except Exception:  # noqa: BLE001
            LOGGER.exception("Periodic task %s failed", self.name)
        finally:
            self._busy.release()
        return True

    def _loop(self) -> None:
        stop_event = self._stop_event
        assert stop_event is not None
        while not stop_event.wait(self.interval):
            self.run_once()


class RefreshScheduler:
    """The two refresh cadences of the client plus an out-of-band refresh."""

    def __init__(
        self,
        on_timer_tick: Callable[[], None],
        on_data_refresh: Callable[[], None],
        tick_interval: float = TIMER_TICK_SECONDS,
        refresh_interval: float = DATA_REFRESH_SECONDS,
    ) -> None:
        self.timer_task = PeriodicTask("timer-tick", tick_interval, on_timer_tick)
        self.data_task = PeriodicTask("data-refresh", refresh_interval, on_data_refresh)

    def start(self) -> None:
        self.timer_task.start()
        self.data_task.start()

    def stop(self) -> None:
        self.timer_task.stop()
        self.data_task.stop()

    def refresh_now(self) -> None:
        """Immediate refresh, e.g. when the window becomes visible again."""
        self.timer_task.run_once()
        self.data_task.run_once()
