"""HTTP clients for the Pomodoro server API.

Every call carries a bounded timeout. Transport errors, timeouts and
non-2xx responses all surface as :class:`ApiError` so callers only need
one ``except`` clause to decide on a fallback.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, List, Optional

import requests

from .models import CompletedSession, ProgressMonth, Task, TimerSettings

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080"
STATUS_TIMEOUT_SECONDS = 2.0
REQUEST_TIMEOUT_SECONDS = 5.0


class ApiError(Exception):
    """A remote call failed; ``status_code`` is None for transport failures."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_timeout(self) -> bool:
        return isinstance(self.__cause__, requests.exceptions.Timeout)


class ApiClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        timeout: Optional[float] = None,
        expect_json: bool = True,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=timeout or self.timeout)
        except requests.exceptions.Timeout as exc:
            raise ApiError(f"{method} {path} timed out") from exc
        except requests.RequestException as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc
        LOGGER.debug("%s %s -> %s", method, path, response.status_code)
        if not response.ok:
            raise ApiError(f"{method} {path} returned HTTP {response.status_code}", status_code=response.status_code)
        if not expect_json or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"{method} {path} returned invalid JSON", status_code=response.status_code) from exc


class RemoteTimerProxy(ApiClient):
    """Timer endpoints under ``/api/timer``."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        status_timeout: float = STATUS_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, session=session)
        self.status_timeout = status_timeout

    def status(self) -> dict:
        data = self.request("GET", "/api/timer/status", timeout=self.status_timeout)
        if not isinstance(data, dict):
            raise ApiError("Timer status body is not an object")
        return data

    def start(self) -> None:
        self.request("POST", "/api/timer/start", expect_json=False)

    def pause(self) -> None:
        self.request("POST", "/api/timer/pause", expect_json=False)

    def stop(self) -> None:
        self.request("POST", "/api/timer/stop", expect_json=False)

    def complete(self) -> None:
        self.request("POST", "/api/timer/complete", expect_json=False)

    def get_settings(self) -> TimerSettings:
        return TimerSettings.from_json(self.request("GET", "/api/timer/settings"))

    def update_settings(self, settings: TimerSettings) -> None:
        self.request("PUT", "/api/timer/settings", payload=settings.to_json(), expect_json=False)


class TaskApi(ApiClient):
    def list_for_date(self, day: date) -> List[Task]:
        data = self.request("GET", f"/api/tasks/{day.isoformat()}") or []
        return [Task.from_json(item) for item in data if isinstance(item, dict)]

    def get(self, task_id: int) -> Task:
        return Task.from_json(self.request("GET", f"/api/tasks/task/{task_id}") or {})

    def add(self, text: str, priority: int = 0) -> None:
        self.request("POST", "/api/tasks", payload={"text": text, "priority": priority}, expect_json=False)

    def update(self, task_id: int, text: str, priority: int, completed: bool) -> None:
        payload = {"text": text, "priority": priority, "completed": completed}
        self.request("PUT", f"/api/tasks/{task_id}", payload=payload, expect_json=False)

    def complete(self, task_id: int) -> None:
        self.request("PATCH", f"/api/tasks/{task_id}/complete", expect_json=False)

    def delete(self, task_id: int) -> None:
        self.request("DELETE", f"/api/tasks/{task_id}", expect_json=False)


class SessionApi(ApiClient):
    def work_sessions_for_date(self, day: date) -> List[CompletedSession]:
        data = self.request("GET", f"/api/sessions/work/{day.isoformat()}") or []
        return [CompletedSession.from_json(item) for item in data if isinstance(item, dict)]

    def sessions_for_month(self, year: int, month: int) -> List[CompletedSession]:
        data = self.request("GET", f"/api/sessions/month/{year}/{month}") or []
        return [CompletedSession.from_json(item) for item in data if isinstance(item, dict)]


class ProgressApi(ApiClient):
    def month(self, year: int, month: int) -> ProgressMonth:
        data = self.request("GET", f"/api/progress/month/{year}/{month}")
        if not isinstance(data, dict):
            raise ApiError("Progress month body is not an object")
        return ProgressMonth.from_json(data)
