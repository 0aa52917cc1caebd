from datetime import date

import pytest
import requests

from pomodoro_app.pomodoro.api import ApiError, ProgressApi, RemoteTimerProxy, SessionApi, TaskApi
from pomodoro_app.pomodoro.models import SessionType, TimerSettings


class FakeResponse:
    def __init__(self, status_code=200, body=None, raw=None):
        self.status_code = status_code
        self._body = body
        if raw is not None:
            self.content = raw
        else:
            self.content = b"" if body is None else b"{}"

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self):
        self.requests = []
        self.responses = []
        self.error = None

    def request(self, method, url, json=None, timeout=None):
        self.requests.append((method, url, json, timeout))
        if self.error:
            raise self.error
        return self.responses.pop(0) if self.responses else FakeResponse()


def test_status_uses_short_timeout():
    session = FakeSession()
    session.responses.append(FakeResponse(body={"state": "RUNNING", "remainingSeconds": 10}))
    proxy = RemoteTimerProxy("http://server:8080/", timeout=5.0, status_timeout=2.0, session=session)
    data = proxy.status()
    assert data["state"] == "RUNNING"
    method, url, payload, timeout = session.requests[0]
    assert (method, url, payload, timeout) == ("GET", "http://server:8080/api/timer/status", None, 2.0)


def test_commands_use_request_timeout():
    session = FakeSession()
    proxy = RemoteTimerProxy("http://server:8080", timeout=5.0, session=session)
    proxy.start()
    proxy.pause()
    proxy.stop()
    proxy.complete()
    paths = [req[1].rsplit("/", 1)[1] for req in session.requests]
    assert paths == ["start", "pause", "stop", "complete"]
    assert all(req[0] == "POST" and req[3] == 5.0 for req in session.requests)


def test_timeout_becomes_api_error():
    session = FakeSession()
    session.error = requests.exceptions.Timeout("slow")
    proxy = RemoteTimerProxy(session=session)
    with pytest.raises(ApiError) as exc:
        proxy.status()
    assert exc.value.is_timeout
    assert exc.value.status_code is None


def test_connection_error_becomes_api_error():
    session = FakeSession()
    session.error = requests.exceptions.ConnectionError("refused")
    proxy = RemoteTimerProxy(session=session)
    with pytest.raises(ApiError) as exc:
        proxy.start()
    assert not exc.value.is_timeout


def test_http_error_status_is_kept():
    session = FakeSession()
    session.responses.append(FakeResponse(status_code=500))
    with pytest.raises(ApiError) as exc:
        RemoteTimerProxy(session=session).status()
    assert exc.value.status_code == 500


def test_invalid_json_is_an_api_error():
    session = FakeSession()
    session.responses.append(FakeResponse(raw=b"<html>"))
    with pytest.raises(ApiError):
        RemoteTimerProxy(session=session).status()


def test_non_object_status_is_rejected():
    session = FakeSession()
    session.responses.append(FakeResponse(body=[1, 2]))
    with pytest.raises(ApiError):
        RemoteTimerProxy(session=session).status()


def test_settings_round_trip_through_api():
    session = FakeSession()
    session.responses.append(FakeResponse(body={"workDurationSeconds": 3000}))
    proxy = RemoteTimerProxy(session=session)
    settings = proxy.get_settings()
    assert settings.work_duration_seconds == 3000
    proxy.update_settings(TimerSettings.from_minutes(30, 5, 15))
    method, url, payload, _ = session.requests[-1]
    assert method == "PUT"
    assert url.endswith("/api/timer/settings")
    assert payload == {
        "workDurationSeconds": 1800,
        "shortBreakDurationSeconds": 300,
        "longBreakDurationSeconds": 900,
    }


def test_task_api_routes():
    session = FakeSession()
    session.responses.append(FakeResponse(body=[{"id": 1, "text": "Read", "completed": False}, "junk"]))
    api = TaskApi("http://server", session=session)
    tasks = api.list_for_date(date(2024, 5, 6))
    assert [t.text for t in tasks] == ["Read"]
    api.add("Write", 1)
    api.complete(1)
    api.delete(1)
    routes = [(req[0], req[1]) for req in session.requests]
    assert routes == [
        ("GET", "http://server/api/tasks/2024-05-06"),
        ("POST", "http://server/api/tasks"),
        ("PATCH", "http://server/api/tasks/1/complete"),
        ("DELETE", "http://server/api/tasks/1"),
    ]
    assert session.requests[1][2] == {"text": "Write", "priority": 1}


def test_session_and_progress_api_parse_bodies():
    session = FakeSession()
    session.responses.append(
        FakeResponse(
            body=[{"id": 3, "sessionType": "WORK", "startTime": "2024-05-06T09:00:00", "durationSeconds": 1500}]
        )
    )
    session.responses.append(
        FakeResponse(body={"year": 2024, "month": 5, "days": [{"date": "2024-05-06", "totalHours": 0.5}]})
    )
    sessions = SessionApi(session=session).work_sessions_for_date(date(2024, 5, 6))
    assert sessions[0].session_type == SessionType.WORK
    assert sessions[0].duration_seconds == 1500
    month = ProgressApi(session=session).month(2024, 5)
    assert month.days[0].productivity_level == 1
    assert session.requests[1][1].endswith("/api/progress/month/2024/5")
