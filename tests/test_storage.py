from datetime import date, datetime, timedelta

from pomodoro_app.pomodoro.models import CompletedSession, SessionType
from pomodoro_app.pomodoro.storage import SessionLog


def _session(kind, end, seconds=1500):
    return CompletedSession(
        id=None,
        session_type=kind,
        start_time=end - timedelta(seconds=seconds),
        end_time=end,
        duration_seconds=seconds,
    )


def test_record_and_retrieve(tmp_path):
    log = SessionLog(tmp_path / "sessions.db")
    end = datetime(2024, 3, 5, 10, 25)
    saved = log.record(_session(SessionType.WORK, end))
    assert saved.id is not None
    sessions = log.sessions_between(date(2024, 3, 5), date(2024, 3, 5))
    assert len(sessions) == 1
    assert sessions[0].end_time == end
    assert sessions[0].start_time == datetime(2024, 3, 5, 10, 0)


def test_work_sessions_for_date_ignores_breaks_and_other_days(tmp_path):
    log = SessionLog(tmp_path / "sessions.db")
    day = datetime(2024, 3, 5, 12, 0)
    log.record(_session(SessionType.WORK, day))
    log.record(_session(SessionType.SHORT_BREAK, day + timedelta(minutes=5), 300))
    log.record(_session(SessionType.WORK, day + timedelta(days=1)))
    work = log.work_sessions_for_date(date(2024, 3, 5))
    assert [s.session_type for s in work] == [SessionType.WORK]


def test_productivity_month_covers_every_day(tmp_path):
    log = SessionLog(tmp_path / "sessions.db")
    log.record(_session(SessionType.WORK, datetime(2024, 2, 10, 9, 0), 3600 * 2))
    month = log.productivity_month(2024, 2)
    assert len(month.days) == 29
    tenth = month.days[9]
    assert tenth.date == date(2024, 2, 10)
    assert tenth.total_hours == 2.0
    assert tenth.session_count == 1
    assert tenth.productivity_level == 2
    assert month.days[0].productivity_level == 0
