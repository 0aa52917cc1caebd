"""SQLite log of sessions completed while the server was unreachable."""
from __future__ import annotations

import calendar
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Iterable, List

from .models import CompletedSession, ProgressDay, ProgressMonth, SessionType, productivity_level

LOGGER = logging.getLogger(__name__)


class SessionLog:
    """Wrapper around SQLite holding locally completed sessions."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _get_conn(self) -> Iterable[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            LOGGER.exception("Database operation failed")
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._get_conn() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS completed_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_type TEXT NOT NULL,
                    start_time TEXT,
                    end_time TEXT NOT NULL,
                    duration_seconds INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_sessions_end ON completed_sessions(end_time)")

    def record(self, session: CompletedSession) -> CompletedSession:
        end_time = session.end_time or datetime.now()
        with self._get_conn() as conn:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO completed_sessions (session_type, start_time, end_time, duration_seconds) VALUES (?, ?, ?, ?)",
                (
                    session.session_type.value,
                    session.start_time.isoformat(timespec="seconds") if session.start_time else None,
                    end_time.isoformat(timespec="seconds"),
                    int(session.duration_seconds),
                ),
            )
            session_id = cur.lastrowid
        LOGGER.info("Recorded local %s session (%ss)", session.session_type.value, session.duration_seconds)
        return CompletedSession(
            id=session_id,
            session_type=session.session_type,
            start_time=session.start_time,
            end_time=end_time,
            duration_seconds=int(session.duration_seconds),
        )

    def sessions_between(self, start_date: date, end_date: date) -> List[CompletedSession]:
        """Sessions whose end time falls on a day in ``[start_date, end_date]``."""
        lower = datetime.combine(start_date, time.min).isoformat(timespec="seconds")
        upper = datetime.combine(end_date + timedelta(days=1), time.min).isoformat(timespec="seconds")
        with self._get_conn() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT id, session_type, start_time, end_time, duration_seconds
                FROM completed_sessions
                WHERE end_time >= ? AND end_time < ?
                ORDER BY end_time ASC
                """,
                (lower, upper),
            )
            return [CompletedSession.from_row(row) for row in cur.fetchall()]

    def work_sessions_for_date(self, day: date) -> List[CompletedSession]:
        return [s for s in self.sessions_between(day, day) if s.session_type == SessionType.WORK]

    def productivity_month(self, year: int, month: int) -> ProgressMonth:
        last_day = calendar.monthrange(year, month)[1]
        sessions = self.sessions_between(date(year, month, 1), date(year, month, last_day))
        hours: dict[date, float] = {}
        counts: dict[date, int] = {}
        for session in sessions:
            if session.session_type != SessionType.WORK or session.end_time is None:
                continue
            day = session.end_time.date()
            hours[day] = hours.get(day, 0.0) + session.duration_hours
            counts[day] = counts.get(day, 0) + 1
        days = []
        for number in range(1, last_day + 1):
            day = date(year, month, number)
            total = hours.get(day, 0.0)
            days.append(
                ProgressDay(
                    date=day,
                    total_hours=total,
                    session_count=counts.get(day, 0),
                    productivity_level=productivity_level(total),
                )
            )
        return ProgressMonth(year=year, month=month, days=days)
