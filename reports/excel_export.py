"""Excel export of completed Pomodoro sessions."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

import pandas as pd

from pomodoro_app.pomodoro.models import CompletedSession

LOGGER = logging.getLogger(__name__)

SESSION_COLUMNS = ["Date", "SessionType", "Start", "End", "DurationSeconds", "DurationHours"]


class ExcelExporter:
    def __init__(self, export_path: Path):
        self.export_path = Path(export_path)
        self.export_path.parent.mkdir(parents=True, exist_ok=True)

    def export(self, sessions: Iterable[CompletedSession]) -> Path:
        """Export sessions plus a per-day summary, deduplicating by start/end/type."""
        rows = []
        for session in sessions:
            end = session.end_time or session.start_time
            rows.append(
                (
                    end.date() if end else None,
                    session.session_type.value,
                    session.start_time.isoformat(timespec="seconds") if session.start_time else "",
                    session.end_time.isoformat(timespec="seconds") if session.end_time else "",
                    session.duration_seconds,
                    round(session.duration_hours, 4),
                )
            )
        sessions_df = pd.DataFrame(rows, columns=SESSION_COLUMNS)
        sessions_df["Date"] = pd.to_datetime(sessions_df["Date"]).dt.date

        existing = None
        if self.export_path.exists():
            try:
                existing = pd.read_excel(self.export_path, sheet_name="Sessions")
            except Exception:
                LOGGER.warning("Existing Excel file unreadable, recreating: %s", self.export_path)

        if existing is not None and not existing.empty:
            existing["Date"] = pd.to_datetime(existing["Date"]).dt.date
            existing = existing.fillna({"Start": "", "End": ""})
            combined = pd.concat([existing, sessions_df], ignore_index=True)
            combined.drop_duplicates(subset=["SessionType", "Start", "End"], keep="last", inplace=True)
            sessions_df = combined.sort_values(["Date", "End"]).reset_index(drop=True)

        work = sessions_df[sessions_df["SessionType"] == "WORK"]
        daily_df = (
            work.groupby("Date")
            .agg(WorkSessions=("DurationSeconds", "count"), WorkHours=("DurationHours", "sum"))
            .reset_index()
        )

        with pd.ExcelWriter(self.export_path, engine="openpyxl", mode="w") as writer:
            sessions_df.to_excel(writer, sheet_name="Sessions", index=False)
            daily_df.to_excel(writer, sheet_name="Daily", index=False)
            meta_df = pd.DataFrame([[datetime.now(), len(sessions_df)]], columns=["ExportedAt", "RowCount"])
            meta_df.to_excel(writer, sheet_name="Meta", index=False)
        LOGGER.info("Exported %s sessions to %s", len(sessions_df), self.export_path)
        return self.export_path
