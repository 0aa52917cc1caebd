"""GitHub-style monthly progress chart rendered with matplotlib."""
from __future__ import annotations

import calendar
import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.patches import Rectangle  # noqa: E402

from pomodoro_app.pomodoro.models import ProgressMonth  # noqa: E402

LOGGER = logging.getLogger(__name__)

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def build_figure(month: ProgressMonth):
    """One square per day, weeks as columns, coloured by productivity level."""
    first_weekday = calendar.monthrange(month.year, month.month)[0]
    weeks = (first_weekday + len(month.days) + 6) // 7
    fig, ax = plt.subplots(figsize=(max(3.0, weeks * 0.6 + 1.2), 3.2))
    for day in month.days:
        offset = first_weekday + day.date.day - 1
        column, row = divmod(offset, 7)
        ax.add_patch(
            Rectangle((column, 6 - row), 0.9, 0.9, facecolor=day.css_color, edgecolor="#d0d7de", linewidth=0.5)
        )
    ax.set_xlim(-0.2, max(weeks, 1))
    ax.set_ylim(-0.2, 7.1)
    ax.set_yticks([6 - i + 0.45 for i in range(7)])
    ax.set_yticklabels(WEEKDAY_LABELS, fontsize=7)
    ax.set_xticks([])
    for spine in ax.spines.values():
        spine.set_visible(False)
    ax.set_aspect("equal")
    ax.set_title(
        f"{month.month_name} {month.year}: {month.total_hours:.1f} h, {month.total_sessions} sessions",
        fontsize=9,
    )
    fig.tight_layout()
    return fig


def render_month(month: ProgressMonth, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig = build_figure(month)
    try:
        fig.savefig(path, format="png", dpi=100)
    finally:
        plt.close(fig)
    LOGGER.info("Rendered progress chart for %s-%02d to %s", month.year, month.month, path)
    return path
