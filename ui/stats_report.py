# -*- coding: utf-8 -*-

from __future__ import annotations

from typing import Dict, List, Optional

from domain.models import AnalyticsSummary, Project, SessionRecord, TimeseriesPoint


def fmt_hms(sec: int) -> str:
    sec = max(0, int(sec))
    h = sec // 3600
    m = (sec % 3600) // 60
    s = sec % 60
    if h > 0:
        return f"{h}h {m:02d}m"
    return f"{m}m {s:02d}s"


def build_report_md(
    summary: AnalyticsSummary,
    points: List[TimeseriesPoint],
    recent: Optional[List[SessionRecord]] = None,
    projects: Optional[Dict[int, Project]] = None,
    today_focus_sec: Optional[int] = None,
) -> str:
    """Analytics summary, per-day table and recent sessions as Markdown."""
    projects = projects or {}
    lines = [
        "## Focus summary",
        "",
        f"- **Total focus:** {fmt_hms(summary.total_focus_sec)}",
        f"- **Completed pomodoros:** {summary.completed_pomodoros}",
        f"- **Streak:** {summary.streak_days} day(s)",
        f"- **Interruptions:** {summary.interruptions}",
        f"- **Average per active day:** {fmt_hms(summary.avg_daily_focus_sec)}",
    ]
    if today_focus_sec is not None:
        lines.append(f"- **Today:** {fmt_hms(today_focus_sec)}")
    lines += ["", "### By day", ""]

    if not points:
        lines.append("_No focus sessions yet._")
    else:
        lines += [
            "| Date | Focus | Completed | Interruptions |",
            "|---|---|---|---|",
        ]
        for p in reversed(points):
            lines.append(
                f"| {p.date} | {fmt_hms(p.focus_seconds)} | {p.completed_pomodoros} | {p.interruptions} |"
            )

    if recent:
        lines += ["", "### Recent sessions", ""]
        for s in recent:
            project = projects.get(s.project_id) if s.project_id is not None else None
            label = f" · {project.name}" if project else ""
            mark = "☑" if s.completed else "☐"
            lines.append(f"- {mark} {s.phase.label} {fmt_hms(s.duration_sec)}{label}")

    return "\n".join(lines) + "\n"
