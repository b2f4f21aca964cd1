# -*- coding: utf-8 -*-

import datetime as dt
import sqlite3
from typing import Dict, Iterable, List, Optional, Set

from core.clock import now_ts
from domain.models import (
    AnalyticsRange,
    AnalyticsSummary,
    Phase,
    SessionRecord,
    TimeseriesPoint,
)
from services.app_model import ModelGuard
from services.errors import StorageError

DAY_SECONDS = 86_400

# stats panel periods, counted back from now
STATS_PERIOD_DAYS = {"day": 1, "week": 7, "month": 30}
DEFAULT_STATS_PERIOD = "week"


def days_for_period(period: str) -> int:
    return STATS_PERIOD_DAYS.get(period, STATS_PERIOD_DAYS[DEFAULT_STATS_PERIOD])


def build_range(
    days: int,
    now: Optional[int] = None,
    project_id: Optional[int] = None,
    tag_id: Optional[int] = None,
) -> AnalyticsRange:
    """The last ``days`` whole days up to ``now`` (at least one)."""
    to_ts = now_ts() if now is None else now
    days = max(1, int(days))
    return AnalyticsRange(
        from_ts=to_ts - days * DAY_SECONDS,
        to_ts=to_ts,
        project_id=project_id,
        tag_id=tag_id,
    )


def local_day(ts: int) -> dt.date:
    return dt.datetime.fromtimestamp(ts).date()


def focus_days(sessions: Iterable[SessionRecord]) -> Set[dt.date]:
    """Local calendar days holding at least one nonzero focus session."""
    return {
        local_day(s.ended_at)
        for s in sessions
        if s.phase == Phase.FOCUS and s.duration_sec > 0
    }


def streak_days(sessions: Iterable[SessionRecord], today: Optional[dt.date] = None) -> int:
    """Consecutive days with focus, walking back from today until the first gap."""
    days = focus_days(sessions)
    current = today or dt.date.today()
    streak = 0
    while current in days:
        streak += 1
        current -= dt.timedelta(days=1)
    return streak


def summarize(
    sessions: List[SessionRecord], today: Optional[dt.date] = None
) -> AnalyticsSummary:
    total = 0
    completed = 0
    interruptions = 0
    for s in sessions:
        if s.phase != Phase.FOCUS:
            continue
        total += s.duration_sec
        interruptions += s.interruptions
        if s.completed:
            completed += 1

    active_days = len(focus_days(sessions))
    return AnalyticsSummary(
        total_focus_sec=total,
        completed_pomodoros=completed,
        streak_days=streak_days(sessions, today),
        interruptions=interruptions,
        avg_daily_focus_sec=total // active_days if active_days else 0,
    )


def bucket_by_day(sessions: Iterable[SessionRecord]) -> List[TimeseriesPoint]:
    by_day: Dict[str, TimeseriesPoint] = {}
    for s in sessions:
        if s.phase != Phase.FOCUS:
            continue
        key = local_day(s.ended_at).isoformat()
        point = by_day.setdefault(key, TimeseriesPoint(date=key))
        point.focus_seconds += s.duration_sec
        point.interruptions += s.interruptions
        if s.completed:
            point.completed_pomodoros += 1
    return [by_day[k] for k in sorted(by_day)]


class StatsService:
    """Read-only views over recorded sessions."""

    def __init__(self, guard: ModelGuard):
        self.guard = guard

    def session_history(self, rng: Optional[AnalyticsRange] = None) -> List[SessionRecord]:
        with self.guard.hold() as model:
            try:
                return model.sessions.query(rng or AnalyticsRange())
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    def summary(
        self, rng: Optional[AnalyticsRange] = None, today: Optional[dt.date] = None
    ) -> AnalyticsSummary:
        return summarize(self.session_history(rng), today)

    def timeseries(self, rng: Optional[AnalyticsRange] = None) -> List[TimeseriesPoint]:
        return bucket_by_day(self.session_history(rng))

    def total_today_focus_sec(self) -> int:
        start = dt.datetime.combine(dt.date.today(), dt.time.min)
        today = self.summary(AnalyticsRange(from_ts=int(start.timestamp())))
        return today.total_focus_sec
