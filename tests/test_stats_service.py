import datetime as dt

from domain.models import AnalyticsRange, Phase, SessionRecord
from services.stats_service import (
    build_range,
    bucket_by_day,
    days_for_period,
    streak_days,
    summarize,
)

TODAY = dt.date(2026, 3, 10)


def at(day: dt.date, hour: int = 12) -> int:
    return int(dt.datetime.combine(day, dt.time(hour)).timestamp())


def session(day: dt.date, duration: int = 1500, phase: Phase = Phase.FOCUS,
            completed: bool = True, interruptions: int = 0) -> SessionRecord:
    ended = at(day)
    return SessionRecord(
        started_at=ended - duration,
        ended_at=ended,
        phase=phase,
        duration_sec=duration,
        completed=completed,
        interruptions=interruptions,
    )


def days_ago(n: int) -> dt.date:
    return TODAY - dt.timedelta(days=n)


class TestStreak:
    def test_consecutive_days(self):
        sessions = [session(days_ago(0)), session(days_ago(1)), session(days_ago(2))]
        assert streak_days(sessions, TODAY) == 3

    def test_gap_stops_streak(self):
        sessions = [session(days_ago(0)), session(days_ago(2))]
        assert streak_days(sessions, TODAY) == 1

    def test_nothing_today_is_zero(self):
        assert streak_days([session(days_ago(1))], TODAY) == 0

    def test_breaks_and_empty_focus_do_not_count(self):
        sessions = [session(days_ago(0), phase=Phase.SHORT_BREAK), session(days_ago(0), duration=0)]
        assert streak_days(sessions, TODAY) == 0


class TestSummary:
    def test_totals(self):
        sessions = [
            session(days_ago(0), 1500, interruptions=1),
            session(days_ago(0), 600, completed=False, interruptions=2),
            session(days_ago(1), 1500),
            session(days_ago(1), 300, phase=Phase.SHORT_BREAK),
        ]
        s = summarize(sessions, TODAY)
        assert s.total_focus_sec == 3600
        assert s.completed_pomodoros == 2
        assert s.interruptions == 3
        assert s.streak_days == 2
        assert s.avg_daily_focus_sec == 1800

    def test_empty(self):
        s = summarize([], TODAY)
        assert s.total_focus_sec == 0
        assert s.avg_daily_focus_sec == 0


class TestTimeseries:
    def test_ascending_daily_buckets(self):
        sessions = [session(days_ago(0), 600), session(days_ago(2), 1500), session(days_ago(0), 900)]
        points = bucket_by_day(sessions)
        assert [p.date for p in points] == [days_ago(2).isoformat(), TODAY.isoformat()]
        assert points[1].focus_seconds == 1500
        assert points[1].completed_pomodoros == 2


class TestStatsService:
    def test_filters_by_project(self, stats_service, catalog_service, timer_service, clock):
        p = catalog_service.upsert_project("A")
        timer_service.start(project_id=p.id)
        clock.advance(1500)
        timer_service.tick()
        timer_service.skip()
        timer_service.start(project_id=None)
        clock.advance(100)
        timer_service.skip()

        only_a = stats_service.session_history(AnalyticsRange(project_id=p.id))
        assert len(only_a) == 1
        assert only_a[0].completed
        summary = stats_service.summary(AnalyticsRange(project_id=p.id))
        assert summary.total_focus_sec == 1500
        assert len(stats_service.session_history()) == 3

    def test_timeseries_from_storage(self, stats_service, timer_service, clock):
        timer_service.start()
        clock.advance(1500)
        timer_service.tick()
        [point] = stats_service.timeseries()
        assert point.focus_seconds == 1500
        assert point.completed_pomodoros == 1


class TestPeriodRange:
    def test_period_days(self):
        assert days_for_period("day") == 1
        assert days_for_period("week") == 7
        assert days_for_period("month") == 30
        assert days_for_period("year") == 7

    def test_range_counts_back_from_now(self):
        rng = build_range(14, now=1_700_000_000, project_id=3)
        assert rng.to_ts == 1_700_000_000
        assert rng.from_ts == 1_700_000_000 - 14 * 86_400
        assert rng.project_id == 3
        assert rng.tag_id is None

    def test_at_least_one_day(self):
        rng = build_range(0, now=1_700_000_000)
        assert rng.from_ts == 1_700_000_000 - 86_400

    def test_period_excludes_older_sessions(self, stats_service, timer_service, clock):
        timer_service.start()
        clock.advance(1500)
        timer_service.tick()
        clock.advance(3 * 86_400)
        assert len(stats_service.session_history(build_range(7, now=clock.now))) == 1
        assert stats_service.session_history(build_range(1, now=clock.now)) == []

    def test_today_focus_total(self, stats_service, model):
        ended = int(dt.datetime.now().timestamp())
        model.sessions.insert(SessionRecord(
            started_at=ended - 900, ended_at=ended, phase=Phase.FOCUS, duration_sec=900,
            completed=False, interruptions=0,
        ))
        model.sessions.insert(session(TODAY - dt.timedelta(days=400)))
        assert stats_service.total_today_focus_sec() == 900
