from datetime import date, datetime, timedelta

from focusflow.models import Achievement, Phase, SessionRecord
from focusflow.stats import (
    StatsEngine,
    aggregate,
    build_snapshot,
    compute_achievements,
    compute_streak,
    group_by_day,
    today_window,
    week_window,
)

from conftest import NOW


def work(days_ago=0, hour=10, duration=1500):
    when = (NOW - timedelta(days=days_ago)).replace(hour=hour, minute=0)
    return SessionRecord(duration=duration, phase=Phase.WORK, date=when)


def long_break(days_ago=0):
    when = NOW - timedelta(days=days_ago)
    return SessionRecord(duration=900, phase=Phase.LONG_BREAK, date=when)


def test_streak_counts_consecutive_days_ending_today():
    log = [work(0), work(1), work(2)]
    assert compute_streak(log, NOW) == 3


def test_streak_stops_at_gap():
    log = [work(0), work(1), work(2), work(4)]
    assert compute_streak(log, NOW) == 3


def test_streak_may_end_yesterday():
    assert compute_streak([work(1), work(2)], NOW) == 2


def test_streak_is_zero_without_recent_work():
    assert compute_streak([], NOW) == 0
    assert compute_streak([work(2), work(3)], NOW) == 0
    assert compute_streak([long_break(0)], NOW) == 0


def test_streak_counts_each_day_once():
    log = [work(0, hour=9), work(0, hour=11), work(1), work(1, hour=14)]
    assert compute_streak(log, NOW) == 2


def test_five_in_a_day_achievement():
    log = [work(0, hour=h) for h in range(8, 13)]
    assert Achievement.FIVE_IN_A_DAY in compute_achievements(log, 1, NOW)


def test_achievements_are_not_sticky():
    earned = [work(0, hour=h) for h in range(8, 13)]
    assert Achievement.FIVE_IN_A_DAY in compute_achievements(earned, 1, NOW)

    fresh = [work(0, hour=h) for h in range(8, 12)]
    assert Achievement.FIVE_IN_A_DAY not in compute_achievements(fresh, 1, NOW)


def test_five_in_a_day_only_counts_today():
    log = [work(1, hour=h) for h in range(8, 14)]
    assert compute_achievements(log, 2, NOW) == ()


def test_long_break_and_streak_achievements_in_order():
    log = [long_break(30)] + [work(0, hour=h) for h in range(8, 13)]
    assert compute_achievements(log, 7, NOW) == (
        Achievement.FIVE_IN_A_DAY,
        Achievement.FIRST_LONG_BREAK,
        Achievement.SEVEN_DAY_STREAK,
    )
    assert compute_achievements(log, 6, NOW) == (
        Achievement.FIVE_IN_A_DAY,
        Achievement.FIRST_LONG_BREAK,
    )


def test_aggregate_today_and_week():
    log = [work(0), work(0, duration=600), work(3), work(6, hour=16), work(6, hour=14), work(8)]

    assert aggregate(log, *today_window(NOW)) == (2, 2100)
    # Week starts exactly six days before now (15:00)
    assert aggregate(log, *week_window(NOW)) == (4, 1500 + 600 + 1500 + 1500)


def test_week_window_has_no_upper_bound():
    start, end = week_window(NOW)
    assert start == NOW - timedelta(days=6)
    assert end is None

    ahead = SessionRecord(duration=1500, phase=Phase.WORK, date=NOW + timedelta(days=2))
    log = [work(0), ahead]
    assert aggregate(log, *week_window(NOW)) == (2, 3000)
    assert aggregate(log, *today_window(NOW)) == (1, 1500)


def test_aggregate_phase_filter_and_open_bounds():
    log = [work(0), long_break(0), work(10)]
    assert aggregate(log, None, None) == (2, 3000)
    assert aggregate(log, None, None, phase=None) == (3, 3900)
    assert aggregate(log, None, None, phase=Phase.LONG_BREAK) == (1, 900)


def test_aggregate_end_is_exclusive():
    start, end = today_window(NOW)
    at_midnight = SessionRecord(duration=60, phase=Phase.WORK, date=end)
    assert aggregate([at_midnight], start, end) == (0, 0)
    assert aggregate([at_midnight], end, None) == (1, 60)


def test_group_by_day_sorted_ascending():
    log = [work(0), work(2), work(0, hour=12), long_break(1), work(5)]
    grouped = group_by_day(log)
    assert grouped == [
        (date(2026, 3, 5), 1),
        (date(2026, 3, 8), 1),
        (date(2026, 3, 10), 2),
    ]
    assert group_by_day(log, since=date(2026, 3, 8)) == grouped[1:]


def test_build_snapshot():
    log = [work(0), work(1), long_break(1)]
    snapshot = build_snapshot(log, NOW)
    assert snapshot.streak == 2
    assert snapshot.achievements == (Achievement.FIRST_LONG_BREAK,)
    assert (snapshot.today_count, snapshot.today_seconds) == (1, 1500)
    assert (snapshot.week_count, snapshot.week_seconds) == (2, 3000)
    assert snapshot.by_day == ((date(2026, 3, 9), 1), (date(2026, 3, 10), 1))


def test_stats_engine_notifies_observers():
    engine = StatsEngine(clock=lambda: NOW)
    received = []
    engine.stats_changed.connect(received.append)

    snapshot = engine.recompute([work(0)])

    assert received == [snapshot]
    assert engine.snapshot.today_count == 1
    assert engine.recompute([], now=datetime(2026, 3, 11)).streak == 0
