"""
Statistics derived from the session log.

Everything here is a pure function of the log plus "now" (local time).
StatsEngine wraps them and notifies observers when a new snapshot is computed.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from .models import Achievement, Phase, SessionRecord, StatsSnapshot

logger = logging.getLogger(__name__)

FIVE_IN_A_DAY_THRESHOLD = 5
SEVEN_DAY_STREAK_THRESHOLD = 7


def _work_records(log: Iterable[SessionRecord]) -> List[SessionRecord]:
    return [record for record in log if record.phase is Phase.WORK]


def start_of_day(moment: datetime) -> datetime:
    """Local midnight of the day containing `moment`."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def today_window(now: datetime) -> Tuple[datetime, datetime]:
    """[local midnight, next midnight) around `now`."""
    start = start_of_day(now)
    return start, start + timedelta(days=1)


def week_window(now: datetime) -> Tuple[datetime, Optional[datetime]]:
    """From six days before `now`, with no upper bound."""
    return now - timedelta(days=6), None


def compute_streak(log: Iterable[SessionRecord], now: datetime) -> int:
    """
    Count consecutive days with at least one Work session.

    Walks backward from today; each day is accepted while its gap to the
    previously accepted day is at most one, so a streak may end yesterday.
    """
    days = sorted({record.day for record in _work_records(log)}, reverse=True)

    streak = 0
    previous = now.date()
    for day in days:
        if (previous - day).days > 1:
            break
        streak += 1
        previous = day
    return streak


def compute_achievements(
    log: Iterable[SessionRecord],
    streak: int,
    now: datetime
) -> Tuple[Achievement, ...]:
    """
    Recompute badges from scratch. A badge whose condition no longer holds
    is not returned.
    """
    log = list(log)
    today = now.date()
    achievements = []

    today_count = sum(1 for record in _work_records(log) if record.day == today)
    if today_count >= FIVE_IN_A_DAY_THRESHOLD:
        achievements.append(Achievement.FIVE_IN_A_DAY)

    if any(record.phase is Phase.LONG_BREAK for record in log):
        achievements.append(Achievement.FIRST_LONG_BREAK)

    if streak >= SEVEN_DAY_STREAK_THRESHOLD:
        achievements.append(Achievement.SEVEN_DAY_STREAK)

    return tuple(achievements)


def aggregate(
    log: Iterable[SessionRecord],
    window_start: Optional[datetime],
    window_end: Optional[datetime],
    phase: Optional[Phase] = Phase.WORK
) -> Tuple[int, int]:
    """
    Count matching records and sum their durations.

    Args:
        log: Session records.
        window_start: Inclusive lower bound on completion time, or None.
        window_end: Exclusive upper bound on completion time, or None.
        phase: Only count this phase; None counts all.

    Returns:
        Tuple of (count, total_duration_seconds).
    """
    count = 0
    total = 0
    for record in log:
        if phase is not None and record.phase is not phase:
            continue
        if window_start is not None and record.date < window_start:
            continue
        if window_end is not None and record.date >= window_end:
            continue
        count += 1
        total += record.duration
    return count, total


def group_by_day(
    log: Iterable[SessionRecord],
    since: Optional[date] = None
) -> List[Tuple[date, int]]:
    """
    Count Work sessions per local calendar day, oldest first.

    Args:
        log: Session records.
        since: Only include days on or after this date.
    """
    counts = {}
    for record in _work_records(log):
        if since is not None and record.day < since:
            continue
        counts[record.day] = counts.get(record.day, 0) + 1
    return sorted(counts.items())


def build_snapshot(log: Iterable[SessionRecord], now: datetime) -> StatsSnapshot:
    """Compute every derived statistic for the current log."""
    log = list(log)
    streak = compute_streak(log, now)
    today_count, today_seconds = aggregate(log, *today_window(now))
    week_count, week_seconds = aggregate(log, *week_window(now))

    return StatsSnapshot(
        streak=streak,
        achievements=compute_achievements(log, streak, now),
        today_count=today_count,
        today_seconds=today_seconds,
        week_count=week_count,
        week_seconds=week_seconds,
        by_day=tuple(group_by_day(log))
    )


class StatsEngine(QObject):
    """
    Holds the latest StatsSnapshot.

    Signals:
        stats_changed: Emitted with the new snapshot after every recompute
    """

    stats_changed = Signal(StatsSnapshot)

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self._clock = clock
        self._snapshot = StatsSnapshot()

    @property
    def snapshot(self) -> StatsSnapshot:
        return self._snapshot

    def recompute(
        self,
        log: Iterable[SessionRecord],
        now: Optional[datetime] = None
    ) -> StatsSnapshot:
        """Rebuild the snapshot from the full log and notify observers."""
        self._snapshot = build_snapshot(log, now or self._clock())
        logger.debug(
            "Stats: streak=%d today=%d achievements=%s",
            self._snapshot.streak,
            self._snapshot.today_count,
            [a.value for a in self._snapshot.achievements]
        )
        self.stats_changed.emit(self._snapshot)
        return self._snapshot
