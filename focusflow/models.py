"""
Data models for the FocusFlow timer.
Uses dataclasses for clean, type-annotated data structures.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, Tuple

from .errors import InvalidSettingError


class Phase(Enum):
    """Phases the timer state machine can occupy."""
    WORK = "Work"
    SHORT_BREAK = "Short Break"
    LONG_BREAK = "Long Break"
    PAUSED = "Paused"

    @property
    def color(self) -> str:
        """Display color token for this phase."""
        return _PHASE_COLORS[self]

    @property
    def default_duration(self) -> int:
        """Default duration in seconds. Paused has none of its own."""
        return _PHASE_DEFAULT_SECONDS[self]


_PHASE_COLORS = {
    Phase.WORK: "mint",
    Phase.SHORT_BREAK: "blue",
    Phase.LONG_BREAK: "purple",
    Phase.PAUSED: "gray",
}

_PHASE_DEFAULT_SECONDS = {
    Phase.WORK: 25 * 60,
    Phase.SHORT_BREAK: 5 * 60,
    Phase.LONG_BREAK: 15 * 60,
    Phase.PAUSED: 0,
}


class Achievement(str, Enum):
    """Milestone badges derived from the session log."""
    FIVE_IN_A_DAY = "5 Pomodoros in a day"
    FIRST_LONG_BREAK = "First Long Break"
    SEVEN_DAY_STREAK = "7 days streak"


@dataclass(frozen=True)
class SessionRecord:
    """
    Immutable log entry for one completed interval.
    Stored append-only; the full set is the only durable history.
    """
    duration: int  # seconds
    phase: Phase
    date: datetime = field(default_factory=datetime.now)  # completion time, local
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        """Validate record data."""
        if self.duration <= 0:
            raise ValueError(f"Session duration must be positive, got {self.duration}")
        if self.phase is Phase.PAUSED:
            raise ValueError("Paused is not a completed interval")

    @property
    def day(self):
        """Local calendar day the session completed on."""
        return self.date.date()

    @property
    def duration_minutes(self) -> float:
        """Return duration in minutes."""
        return self.duration / 60.0


# ==================== Settings ====================

WORK_MINUTES = "workMinutes"
SHORT_BREAK_MINUTES = "shortBreakMinutes"
LONG_BREAK_MINUTES = "longBreakMinutes"
POMODOROS_UNTIL_LONG_BREAK = "pomodorosUntilLongBreak"
LOG_BREAKS = "logBreaks"

# Store key -> AppSettings attribute
SETTING_ATTRIBUTES: Dict[str, str] = {
    WORK_MINUTES: "work_minutes",
    SHORT_BREAK_MINUTES: "short_break_minutes",
    LONG_BREAK_MINUTES: "long_break_minutes",
    POMODOROS_UNTIL_LONG_BREAK: "pomodoros_until_long_break",
    LOG_BREAKS: "log_breaks",
}

# Inclusive ranges for the integer settings
SETTING_RANGES: Dict[str, Tuple[int, int]] = {
    WORK_MINUTES: (1, 60),
    SHORT_BREAK_MINUTES: (1, 30),
    LONG_BREAK_MINUTES: (1, 60),
    POMODOROS_UNTIL_LONG_BREAK: (2, 8),
}


def validate_setting(key: str, value):
    """
    Check a setting value against its declared type and range.

    Returns:
        The value, normalized to its declared type.

    Raises:
        InvalidSettingError: If the key is unknown or the value is out of range.
    """
    if key not in SETTING_ATTRIBUTES:
        raise InvalidSettingError(key, value, "unknown setting")

    if key == LOG_BREAKS:
        if not isinstance(value, bool):
            raise InvalidSettingError(key, value, "expected a boolean")
        return value

    # bool is an int subclass; True is not a duration
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSettingError(key, value, "expected an integer")

    low, high = SETTING_RANGES[key]
    if not low <= value <= high:
        raise InvalidSettingError(key, value, f"must be between {low} and {high}")
    return value


def clamp_setting(key: str, value: int) -> int:
    """Clamp an integer setting into its declared range."""
    low, high = SETTING_RANGES[key]
    return max(low, min(high, int(value)))


@dataclass
class AppSettings:
    """User-adjustable timer configuration."""
    work_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    pomodoros_until_long_break: int = 4
    log_breaks: bool = False  # Whether break completions are logged

    def __post_init__(self):
        """Keep integer settings within their declared ranges."""
        for key, attr in SETTING_ATTRIBUTES.items():
            if key in SETTING_RANGES:
                setattr(self, attr, clamp_setting(key, getattr(self, attr)))

    def seconds_for(self, phase: Phase) -> int:
        """Configured duration of a phase in seconds. Paused maps to Work."""
        if phase is Phase.SHORT_BREAK:
            return self.short_break_minutes * 60
        if phase is Phase.LONG_BREAK:
            return self.long_break_minutes * 60
        return self.work_minutes * 60

    def get(self, key: str):
        """Look up a value by its store key."""
        if key not in SETTING_ATTRIBUTES:
            raise InvalidSettingError(key, None, "unknown setting")
        return getattr(self, SETTING_ATTRIBUTES[key])

    def to_mapping(self) -> Dict[str, object]:
        """Return the settings keyed by store key."""
        return {key: getattr(self, attr) for key, attr in SETTING_ATTRIBUTES.items()}


@dataclass
class TimerContext:
    """
    Current timer context containing all state information.
    Used to pass timer state to observers.
    """
    phase: Phase = Phase.WORK
    remaining_seconds: int = Phase.WORK.default_duration
    total_seconds: int = Phase.WORK.default_duration
    is_running: bool = False
    completed_pomodoros: int = 0
    quote: str = ""

    @property
    def elapsed_seconds(self) -> int:
        """Calculate elapsed seconds in current phase."""
        return max(0, self.total_seconds - self.remaining_seconds)

    @property
    def progress_percentage(self) -> float:
        """Return progress as percentage (0-100)."""
        if self.total_seconds == 0:
            return 0.0
        return (self.elapsed_seconds / self.total_seconds) * 100.0

    def format_remaining(self) -> str:
        """Format remaining time as MM:SS."""
        minutes = self.remaining_seconds // 60
        seconds = self.remaining_seconds % 60
        return f"{minutes:02d}:{seconds:02d}"


@dataclass(frozen=True)
class StatsSnapshot:
    """Statistics derived from the session log. Never stored."""
    streak: int = 0
    achievements: Tuple[Achievement, ...] = ()
    today_count: int = 0
    today_seconds: int = 0
    week_count: int = 0
    week_seconds: int = 0
    by_day: Tuple[Tuple[date, int], ...] = ()
