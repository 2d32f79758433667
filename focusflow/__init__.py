# Timer core for the FocusFlow application
from .errors import FocusFlowError, InvalidSettingError, PersistenceError
from .models import Achievement, AppSettings, Phase, SessionRecord, StatsSnapshot, TimerContext
from .scheduler import QtScheduler, Scheduler
from .stats import StatsEngine
from .storage import Database, SessionStore, SettingsStore
from .timer_engine import TimerEngine

__all__ = [
    'FocusFlowError', 'InvalidSettingError', 'PersistenceError',
    'Achievement', 'AppSettings', 'Phase', 'SessionRecord', 'StatsSnapshot', 'TimerContext',
    'QtScheduler', 'Scheduler', 'StatsEngine',
    'Database', 'SessionStore', 'SettingsStore', 'TimerEngine',
]
