#!/usr/bin/env python3
"""
FocusFlow - a Pomodoro-technique focus timer core.

Runs the timer headless on a Qt event loop and logs what a presentation
layer would display:
- Work / Short Break / Long Break cycling with auto-continue
- Local session history with streaks and achievements
- Settings persisted across restarts

Environment:
    FOCUSFLOW_DATA_DIR   Directory for focusflow.db (default: per-OS app data dir)
    FOCUSFLOW_LOG_LEVEL  Logging level name (default: INFO)

Usage:
    pip install -e .
    python main.py
"""

import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QCoreApplication

from focusflow import (
    Database,
    PersistenceError,
    QtScheduler,
    SessionStore,
    SettingsStore,
    TimerEngine,
)
from focusflow.models import Phase, SessionRecord, StatsSnapshot, TimerContext

logger = logging.getLogger("focusflow")


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logger


def resolve_db_path() -> Optional[str]:
    """Database path from FOCUSFLOW_DATA_DIR, or None for the default location."""
    data_dir = os.environ.get("FOCUSFLOW_DATA_DIR")
    if not data_dir:
        return None
    path = Path(data_dir).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return str(path / "focusflow.db")


def setup_signal_handlers(app: QCoreApplication, engine: TimerEngine):
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        logger.info("%s received, shutting down...", signal.Signals(signum).name)
        engine.pause()
        app.quit()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def connect_logging(engine: TimerEngine):
    """Log engine notifications the way a display would show them."""
    def on_state(context: TimerContext):
        if context.remaining_seconds % 60 == 0 or context.remaining_seconds <= 5:
            logger.info("%s %s", context.phase.value, context.format_remaining())

    def on_phase(old_phase: Phase, new_phase: Phase):
        logger.info("Now: %s", new_phase.value)

    def on_session(record: SessionRecord):
        logger.info("Logged %s (%.0f min)", record.phase.value, record.duration_minutes)

    def on_stats(snapshot: StatsSnapshot):
        logger.info(
            "Today: %d pomodoros, %d min | Week: %d pomodoros, %d min | Streak: %d",
            snapshot.today_count, snapshot.today_seconds // 60,
            snapshot.week_count, snapshot.week_seconds // 60,
            snapshot.streak
        )
        for achievement in snapshot.achievements:
            logger.info("Achievement: %s", achievement.value)

    engine.state_changed.connect(on_state)
    engine.phase_changed.connect(on_phase)
    engine.session_completed.connect(on_session)
    engine.quote_changed.connect(lambda quote: logger.info("\"%s\"", quote))
    engine.stats.stats_changed.connect(on_stats)


def main():
    """Main entry point for FocusFlow."""
    level_name = os.environ.get("FOCUSFLOW_LOG_LEVEL", "INFO").upper()
    setup_logging(getattr(logging, level_name, logging.INFO))

    app = QCoreApplication(sys.argv)
    app.setApplicationName("FocusFlow")
    app.setOrganizationName("FocusFlow")

    try:
        db = Database(resolve_db_path())
    except PersistenceError as e:
        logger.error("Cannot open session database: %s", e)
        return 1

    settings = SettingsStore(db)
    sessions = SessionStore(db)
    scheduler = QtScheduler()
    engine = TimerEngine(settings, sessions, scheduler)

    connect_logging(engine)
    setup_signal_handlers(app, engine)

    logger.info("Database: %s", db.db_path)
    logger.info("Settings: %s", settings.get_settings())
    engine.start()

    try:
        return app.exec()
    finally:
        engine.cleanup()
        scheduler.cleanup()


if __name__ == "__main__":
    sys.exit(main())
