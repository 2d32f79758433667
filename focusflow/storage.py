"""
SQLite storage module for the FocusFlow timer.
Provides the durable settings store and the append-only session log.

Write failures are contained here: the in-memory value stays authoritative
and the write is retried on the next successful one.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set

from PySide6.QtCore import QObject, Signal

from .errors import PersistenceError
from .models import (
    LOG_BREAKS,
    SETTING_ATTRIBUTES,
    AppSettings,
    Phase,
    SessionRecord,
    clamp_setting,
    validate_setting,
)

logger = logging.getLogger(__name__)


def get_app_data_dir() -> Path:
    """
    Get the appropriate application data directory based on OS.
    Creates the directory if it doesn't exist.
    """
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    elif os.name == 'posix':
        # macOS uses ~/Library/Application Support, Linux uses ~/.local/share
        if os.uname().sysname == 'Darwin':
            base = Path.home() / 'Library' / 'Application Support'
        else:
            base = Path(os.environ.get('XDG_DATA_HOME', Path.home() / '.local' / 'share'))
    else:
        base = Path.home()

    app_dir = base / 'FocusFlow'
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


class Database:
    """
    Owns the SQLite file shared by the settings and session stores.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize storage with database path.

        Args:
            db_path: Optional custom path for database file.
                    If None, uses default app data directory.

        Raises:
            PersistenceError: If the schema cannot be created.
        """
        if db_path is None:
            db_path = str(get_app_data_dir() / 'focusflow.db')

        self.db_path = db_path
        self._init_database()

    @contextmanager
    def connection(self):
        """Context manager for database connections. Commits on success."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not open {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self):
        """Initialize database schema if tables don't exist."""
        with self.connection() as conn:
            cursor = conn.cursor()

            # seq keeps insertion order independent of completion timestamps
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS sessions (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT UNIQUE NOT NULL,
                    completed_at TEXT NOT NULL,
                    duration INTEGER NOT NULL,
                    phase TEXT NOT NULL
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            ''')

            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_sessions_completed
                ON sessions(completed_at)
            ''')


class SessionStore:
    """
    Append-only log of completed sessions.
    Records that fail to write are queued and flushed, in order, with the
    next append.
    """

    def __init__(self, db: Database):
        self.db = db
        self._pending: List[SessionRecord] = []

    @property
    def pending(self) -> List[SessionRecord]:
        """Records accepted but not yet written to disk."""
        return list(self._pending)

    def append(self, record: SessionRecord):
        """Append a record. Write failures are logged, never raised."""
        self._pending.append(record)
        try:
            self._flush()
        except PersistenceError as e:
            logger.warning(
                "Could not save session %s (%d pending), will retry: %s",
                record.id, len(self._pending), e
            )

    def _flush(self):
        # A record whose id is already stored was written before; skip it
        with self.db.connection() as conn:
            conn.executemany('''
                INSERT OR IGNORE INTO sessions (id, completed_at, duration, phase)
                VALUES (?, ?, ?, ?)
            ''', [self._record_to_row(r) for r in self._pending])
        self._pending.clear()

    def load_all(self) -> List[SessionRecord]:
        """
        Load every record in insertion order, including queued ones.

        Raises:
            PersistenceError: If the log cannot be read.
        """
        with self.db.connection() as conn:
            rows = conn.execute('SELECT * FROM sessions ORDER BY seq').fetchall()

        records = []
        for row in rows:
            try:
                records.append(self._row_to_record(row))
            except ValueError as e:
                logger.warning("Skipping unreadable session row %s: %s", row['id'], e)
        return records + self._pending

    @staticmethod
    def _record_to_row(record: SessionRecord) -> tuple:
        return (record.id, record.date.isoformat(), record.duration, record.phase.value)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> SessionRecord:
        """Convert a database row to a SessionRecord."""
        return SessionRecord(
            id=row['id'],
            date=datetime.fromisoformat(row['completed_at']),
            duration=row['duration'],
            phase=Phase(row['phase'])
        )


class SettingsStore(QObject):
    """
    Durable key-value store for the timer settings.

    Signals:
        settings_changed: Emitted with the store key after an accepted change
    """

    settings_changed = Signal(str)

    def __init__(self, db: Database, parent: Optional[QObject] = None):
        super().__init__(parent)

        self.db = db
        self._settings = AppSettings()
        # Keys changed in memory but not yet written
        self._dirty: Set[str] = set()
        self._load()

    def _load(self):
        """Read stored values over the defaults. Bad values are clamped or skipped."""
        try:
            with self.db.connection() as conn:
                rows = conn.execute('SELECT key, value FROM settings').fetchall()
        except PersistenceError as e:
            logger.warning("Could not read settings, using defaults: %s", e)
            return

        for row in rows:
            key, value = row['key'], row['value']
            if key not in SETTING_ATTRIBUTES:
                continue
            if key == LOG_BREAKS:
                decoded = value.lower() == 'true'
            else:
                try:
                    decoded = clamp_setting(key, int(value))
                except ValueError:
                    logger.warning("Ignoring stored setting %s=%r", key, value)
                    continue
            setattr(self._settings, SETTING_ATTRIBUTES[key], decoded)

    def get(self, key: str):
        """Get a setting value by store key."""
        return self._settings.get(key)

    def set(self, key: str, value):
        """
        Change a setting.

        Raises:
            InvalidSettingError: If the key is unknown or the value is out of range.
        """
        value = validate_setting(key, value)
        if self._settings.get(key) == value:
            if self._dirty:
                self._flush()
            return

        setattr(self._settings, SETTING_ATTRIBUTES[key], value)
        self._dirty.add(key)
        self._flush()
        self.settings_changed.emit(key)

    def get_settings(self) -> AppSettings:
        """Get a copy of the current settings."""
        return replace(self._settings)

    def save_settings(self, settings: AppSettings):
        """Apply every value of `settings`."""
        for key, value in settings.to_mapping().items():
            self.set(key, value)

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self._dirty)

    def _flush(self):
        """Write dirty keys. On failure they stay dirty for the next write."""
        try:
            with self.db.connection() as conn:
                for key in sorted(self._dirty):
                    conn.execute('''
                        INSERT OR REPLACE INTO settings (key, value)
                        VALUES (?, ?)
                    ''', (key, self._encode(self._settings.get(key))))
        except PersistenceError as e:
            logger.warning("Could not save settings %s, will retry: %s", sorted(self._dirty), e)
            return
        self._dirty.clear()

    @staticmethod
    def _encode(value) -> str:
        if isinstance(value, bool):
            return 'true' if value else 'false'
        return str(value)
