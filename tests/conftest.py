import random
import sqlite3
from datetime import datetime

import pytest
from PySide6.QtCore import QCoreApplication

from focusflow.scheduler import Scheduler
from focusflow.storage import Database, SessionStore, SettingsStore
from focusflow.timer_engine import TimerEngine

NOW = datetime(2026, 3, 10, 15, 0, 0)


class ManualScheduler(Scheduler):
    """Scheduler that only ticks when the test says so."""

    def __init__(self):
        self.subscriptions = {}
        self.cancelled = []
        self._next_handle = 1

    def subscribe(self, interval_seconds, callback):
        handle = self._next_handle
        self._next_handle += 1
        self.subscriptions[handle] = (interval_seconds, callback)
        return handle

    def cancel(self, handle):
        if self.subscriptions.pop(handle, None) is not None:
            self.cancelled.append(handle)

    @property
    def active(self):
        return list(self.subscriptions)

    def fire(self, times=1):
        for _ in range(times):
            for _, callback in list(self.subscriptions.values()):
                callback()


class FixedClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / "focusflow.db"))


@pytest.fixture
def settings_store(db):
    return SettingsStore(db)


@pytest.fixture
def session_store(db):
    return SessionStore(db)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def engine(settings_store, session_store, scheduler, clock):
    return TimerEngine(
        settings_store,
        session_store,
        scheduler,
        rng=random.Random(7),
        clock=clock,
    )


@pytest.fixture
def break_sqlite(monkeypatch):
    """Make every new sqlite connection fail until monkeypatch.undo()."""
    def _break():
        def connect(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")
        monkeypatch.setattr(sqlite3, "connect", connect)
    return _break
