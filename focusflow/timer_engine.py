"""
Timer engine for the FocusFlow timer.
Implements the Pomodoro phase cycle as a state machine driven by an
external tick source.
"""

import logging
import random
from datetime import datetime
from typing import Callable, List, Optional

from PySide6.QtCore import QObject, Signal

from .errors import PersistenceError
from .models import Phase, SessionRecord, StatsSnapshot, TimerContext
from .quotes import QUOTES, pick_quote
from .scheduler import Scheduler
from .stats import StatsEngine
from .storage import SessionStore, SettingsStore

logger = logging.getLogger(__name__)


class TimerEngine(QObject):
    """
    Core timer engine implementing a state machine.

    Phases:
        WORK: Focus interval counting down
        SHORT_BREAK: Break between work intervals
        LONG_BREAK: Break after every N work intervals
        PAUSED: Stopped mid-cycle

    Signals:
        state_changed: Emitted after every mutation with current TimerContext
        phase_changed: Emitted when the phase changes (old_phase, new_phase)
        session_completed: Emitted when a session record is logged
        quote_changed: Emitted with the new motivational quote
    """

    state_changed = Signal(TimerContext)
    phase_changed = Signal(Phase, Phase)  # old_phase, new_phase
    session_completed = Signal(SessionRecord)
    quote_changed = Signal(str)

    TICK_INTERVAL_SECONDS = 1

    def __init__(
        self,
        settings: SettingsStore,
        sessions: SessionStore,
        scheduler: Scheduler,
        stats: Optional[StatsEngine] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        parent: Optional[QObject] = None
    ):
        """
        Initialize the timer engine.

        Args:
            settings: Store the phase durations are read from.
            sessions: Append-only log completed sessions are written to.
            scheduler: Tick source.
            stats: Stats engine to refresh after transitions.
            rng: Random source for quotes; seed it for repeatable runs.
            clock: Returns the current local time.
            parent: Optional Qt parent object.
        """
        super().__init__(parent)

        self.settings = settings
        self.sessions = sessions
        self.scheduler = scheduler
        self.stats = stats or StatsEngine(clock=clock)
        self._rng = rng or random.Random()
        self._clock = clock

        self._context = TimerContext(quote=QUOTES[0])
        self._tick_handle: Optional[int] = None

        # Phase interrupted by pause(), resumed by start()
        self._phase_before_pause: Optional[Phase] = None

        self._log: List[SessionRecord] = self._load_sessions()
        self.sync_time_with_settings()
        self.refresh_stats()

        self.settings.settings_changed.connect(self._on_settings_changed)

    def _load_sessions(self) -> List[SessionRecord]:
        try:
            return self.sessions.load_all()
        except PersistenceError as e:
            logger.warning("Could not load session history, starting empty: %s", e)
            return []

    @property
    def context(self) -> TimerContext:
        """Get current timer context."""
        return self._context

    @property
    def phase(self) -> Phase:
        return self._context.phase

    @property
    def remaining_seconds(self) -> int:
        return self._context.remaining_seconds

    @property
    def is_running(self) -> bool:
        return self._context.is_running

    @property
    def completed_pomodoros(self) -> int:
        return self._context.completed_pomodoros

    @property
    def quote(self) -> str:
        return self._context.quote

    @property
    def session_log(self) -> List[SessionRecord]:
        """Every completed session, oldest first."""
        return list(self._log)

    @property
    def stats_snapshot(self) -> StatsSnapshot:
        return self.stats.snapshot

    @property
    def tick_handle(self) -> Optional[int]:
        """Handle of the active tick subscription, if any."""
        return self._tick_handle

    # ==================== Commands ====================

    def start(self):
        """
        Start or continue the countdown.
        Calling this while running replaces the tick subscription.
        """
        if self._context.phase is Phase.PAUSED:
            resumed = self._phase_before_pause or Phase.WORK
            self._phase_before_pause = None
            self._set_phase(resumed)
            # The resumed phase may have been shortened while paused
            configured = self.expected_seconds()
            if self._context.remaining_seconds > configured:
                self._context.remaining_seconds = configured
                self._context.total_seconds = configured

        self._cancel_tick()
        self._context.is_running = True
        self._tick_handle = self.scheduler.subscribe(self.TICK_INTERVAL_SECONDS, self.tick)
        logger.debug("Timer started in %s with %ds left",
                     self._context.phase.value, self._context.remaining_seconds)
        self._emit_state()

    def pause(self):
        """Stop ticking and show the timer as Paused. Remaining time is kept."""
        self._context.is_running = False
        self._cancel_tick()

        if self._context.phase is not Phase.PAUSED:
            self._phase_before_pause = self._context.phase
            self._set_phase(Phase.PAUSED)
        self._emit_state()

    def reset(self):
        """Pause and restore the full work duration."""
        self.pause()
        self.sync_time_with_settings()

    # ==================== Ticking ====================

    def tick(self):
        """Advance one second. At zero, the next tick changes phase."""
        if not self._context.is_running:
            return

        if self._context.remaining_seconds > 0:
            self._context.remaining_seconds -= 1
            self._emit_state()
        else:
            self.advance_phase()

    def advance_phase(self):
        """Move to the next phase and log the completed interval."""
        old_phase = self._context.phase
        if old_phase is Phase.PAUSED:
            return

        was_running = self._context.is_running
        settings = self.settings.get_settings()

        if old_phase is Phase.WORK:
            self._context.completed_pomodoros += 1
            self._save_session(settings.seconds_for(Phase.WORK), Phase.WORK)
            if self._context.completed_pomodoros % settings.pomodoros_until_long_break == 0:
                new_phase = Phase.LONG_BREAK
            else:
                new_phase = Phase.SHORT_BREAK
        else:
            if settings.log_breaks:
                self._save_session(settings.seconds_for(old_phase), old_phase)
            new_phase = Phase.WORK

        self._set_phase(new_phase)
        self._context.remaining_seconds = settings.seconds_for(new_phase)
        self._context.total_seconds = self._context.remaining_seconds
        logger.info("Phase %s -> %s (%d pomodoros completed)",
                    old_phase.value, new_phase.value, self._context.completed_pomodoros)

        # Auto-continue into the next phase
        if was_running and new_phase is not Phase.PAUSED:
            self.start()

        self.pick_random_quote()
        self.refresh_stats()
        self._emit_state()

    # ==================== Settings ====================

    def expected_seconds(self) -> int:
        """Configured duration of the current phase. Paused maps to Work."""
        return self.settings.get_settings().seconds_for(self._context.phase)

    def sync_time_with_settings(self):
        """Set remaining time to the configured duration of the current phase."""
        self._context.remaining_seconds = self.expected_seconds()
        self._context.total_seconds = self._context.remaining_seconds
        if self._context.phase is Phase.PAUSED:
            # Durations now come from Work; resume there
            self._phase_before_pause = None
        logger.debug("Synced %s to %ds", self._context.phase.value,
                     self._context.remaining_seconds)
        self._emit_state()

    def check_for_settings_changes(self):
        """Resync only when stopped and the stored time no longer matches."""
        if not self._context.is_running and \
                self._context.remaining_seconds != self.expected_seconds():
            self.sync_time_with_settings()

    def _on_settings_changed(self, key: str):
        logger.debug("Setting %s changed", key)
        self.check_for_settings_changes()

    # ==================== Side effects ====================

    def pick_random_quote(self) -> str:
        self._context.quote = pick_quote(self._rng)
        self.quote_changed.emit(self._context.quote)
        return self._context.quote

    def refresh_stats(self) -> StatsSnapshot:
        """Recompute streak, achievements and aggregates from the log."""
        return self.stats.recompute(self._log, self._clock())

    def _save_session(self, duration: int, phase: Phase):
        """Log a completed interval. The in-memory log is authoritative."""
        record = SessionRecord(duration=duration, phase=phase, date=self._clock())
        self._log.append(record)
        self.sessions.append(record)
        logger.info("Completed %s session of %ds", phase.value, duration)
        self.session_completed.emit(record)

    # ==================== Internals ====================

    def _set_phase(self, new_phase: Phase):
        old_phase = self._context.phase
        if old_phase is new_phase:
            return
        self._context.phase = new_phase
        self.phase_changed.emit(old_phase, new_phase)

    def _cancel_tick(self):
        if self._tick_handle is not None:
            self.scheduler.cancel(self._tick_handle)
            self._tick_handle = None

    def _emit_state(self):
        self.state_changed.emit(self._context)

    def cleanup(self):
        """Cancel tick delivery. Call before application exit."""
        self._context.is_running = False
        self._cancel_tick()
