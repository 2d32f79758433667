"""
Tick sources for the timer engine.

The engine never owns a thread or timer of its own; it subscribes to a
Scheduler and gets a callback on every tick.

Implementations:
    - QtScheduler: one QTimer per subscription, delivered on the Qt event loop
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from PySide6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)


class Scheduler(ABC):
    """Abstract base class for repeating tick sources."""

    @abstractmethod
    def subscribe(self, interval_seconds: float, callback: Callable[[], None]) -> int:
        """
        Start calling `callback` every `interval_seconds`.

        Returns:
            A handle to pass to cancel().
        """

    @abstractmethod
    def cancel(self, handle: int) -> None:
        """Stop a subscription. Unknown or cancelled handles are ignored."""


class QtScheduler(Scheduler):
    """
    Scheduler backed by QTimer.
    Timers live on the thread that creates them, so ticks arrive on the
    Qt main loop alongside start/pause/reset commands.
    """

    def __init__(self, parent: Optional[QObject] = None):
        self._parent = parent
        self._timers: Dict[int, QTimer] = {}
        self._next_handle = 1

    def subscribe(self, interval_seconds: float, callback: Callable[[], None]) -> int:
        handle = self._next_handle
        self._next_handle += 1

        timer = QTimer(self._parent)
        timer.setInterval(int(interval_seconds * 1000))
        timer.timeout.connect(callback)
        timer.start()

        self._timers[handle] = timer
        logger.debug("Subscribed tick handle %d every %ss", handle, interval_seconds)
        return handle

    def cancel(self, handle: int) -> None:
        timer = self._timers.pop(handle, None)
        if timer is None:
            return
        timer.stop()
        timer.deleteLater()
        logger.debug("Cancelled tick handle %d", handle)

    def is_active(self, handle: int) -> bool:
        """Check if a subscription is still delivering ticks."""
        timer = self._timers.get(handle)
        return timer is not None and timer.isActive()

    def interval_ms(self, handle: int) -> Optional[int]:
        timer = self._timers.get(handle)
        return timer.interval() if timer is not None else None

    def cleanup(self):
        """Stop all subscriptions. Call before application exit."""
        for handle in list(self._timers):
            self.cancel(handle)
