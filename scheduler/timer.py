"""One-shot timers that return a cancellation token."""
import logging
import threading
from datetime import datetime
from typing import Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellation token for an armed timer."""

    def __init__(self, fire_at: datetime):
        self.fire_at = fire_at
        self._cancelled = threading.Event()
        self._timer = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Cancel the timer. A cancelled handle never runs its callback."""
        self._cancelled.set()
        if self._timer is not None:
            self._timer.cancel()


class ThreadingTimer:
    """Arms one-shot timers backed by daemon threading.Timer threads."""

    def arm(self, fire_at: datetime, callback: Callable[[TimerHandle], None], now: datetime) -> TimerHandle:
        """
        Schedule callback to run once at fire_at.

        An instant already in the past fires immediately.

        Args:
            fire_at: Instant to fire at
            callback: Called with the handle when the timer fires
            now: Current instant, used to compute the delay

        Returns:
            TimerHandle that cancels the timer
        """
        delay = max(0.0, (fire_at - now).total_seconds())
        handle = TimerHandle(fire_at)

        def fire() -> None:
            if handle.cancelled:
                return
            callback(handle)

        timer = threading.Timer(delay, fire)
        timer.daemon = True
        handle._timer = timer
        timer.start()

        logger.info(f"Timer armed for {fire_at.isoformat()} ({delay:.0f} seconds from now)")
        return handle
