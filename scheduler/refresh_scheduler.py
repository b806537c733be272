"""Self-rescheduling refresh loop for prayer times."""
import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from fetcher.aladhan_calendar import AladhanCalendarClient
from processor.models import ErrorKind, Event, FetchOutcome, MonthKey, PublishedState
from processor.timeline_assembler import assemble
from scheduler.state_publisher import StatePublisher
from scheduler.timer import ThreadingTimer, TimerHandle
from settings.user_settings import UserSettings
from storage.month_cache import MonthCache

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    return datetime.now().astimezone()


class RefreshScheduler:
    """
    Keeps the published timeline current for this month and the next.

    Each cycle fetches (or reads from cache) both months, assembles the
    timeline, publishes it and arms a timer at the next prayer. The timer
    firing starts the next cycle. Only one cycle runs at a time; triggers
    that arrive while a cycle is in flight are ignored.
    """

    def __init__(
        self,
        fetcher: AladhanCalendarClient,
        settings: UserSettings,
        cache: Optional[MonthCache] = None,
        publisher: Optional[StatePublisher] = None,
        timer: Optional[ThreadingTimer] = None,
        now_provider: Callable[[], datetime] = local_now
    ):
        self.fetcher = fetcher
        self.settings = settings
        self.cache = cache if cache is not None else MonthCache()
        self.publisher = publisher or StatePublisher()
        self.timer = timer or ThreadingTimer()
        self.now_provider = now_provider

        self._cycle_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._running = False
        self._timer_handle: Optional[TimerHandle] = None
        self._last_location: Optional[str] = None

    @property
    def state(self) -> PublishedState:
        return self.publisher.current

    @property
    def running(self) -> bool:
        with self._state_lock:
            return self._running

    @property
    def pending_timer(self) -> Optional[TimerHandle]:
        return self._timer_handle

    def start(self) -> None:
        """Start the loop with an immediate refresh cycle."""
        with self._state_lock:
            if self._running:
                logger.info("Scheduler already running")
                return
            self._running = True
        logger.info("Starting prayer time scheduler")
        self.refresh()

    def stop(self) -> None:
        """
        Stop the loop and cancel any pending timer.

        Does not wait for an in-flight cycle, which arms no timer once stopped.
        """
        with self._state_lock:
            self._running = False
            self._cancel_timer()
        logger.info("Stopped prayer time scheduler")

    def refresh(self) -> bool:
        """
        Run one refresh cycle now.

        Returns:
            True if a cycle ran, False if it was ignored because the scheduler
            is stopped or another cycle is already in flight
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.info("Refresh already in progress, ignoring trigger")
            return False

        try:
            if not self.running:
                logger.warning("Scheduler is not running, ignoring trigger")
                return False
            self._run_cycle()
            return True
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> None:
        now = self.now_provider()
        location = self.settings.address

        if self._last_location is not None and location != self._last_location:
            logger.info("Address changed, discarding cached months")
            self.cache.clear()
        self._last_location = location

        try:
            current_key = MonthKey.for_datetime(now)
            next_key = current_key.next()
        except (AttributeError, ValueError) as e:
            logger.error(f"Cannot determine months to fetch: {e}")
            self._fail(ErrorKind.INVALID_DATE)
            return

        logger.info(f"Refreshing prayer times for {current_key.cache_key} and {next_key.cache_key}")

        try:
            current = self._fetch_if_necessary(location, current_key)
            if not current.ok:
                self._fail(current.error)
                return

            upcoming = self._fetch_if_necessary(location, next_key)
            if not upcoming.ok:
                self._fail(upcoming.error)
                return

            timeline = assemble(current.value, upcoming.value, now)
        except Exception as e:
            logger.error(f"Refresh cycle failed: {e}", exc_info=True)
            self._fail(ErrorKind.INVALID_DATA)
            return

        self.publisher.publish(PublishedState.success(timeline))
        self._schedule_next(timeline.current_event)

    def _fetch_if_necessary(self, location: str, key: MonthKey) -> FetchOutcome:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Using cached prayer times for {key.cache_key}")
            return FetchOutcome.success(cached)

        outcome = self.fetcher.fetch_month(location, key)
        if outcome.ok:
            self.cache.put(key, outcome.value)
        return outcome

    def _schedule_next(self, event: Optional[Event]) -> None:
        with self._state_lock:
            self._cancel_timer()
            if not self._running:
                logger.info("Scheduler stopped during refresh, not scheduling")
                return
            if event is None:
                logger.info("No upcoming prayer in timeline, not scheduling a refresh")
                return

            logger.info(f"Next refresh at {event.kind.value} {event.time.isoformat()}")
            # Delay is measured from arm time, after any fetches this cycle made
            self._timer_handle = self.timer.arm(event.time, self._on_timer, self.now_provider())

    def _on_timer(self, handle: TimerHandle) -> None:
        with self._state_lock:
            stale = handle is not self._timer_handle or handle.cancelled
        if stale:
            logger.debug("Ignoring stale timer")
            return
        logger.info("Timer fired, refreshing prayer times")
        self.refresh()

    def _cancel_timer(self) -> None:
        if self._timer_handle is not None:
            self._timer_handle.cancel()
            self._timer_handle = None

    def _fail(self, error: ErrorKind) -> None:
        logger.error(f"Refresh cycle failed with {error.value}")
        with self._state_lock:
            self._cancel_timer()
        self.publisher.publish(PublishedState.failure(error))
