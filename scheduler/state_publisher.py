"""Observable holder for the published prayer time state."""
import logging
import threading
from typing import Callable, List

from processor.models import PublishedState

logger = logging.getLogger(__name__)

Subscriber = Callable[[PublishedState], None]


class StatePublisher:
    """
    Holds the latest PublishedState and notifies subscribers on every publish.

    Reads are safe from any thread; only the scheduler publishes.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = PublishedState.not_asked()
        self._subscribers: List[Subscriber] = []

    @property
    def current(self) -> PublishedState:
        with self._lock:
            return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for future publishes.

        Args:
            callback: Called with each newly published state

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, state: PublishedState) -> None:
        """Replace the current state and notify subscribers."""
        with self._lock:
            self._state = state
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(state)
            except Exception as e:
                logger.error(f"State subscriber failed: {e}", exc_info=True)
                continue
