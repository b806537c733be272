"""Entry point for the Salat Time prayer schedule service."""
import json
import logging
import os
import threading
from typing import Mapping, Optional

from fetcher.aladhan_calendar import AladhanCalendarClient
from processor.models import PublishedState
from scheduler.refresh_scheduler import RefreshScheduler
from scheduler.state_publisher import StatePublisher
from settings.user_settings import UserSettings
from storage.month_cache import MonthCache


# Attributes every LogRecord carries; anything else came in through `extra`
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging, including `extra` fields."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_scheduler(environ: Optional[Mapping[str, str]] = None) -> RefreshScheduler:
    """
    Wire the scheduler and its collaborators from environment configuration.

    Args:
        environ: Configuration mapping (default: os.environ)

    Returns:
        RefreshScheduler ready to be started
    """
    environ = environ if environ is not None else os.environ

    timeout_seconds = int(environ.get('TIMEOUT_SECONDS', '30'))
    api_url = environ.get('ALADHAN_API_URL') or None
    max_months = environ.get('CACHE_MAX_MONTHS')

    fetcher = AladhanCalendarClient(base_url=api_url, timeout=timeout_seconds)
    cache = MonthCache(max_months=int(max_months) if max_months else None)

    return RefreshScheduler(
        fetcher=fetcher,
        settings=UserSettings(environ),
        cache=cache,
        publisher=StatePublisher()
    )


def describe_state(state: PublishedState, settings: UserSettings) -> str:
    """
    Render a published state as a one-line summary.

    Args:
        state: State to describe
        settings: Settings providing the display format

    Returns:
        Summary of the next prayer, or of the error
    """
    if not state.ok:
        return f"No prayer times ({state.error.value})"

    event = state.value.current_event
    if event is None:
        return "No upcoming prayer"

    label = settings.format.label_for(event.kind)
    when = event.time.strftime('%Y-%m-%d %H:%M')
    return f"{label} at {when}" if label else when


def main(environ: Optional[Mapping[str, str]] = None, stop_event: Optional[threading.Event] = None) -> int:
    """
    Run the scheduler until interrupted.

    Args:
        environ: Configuration mapping (default: os.environ)
        stop_event: Event that ends the run when set

    Returns:
        Process exit code
    """
    environ = environ if environ is not None else os.environ
    setup_logging(environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    scheduler = build_scheduler(environ)
    if not scheduler.settings.address:
        logger.warning("SALAT_ADDRESS is not set, prayer times cannot be resolved")

    def on_publish(state: PublishedState) -> None:
        logger.info(
            describe_state(state, scheduler.settings),
            extra={'ok': state.ok, 'error': state.error.value if state.error else None}
        )

    scheduler.publisher.subscribe(on_publish)
    stop_event = stop_event or threading.Event()

    try:
        scheduler.start()
        stop_event.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        scheduler.stop()

    return 0 if scheduler.state.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
