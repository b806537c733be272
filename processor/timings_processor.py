"""Processor that turns raw calendar days into an ordered month of prayer times."""
import logging
import re
from datetime import datetime
from typing import Iterable, List, Optional

from processor.models import Event, EventKind, MonthTimeline, RawDay

logger = logging.getLogger(__name__)

# Some API responses annotate times with the zone abbreviation, e.g. "(PDT)"
_ZONE_SUFFIX = re.compile(r'\s*\([^)]*\)\s*$')


class TimingsProcessor:
    """Processor for validating and normalizing prayer timings."""

    def process_month(self, days: Iterable[RawDay], start_of_month: datetime) -> MonthTimeline:
        """
        Convert the raw days of one month into a sorted MonthTimeline.

        Entries with an unrecognized kind or an unparseable timestamp are
        dropped; the rest of the month is kept.

        Args:
            days: Raw days decoded from the calendar response
            start_of_month: First instant of the month being processed

        Returns:
            MonthTimeline with events sorted ascending by time
        """
        events: List[Event] = []
        skipped = 0

        for day in days:
            for key, value in day.timings.items():
                event = self._process_single_timing(key, value, day.readable)
                if event:
                    events.append(event)
                else:
                    skipped += 1

        events.sort(key=lambda event: event.time)

        logger.info(
            f"Processed {len(events)} prayer times for "
            f"{start_of_month.strftime('%Y-%m')} ({skipped} skipped)"
        )
        return MonthTimeline(start_of_month=start_of_month, events=tuple(events))

    def _process_single_timing(self, key: str, value: str, readable: str) -> Optional[Event]:
        kind = EventKind.from_key(key)
        if kind is None:
            logger.debug(f"Ignoring unrecognized timing '{key}'")
            return None

        time = self.parse_timestamp(value)
        if time is None:
            logger.warning(f"Invalid timestamp for {key} on {readable}: {value!r}")
            return None

        return Event(kind=kind, time=time)

    def parse_timestamp(self, value: str) -> Optional[datetime]:
        """
        Parse an ISO 8601 timestamp with a UTC offset.

        Args:
            value: Timestamp such as "2024-03-01T05:12:00-08:00"

        Returns:
            Timezone-aware datetime, or None if parsing fails or no offset is given
        """
        if not isinstance(value, str):
            return None

        cleaned = _ZONE_SUFFIX.sub('', value.strip())
        if cleaned.endswith('Z'):
            cleaned = cleaned[:-1] + '+00:00'

        try:
            parsed = datetime.fromisoformat(cleaned)
        except ValueError:
            return None

        if parsed.tzinfo is None:
            return None
        return parsed
