"""Calendar client for monthly prayer times from the Aladhan API."""
import logging
from datetime import tzinfo
from typing import Any, List, Optional

import requests

from processor.models import ErrorKind, FetchOutcome, MonthKey, RawDay
from processor.timings_processor import TimingsProcessor

logger = logging.getLogger(__name__)


class CalendarDecodeError(ValueError):
    """Raised when a calendar response does not have the expected shape."""


class AladhanCalendarClient:
    """Client for the Aladhan calendar-by-address endpoint."""

    BASE_URL = "http://api.aladhan.com/v1/calendarByAddress"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: int = 30,
        processor: Optional[TimingsProcessor] = None,
        tz: Optional[tzinfo] = None
    ):
        """
        Initialize the calendar client.

        Args:
            base_url: Endpoint URL (default: Aladhan calendarByAddress)
            timeout: HTTP request timeout in seconds (default: 30)
            processor: Processor used to decode timings into events
            tz: Timezone for the start-of-month instant (default: UTC)
        """
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.processor = processor or TimingsProcessor()
        self.tz = tz

    def fetch_month(self, location: str, key: MonthKey) -> FetchOutcome:
        """
        Fetch and decode the prayer times of one month.

        Performs exactly one request and no caching.

        Args:
            location: Free-form address the times are computed for
            key: Year and month to fetch

        Returns:
            FetchOutcome with the sorted MonthTimeline, or InvalidDate /
            InvalidData on failure
        """
        if not key.is_valid:
            logger.error(f"Cannot fetch invalid month {key.cache_key}")
            return FetchOutcome.failure(ErrorKind.INVALID_DATE)

        try:
            start_of_month = key.start_of_month(self.tz)
        except (ValueError, OverflowError) as e:
            logger.error(f"Cannot fetch {key.cache_key}: {e}")
            return FetchOutcome.failure(ErrorKind.INVALID_DATE)

        logger.info(
            f"Fetching prayer times for {key.cache_key}",
            extra={'location': location, 'year': key.year, 'month': key.month}
        )

        try:
            payload = self._fetch_calendar_json(location, key)
            days = self._parse_days(payload)
        except requests.RequestException as e:
            logger.error(f"Request for {key.cache_key} failed: {e}")
            return FetchOutcome.failure(ErrorKind.INVALID_DATA)
        except ValueError as e:
            logger.error(f"Invalid calendar response for {key.cache_key}: {e}")
            return FetchOutcome.failure(ErrorKind.INVALID_DATA)

        month = self.processor.process_month(days, start_of_month)
        return FetchOutcome.success(month)

    def _fetch_calendar_json(self, location: str, key: MonthKey) -> Any:
        """
        Request the calendar for one month.

        Raises:
            requests.RequestException: On transport errors or non-2xx status
            ValueError: If the body is not JSON
        """
        params = {
            'address': location,
            'month': key.month,
            'year': key.year,
            'iso8601': 'true'
        }

        response = requests.get(
            self.base_url,
            params=params,
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def _parse_days(self, payload: Any) -> List[RawDay]:
        """
        Decode the response body into raw days.

        Args:
            payload: Parsed JSON body

        Returns:
            List of RawDay objects, one per day of the month

        Raises:
            CalendarDecodeError: If the body does not match the expected shape
        """
        if not isinstance(payload, dict) or not isinstance(payload.get('data'), list):
            raise CalendarDecodeError("response has no 'data' list")

        days = []
        for index, entry in enumerate(payload['data']):
            if not isinstance(entry, dict):
                raise CalendarDecodeError(f"day {index} is not an object")

            timings = entry.get('timings')
            date_info = entry.get('date')
            if not isinstance(timings, dict) or not isinstance(date_info, dict):
                raise CalendarDecodeError(f"day {index} is missing timings or date")

            days.append(RawDay(
                readable=str(date_info.get('readable', '')),
                timings=timings
            ))

        return days
