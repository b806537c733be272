"""In-memory cache of fetched prayer time months."""
import logging
from collections import OrderedDict
from typing import Optional

from processor.models import MonthKey, MonthTimeline

logger = logging.getLogger(__name__)


class MonthCache:
    """
    Cache mapping a MonthKey to the MonthTimeline fetched for it.

    Entries live for the lifetime of the process. When max_months is set,
    the oldest inserted month is evicted once the bound is exceeded.
    """

    def __init__(self, max_months: Optional[int] = None):
        """
        Initialize an empty cache.

        Args:
            max_months: Maximum number of months to keep (default: unbounded)
        """
        if max_months is not None and max_months < 1:
            raise ValueError("max_months must be at least 1")
        self.max_months = max_months
        self._entries: "OrderedDict[MonthKey, MonthTimeline]" = OrderedDict()

    def get(self, key: MonthKey) -> Optional[MonthTimeline]:
        return self._entries.get(key)

    def put(self, key: MonthKey, value: MonthTimeline) -> None:
        """
        Store the timeline for a month, replacing any previous entry.

        Args:
            key: Month the timeline belongs to
            value: Fetched and sorted month timeline
        """
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = value
        logger.debug(f"Cached {len(value.events)} events for {key.cache_key}")

        while self.max_months is not None and len(self._entries) > self.max_months:
            evicted, _ = self._entries.popitem(last=False)
            logger.info(f"Evicted cached month {evicted.cache_key}")

    def clear(self) -> None:
        if self._entries:
            logger.info(f"Clearing {len(self._entries)} cached months")
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
