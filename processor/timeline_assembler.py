"""Assembler that merges two months of prayer times into a single timeline."""
import logging
from datetime import datetime
from typing import Optional, Sequence

from processor.models import Event, MonthTimeline, Timeline

logger = logging.getLogger(__name__)


def find_current_index(events: Sequence[Event], now: datetime) -> Optional[int]:
    """
    Find the first event strictly after now.

    Args:
        events: Events sorted ascending by time
        now: Reference instant

    Returns:
        Index of the first future event, or None if all events have passed
    """
    for index, event in enumerate(events):
        if event.time > now:
            return index
    return None


def assemble(current: MonthTimeline, next_month: MonthTimeline, now: datetime) -> Timeline:
    """
    Merge the current and next month into one ordered timeline.

    Args:
        current: Events for the month containing now
        next_month: Events for the following month
        now: Reference instant for the current position

    Returns:
        Timeline sorted ascending by time with current_index set
    """
    # sorted() is stable, so equal times keep their month order
    events = tuple(sorted(current.events + next_month.events, key=lambda event: event.time))
    current_index = find_current_index(events, now)

    logger.debug(
        f"Assembled {len(events)} events, current index {current_index}"
    )
    return Timeline(events=events, current_index=current_index)
