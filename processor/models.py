"""Data models for prayer time scheduling."""
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Dict, Generic, Optional, Tuple, TypeVar


class EventKind(str, Enum):
    """Recognized prayer markers, valued by their key in the API timings."""
    FAJR = 'Fajr'
    SUNRISE = 'Sunrise'
    DHUHR = 'Dhuhr'
    ASR = 'Asr'
    MAGHRIB = 'Maghrib'
    ISHA = 'Isha'

    @classmethod
    def from_key(cls, key: str) -> Optional['EventKind']:
        """Map a timings key to a kind, or None when it is not recognized."""
        try:
            return cls(key)
        except ValueError:
            return None

    @property
    def short_name(self) -> str:
        return self.value[0]


class ErrorKind(str, Enum):
    """Reasons a fetch cycle produced no timeline."""
    INVALID_DATE = 'InvalidDate'
    INVALID_DATA = 'InvalidData'
    NOT_ASKED = 'NotAsked'


@dataclass(frozen=True)
class Event:
    """A single prayer occurrence."""
    kind: EventKind
    time: datetime


@dataclass(frozen=True)
class MonthKey:
    """Year and month identifying a cache bucket."""
    year: int
    month: int

    @classmethod
    def for_datetime(cls, moment: datetime) -> 'MonthKey':
        return cls(year=moment.year, month=moment.month)

    @property
    def is_valid(self) -> bool:
        return 1 <= self.month <= 12 and 1 <= self.year <= 9999

    @property
    def cache_key(self) -> str:
        return f"{self.year}|{self.month}"

    def next(self) -> 'MonthKey':
        """
        Return the key of the following month.

        December rolls over into January of the next year.
        """
        if self.month == 12:
            return MonthKey(year=self.year + 1, month=1)
        return MonthKey(year=self.year, month=self.month + 1)

    def start_of_month(self, tz: Optional[tzinfo] = None) -> datetime:
        """
        Midnight on the first day of the month.

        Args:
            tz: Timezone for the returned instant (default: UTC)

        Raises:
            ValueError: If the key does not describe a real month
        """
        return datetime(self.year, self.month, 1, tzinfo=tz or timezone.utc)


@dataclass(frozen=True)
class MonthTimeline:
    """All events of one month, sorted ascending by time."""
    start_of_month: datetime
    events: Tuple[Event, ...] = ()


@dataclass(frozen=True)
class Timeline:
    """
    Two consecutive months of events merged into one ordered view.

    current_index points at the first event still in the future, or is None
    when every event has already passed (or there are no events).
    """
    events: Tuple[Event, ...] = ()
    current_index: Optional[int] = None

    @property
    def current_event(self) -> Optional[Event]:
        if self.current_index is None:
            return None
        return self.events[self.current_index]

    @property
    def is_exhausted(self) -> bool:
        return self.current_index is None


T = TypeVar('T')


@dataclass(frozen=True)
class _Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[ErrorKind] = None

    @classmethod
    def success(cls, value: T):
        return cls(value=value, error=None)

    @classmethod
    def failure(cls, error: ErrorKind):
        return cls(value=None, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


class FetchOutcome(_Result[MonthTimeline]):
    """Result of fetching a single month."""


class PublishedState(_Result[Timeline]):
    """The externally observed result of the latest refresh cycle."""

    @classmethod
    def not_asked(cls) -> 'PublishedState':
        return cls.failure(ErrorKind.NOT_ASKED)


@dataclass
class RawDay:
    """One day of the calendar response, as decoded from JSON."""
    readable: str
    timings: Dict[str, str] = field(default_factory=dict)
