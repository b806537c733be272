"""Unit tests for the timeline assembler and timeline models."""
import random
from datetime import datetime, timedelta, timezone

import pytest

from processor.models import Event, EventKind, MonthKey, MonthTimeline, Timeline
from processor.timeline_assembler import assemble, find_current_index


def at(month: int, day: int, hour: int, minute: int = 0, year: int = 2024) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def current_month():
    """Three prayers on the first day of March."""
    return MonthTimeline(
        start_of_month=at(3, 1, 0),
        events=(
            Event(EventKind.FAJR, at(3, 1, 9, 0)),
            Event(EventKind.DHUHR, at(3, 1, 12, 15)),
            Event(EventKind.ASR, at(3, 1, 15, 30)),
        )
    )


@pytest.fixture
def next_month():
    """One prayer on the first day of April."""
    return MonthTimeline(
        start_of_month=at(4, 1, 0),
        events=(Event(EventKind.FAJR, at(4, 1, 9, 5)),)
    )


class TestAssemble:
    """Test cases for assemble."""

    def test_two_month_scenario(self, current_month, next_month):
        """Test merging two months with now between the first and second event."""
        timeline = assemble(current_month, next_month, at(3, 1, 11, 0))

        assert len(timeline.events) == 4
        assert [event.time for event in timeline.events] == [
            at(3, 1, 9, 0), at(3, 1, 12, 15), at(3, 1, 15, 30), at(4, 1, 9, 5)
        ]
        assert timeline.current_index == 1
        assert timeline.current_event == Event(EventKind.DHUHR, at(3, 1, 12, 15))

    def test_months_given_out_of_order_are_sorted(self, current_month, next_month):
        """Test that the result is ascending even if the later month comes first."""
        timeline = assemble(next_month, current_month, at(3, 1, 11, 0))

        assert [event.time for event in timeline.events] == sorted(event.time for event in timeline.events)
        assert timeline.current_index == 1

    def test_sort_invariant_for_arbitrary_times(self):
        """Test that arbitrary timestamps always come out non-decreasing."""
        rng = random.Random(1234)
        base = at(3, 1, 0)
        kinds = list(EventKind)

        for _ in range(20):
            first = tuple(
                Event(rng.choice(kinds), base + timedelta(minutes=rng.randint(0, 60 * 24 * 60)))
                for _ in range(rng.randint(0, 30))
            )
            second = tuple(
                Event(rng.choice(kinds), base + timedelta(minutes=rng.randint(0, 60 * 24 * 60)))
                for _ in range(rng.randint(0, 30))
            )

            timeline = assemble(MonthTimeline(base, first), MonthTimeline(base, second), base)

            assert len(timeline.events) == len(first) + len(second)
            for earlier, later in zip(timeline.events, timeline.events[1:]):
                assert earlier.time <= later.time

    def test_equal_times_do_not_crash(self):
        """Test that events sharing a time are all kept."""
        moment = at(3, 1, 12)
        current = MonthTimeline(at(3, 1, 0), (Event(EventKind.DHUHR, moment),))
        upcoming = MonthTimeline(at(4, 1, 0), (Event(EventKind.ASR, moment),))

        timeline = assemble(current, upcoming, at(3, 1, 11))

        assert len(timeline.events) == 2
        assert timeline.current_index == 0

    def test_now_before_all_events(self, current_month, next_month):
        """Test that the index is zero when nothing has passed yet."""
        timeline = assemble(current_month, next_month, at(2, 28, 23, 0))

        assert timeline.current_index == 0

    def test_now_after_all_events(self, current_month, next_month):
        """Test that the index is absent when every event has passed."""
        timeline = assemble(current_month, next_month, at(4, 2, 0, 0))

        assert timeline.current_index is None
        assert timeline.current_event is None
        assert timeline.is_exhausted

    def test_now_equal_to_event_time_is_not_current(self, current_month, next_month):
        """Test that an event at exactly now counts as passed."""
        timeline = assemble(current_month, next_month, at(3, 1, 12, 15))

        assert timeline.current_index == 2

    def test_empty_months(self):
        """Test that two empty months give an empty timeline without a position."""
        timeline = assemble(MonthTimeline(at(3, 1, 0)), MonthTimeline(at(4, 1, 0)), at(3, 1, 11))

        assert timeline.events == ()
        assert timeline.current_index is None

    def test_mixed_offsets_compare_as_instants(self):
        """Test that events in different offsets are ordered by absolute time."""
        pacific = timezone(timedelta(hours=-8))
        later_local = Event(EventKind.FAJR, datetime(2024, 3, 1, 5, 0, tzinfo=pacific))  # 13:00 UTC
        earlier_utc = Event(EventKind.DHUHR, at(3, 1, 12, 0))

        timeline = assemble(
            MonthTimeline(at(3, 1, 0), (later_local,)),
            MonthTimeline(at(4, 1, 0), (earlier_utc,)),
            at(3, 1, 0)
        )

        assert timeline.events == (earlier_utc, later_local)


class TestFindCurrentIndex:
    """Test cases for find_current_index."""

    def test_empty_sequence(self):
        """Test that an empty sequence has no current index."""
        assert find_current_index((), at(3, 1, 0)) is None

    def test_first_future_event(self, current_month):
        """Test that the first strictly later event is found."""
        assert find_current_index(current_month.events, at(3, 1, 12, 16)) == 2


class TestTimeline:
    """Test cases for Timeline helpers."""

    def test_current_event_follows_index(self, current_month, next_month):
        """Test that the current event is the one at the current index."""
        events = assemble(current_month, next_month, at(3, 1, 11, 0)).events

        assert Timeline(events=events, current_index=3).current_event == Event(EventKind.FAJR, at(4, 1, 9, 5))
        assert not Timeline(events=events, current_index=0).is_exhausted

    def test_default_timeline_is_exhausted(self):
        """Test that an empty timeline has no current event."""
        timeline = Timeline()

        assert timeline.current_event is None
        assert timeline.is_exhausted


class TestMonthKey:
    """Test cases for MonthKey."""

    def test_next_within_year(self):
        """Test advancing to the following month."""
        assert MonthKey(2024, 3).next() == MonthKey(2024, 4)

    def test_next_rolls_over_year(self):
        """Test that December rolls over into January."""
        assert MonthKey(2024, 12).next() == MonthKey(2025, 1)

    def test_structural_equality_and_hashing(self):
        """Test that equal keys are interchangeable as dict keys."""
        cache = {MonthKey(2024, 3): 'march'}

        assert cache[MonthKey(2024, 3)] == 'march'
        assert MonthKey(2024, 3).cache_key == '2024|3'

    def test_for_datetime(self):
        """Test deriving a key from an instant."""
        assert MonthKey.for_datetime(at(7, 15, 10)) == MonthKey(2024, 7)

    def test_start_of_month(self):
        """Test the first instant of the month."""
        assert MonthKey(2024, 3).start_of_month() == at(3, 1, 0)

    def test_invalid_month(self):
        """Test that month 13 is not valid and has no start."""
        key = MonthKey(2024, 13)

        assert not key.is_valid
        with pytest.raises(ValueError):
            key.start_of_month()
