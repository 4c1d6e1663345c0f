"""Tests for the recurrence expander (pure, no database)."""
from datetime import date, time
from itertools import islice

import pytest

from app.errors import ValidationError
from app.models.recurring_booking import RecurringBooking
from app.services.recurrence import iter_occurrences, next_occurrences, sunday_weekday


def _rule(pattern="weekly", start=date(2024, 1, 1), end=None, interval=1, days=None):
    return RecurringBooking(
        title="Weekly yoga",
        recurrence_pattern=pattern,
        recurrence_interval=interval,
        days_of_week=days,
        start_time=time(18),
        end_time=time(19),
        start_date=start,
        end_date=end,
    )


def _dates(occurrences):
    return [o.date for o in occurrences]


class TestDaily:

    def test_every_day_until_end(self):
        rule = _rule("daily", end=date(2024, 1, 4))
        assert _dates(next_occurrences(rule)) == [
            date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3), date(2024, 1, 4),
        ]

    def test_interval(self):
        rule = _rule("daily", interval=3)
        assert _dates(next_occurrences(rule, count=3)) == [date(2024, 1, 1), date(2024, 1, 4), date(2024, 1, 7)]

    def test_restart_keeps_phase(self):
        rule = _rule("daily", interval=3)
        assert _dates(next_occurrences(rule, count=2, from_date=date(2024, 1, 2))) == [
            date(2024, 1, 4), date(2024, 1, 7),
        ]

    def test_times_carried_over(self):
        occurrence = next_occurrences(_rule("daily"), count=1)[0]
        assert (occurrence.start_time, occurrence.end_time) == (time(18), time(19))


class TestWeekly:

    def test_every_other_monday(self):
        rule = _rule(interval=2, days=[1], end=date(2024, 2, 1))
        assert _dates(next_occurrences(rule)) == [date(2024, 1, 1), date(2024, 1, 15), date(2024, 1, 29)]

    def test_restart_mid_cycle(self):
        rule = _rule(interval=2, days=[1])
        assert _dates(next_occurrences(rule, count=2, from_date=date(2024, 1, 8))) == [
            date(2024, 1, 15), date(2024, 1, 29),
        ]

    def test_multiple_days_sunday_based(self):
        # 0 = Sunday, 6 = Saturday
        rule = _rule(days=[6, 0])
        assert _dates(next_occurrences(rule, count=4)) == [
            date(2024, 1, 6), date(2024, 1, 7), date(2024, 1, 13), date(2024, 1, 14),
        ]

    def test_every_date_is_a_chosen_weekday(self):
        rule = _rule(days=[2, 4], interval=3)
        for occurrence in next_occurrences(rule, until=date(2024, 6, 30)):
            assert sunday_weekday(occurrence.date) in (2, 4)

    def test_empty_days_rejected(self):
        with pytest.raises(ValidationError):
            next_occurrences(_rule(days=[]), count=1)

    def test_out_of_range_day_rejected(self):
        with pytest.raises(ValidationError):
            next_occurrences(_rule(days=[7]), count=1)

    def test_first_week_days_before_start_skipped(self):
        # start on a Wednesday; the Monday of that week is not an occurrence
        rule = _rule(start=date(2024, 1, 3), days=[1, 3], interval=2)
        assert _dates(next_occurrences(rule, count=3)) == [date(2024, 1, 3), date(2024, 1, 15), date(2024, 1, 17)]

    def test_sunday_starts_the_week(self):
        # every other week from Saturday Jan 6: Sunday Jan 7 opens the skipped week
        rule = _rule(start=date(2024, 1, 6), days=[0, 6], interval=2)
        assert _dates(next_occurrences(rule, count=3)) == [date(2024, 1, 6), date(2024, 1, 14), date(2024, 1, 20)]


class TestMonthly:

    def test_clamps_to_month_end(self):
        rule = _rule("monthly", start=date(2024, 1, 31))
        assert _dates(next_occurrences(rule, count=4)) == [
            date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30),
        ]

    def test_non_leap_february(self):
        rule = _rule("monthly", start=date(2023, 1, 30))
        assert _dates(next_occurrences(rule, count=2)) == [date(2023, 1, 30), date(2023, 2, 28)]

    def test_quarterly_across_year_end(self):
        rule = _rule("monthly", start=date(2024, 11, 15), interval=3)
        assert _dates(next_occurrences(rule, count=3)) == [
            date(2024, 11, 15), date(2025, 2, 15), date(2025, 5, 15),
        ]

    def test_restart_keeps_anchor_day(self):
        rule = _rule("monthly", start=date(2024, 1, 31))
        assert _dates(next_occurrences(rule, count=3, from_date=date(2024, 3, 1))) == [
            date(2024, 3, 31), date(2024, 4, 30), date(2024, 5, 31),
        ]

    def test_restart_skips_off_cycle_months(self):
        rule = _rule("monthly", start=date(2024, 1, 10), interval=2)
        assert _dates(next_occurrences(rule, count=2, from_date=date(2024, 2, 20))) == [
            date(2024, 3, 10), date(2024, 5, 10),
        ]


class TestBounds:

    def test_deterministic(self):
        rule = _rule(days=[1, 3, 5], interval=2)
        assert next_occurrences(rule, count=10) == next_occurrences(rule, count=10)

    def test_end_date_respected(self):
        rule = _rule(days=[1], end=date(2024, 1, 22))
        assert _dates(next_occurrences(rule, count=10))[-1] == date(2024, 1, 22)
        assert len(next_occurrences(rule, count=10)) == 4

    def test_unbounded_iteration_is_lazy(self):
        rule = _rule("daily")
        assert len(list(islice(iter_occurrences(rule), 1000))) == 1000

    def test_open_ended_needs_a_bound(self):
        with pytest.raises(ValidationError):
            next_occurrences(_rule("daily"))

    def test_until_bounds_open_ended_rule(self):
        rule = _rule("daily")
        assert len(next_occurrences(rule, until=date(2024, 1, 10))) == 10

    def test_count_zero(self):
        assert next_occurrences(_rule("daily"), count=0) == []

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            next_occurrences(_rule("daily"), count=-1)

    def test_from_date_before_start(self):
        rule = _rule("daily", start=date(2024, 3, 1))
        assert _dates(next_occurrences(rule, count=1, from_date=date(2024, 1, 1))) == [date(2024, 3, 1)]

    def test_invalid_rules(self):
        with pytest.raises(ValidationError):
            next_occurrences(_rule("yearly"), count=1)
        with pytest.raises(ValidationError):
            next_occurrences(_rule("daily", interval=0), count=1)
        with pytest.raises(ValidationError):
            next_occurrences(_rule("daily", start=date(2024, 2, 1), end=date(2024, 1, 1)), count=1)
