"""Tests for recurrence pattern parsing, change detection, and date generation.

Covers:
- Weekly / biweekly / monthly / custom sequences
- Month-end clamping and nth / last weekday-of-month
- Inclusive end dates, maxOccurrences, the 52-occurrence cap and resuming past it
- Legacy pattern spellings and structural change detection
"""
from datetime import date, datetime, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from worship_scheduler.constants import MAX_GENERATED_OCCURRENCES
from worship_scheduler.services.recurrence import (
    BiweeklyPattern,
    CustomPattern,
    MonthlyPattern,
    MonthlyType,
    WeeklyPattern,
    describe_pattern,
    generate_all_dates,
    generate_dates,
    parse_recurrence_pattern,
    parse_recurrence_pattern_or_400,
    pattern_changed,
    resolve_pattern_for_anchor,
    serialize_pattern,
)

SUNDAY = datetime(2024, 1, 7, 10, 0)


def _days(dates):
    return [d.date() for d in dates]


class TestWeekly:
    """Weekly and biweekly sequences."""

    def test_sunday_service_until_recurrence_end(self):
        dates = generate_dates(WeeklyPattern(), SUNDAY, date(2024, 12, 31), recurrence_end=date(2024, 1, 28))
        assert _days(dates) == [date(2024, 1, 14), date(2024, 1, 21), date(2024, 1, 28)]

    def test_keeps_wall_clock_time(self):
        dates = generate_dates(WeeklyPattern(), SUNDAY, date(2024, 2, 1))
        assert all(d.hour == 10 and d.minute == 0 for d in dates)

    def test_biweekly(self):
        dates = generate_dates(BiweeklyPattern(), SUNDAY, date(2024, 2, 29))
        assert _days(dates) == [date(2024, 1, 21), date(2024, 2, 4), date(2024, 2, 18)]

    def test_weekly_on_listed_weekdays(self):
        pattern = WeeklyPattern(weekdays=[3, 1])  # Monday, Wednesday
        dates = generate_dates(pattern, SUNDAY, date(2024, 1, 17))
        assert _days(dates) == [date(2024, 1, 8), date(2024, 1, 10), date(2024, 1, 15), date(2024, 1, 17)]


class TestMonthly:
    """Same-day-of-month and nth-weekday sequences."""

    def test_month_end_is_clamped_not_cumulative(self):
        pattern = MonthlyPattern(monthly_type=MonthlyType.date)
        dates = generate_dates(pattern, datetime(2024, 1, 31, 9, 0), date(2024, 4, 30))
        assert _days(dates) == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]

    def test_second_tuesday(self):
        pattern = MonthlyPattern(monthly_type=MonthlyType.weekday_of_month)
        dates = generate_dates(pattern, datetime(2024, 1, 9, 19, 0), date(2024, 3, 31))
        assert _days(dates) == [date(2024, 2, 13), date(2024, 3, 12)]

    def test_last_weekday(self):
        pattern = MonthlyPattern(monthly_type=MonthlyType.weekday_of_month, week_of_month="last")
        dates = generate_dates(pattern, datetime(2024, 1, 30, 19, 0), date(2024, 3, 31))
        assert _days(dates) == [date(2024, 2, 27), date(2024, 3, 26)]

    def test_months_without_fifth_weekday_are_skipped(self):
        pattern = MonthlyPattern(monthly_type=MonthlyType.weekday_of_month, week_of_month=5)
        dates = generate_dates(pattern, datetime(2024, 1, 29, 18, 0), date(2024, 5, 31))
        assert _days(dates) == [date(2024, 4, 29)]

    def test_week_of_month_is_pinned_from_anchor(self):
        pattern = MonthlyPattern(monthly_type=MonthlyType.weekday_of_month)
        resolved = resolve_pattern_for_anchor(pattern, datetime(2024, 1, 16, 10, 0))
        assert resolved.week_of_month == 3

    def test_legacy_weekday_spelling(self):
        pattern = parse_recurrence_pattern({"type": "monthly", "monthlyType": "weekday"})
        assert pattern.monthly_type == MonthlyType.weekday_of_month


class TestCustom:
    """Every-N-weeks patterns on chosen weekdays."""

    def test_every_other_week_on_sunday_and_wednesday(self):
        pattern = CustomPattern(interval=2, weekdays=[0, 3])
        dates = generate_dates(pattern, SUNDAY, date(2024, 2, 4))
        assert _days(dates) == [date(2024, 1, 10), date(2024, 1, 21), date(2024, 1, 24), date(2024, 2, 4)]

    def test_without_weekdays_steps_whole_intervals(self):
        pattern = CustomPattern(interval=3)
        dates = generate_dates(pattern, SUNDAY, date(2024, 3, 1))
        assert _days(dates) == [date(2024, 1, 28), date(2024, 2, 18)]

    def test_weekday_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            CustomPattern(interval=1, weekdays=[7])

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            CustomPattern(interval=0)


class TestLimits:
    """Stopping rules shared by every pattern kind."""

    def test_hard_cap(self):
        dates = generate_dates(WeeklyPattern(), SUNDAY, date(2030, 1, 1))
        assert len(dates) == MAX_GENERATED_OCCURRENCES

    def test_max_occurrences(self):
        dates = generate_dates(WeeklyPattern(max_occurrences=3), SUNDAY, date(2030, 1, 1))
        assert len(dates) == 3

    def test_pattern_end_date_is_inclusive(self):
        pattern = WeeklyPattern(end_date=date(2024, 1, 21))
        dates = generate_dates(pattern, SUNDAY, date(2024, 12, 31))
        assert _days(dates) == [date(2024, 1, 14), date(2024, 1, 21)]

    def test_end_date_accepts_datetime_text(self):
        pattern = parse_recurrence_pattern({"type": "weekly", "endDate": "2024-01-21T23:59:59Z"})
        assert pattern.end_date == date(2024, 1, 21)

    def test_end_before_first_occurrence_yields_nothing(self):
        assert generate_dates(WeeklyPattern(), SUNDAY, date(2024, 1, 13)) == []

    def test_resume_after_counts_from_anchor(self):
        pattern = WeeklyPattern(max_occurrences=3)
        dates = generate_dates(pattern, SUNDAY, date(2030, 1, 1), after=datetime(2024, 1, 21, 10, 0))
        assert _days(dates) == [date(2024, 1, 28)]

    def test_generate_all_pages_past_cap(self):
        dates = generate_all_dates(WeeklyPattern(), SUNDAY, date(2025, 12, 31))
        assert len(dates) == 103
        assert _days(dates)[-1] == date(2025, 12, 28)
        assert all(b - a == timedelta(weeks=1) for a, b in zip(dates, dates[1:]))

    def test_generate_all_keeps_month_end_across_batches(self):
        dates = generate_all_dates(MonthlyPattern(), datetime(2020, 10, 31, 10, 0), date(2025, 11, 1))
        assert len(dates) == 60
        assert [d.day for d in dates if d.year == 2025] == [31, 28, 31, 30, 31, 30, 31, 31, 30, 31]

    @pytest.mark.parametrize("pattern", [
        WeeklyPattern(),
        BiweeklyPattern(),
        MonthlyPattern(),
        MonthlyPattern(monthly_type=MonthlyType.weekday_of_month, week_of_month="last"),
        CustomPattern(interval=2, weekdays=[0, 2, 4]),
    ])
    def test_strictly_after_anchor_and_increasing(self, pattern):
        dates = generate_dates(pattern, SUNDAY, date(2025, 1, 7))
        assert dates
        assert dates[0] > SUNDAY
        assert all(a < b for a, b in zip(dates, dates[1:]))


class TestParsing:
    """Pattern parsing, serialization and change detection."""

    def test_legacy_bare_strings(self):
        assert isinstance(parse_recurrence_pattern("weekly"), WeeklyPattern)
        assert isinstance(parse_recurrence_pattern("biweekly"), BiweeklyPattern)
        assert isinstance(parse_recurrence_pattern("monthly"), MonthlyPattern)

    def test_json_text(self):
        pattern = parse_recurrence_pattern('{"type": "custom", "interval": 2, "weekdays": [3, 0, 3]}')
        assert isinstance(pattern, CustomPattern)
        assert pattern.weekdays == (0, 3)

    def test_serialized_form_round_trips(self):
        pattern = CustomPattern(interval=2, weekdays=[0, 3], max_occurrences=10)
        assert parse_recurrence_pattern(serialize_pattern(pattern)) == pattern

    def test_unknown_string_rejected(self):
        with pytest.raises(ValueError):
            parse_recurrence_pattern("fortnightly")

    def test_unknown_type_is_http_400(self):
        with pytest.raises(HTTPException) as exc:
            parse_recurrence_pattern_or_400({"type": "yearly"})
        assert exc.value.status_code == 400

    def test_key_order_and_weekday_order_do_not_count_as_change(self):
        old = parse_recurrence_pattern('{"weekdays": [3, 0], "type": "weekly"}')
        new = parse_recurrence_pattern({"type": "weekly", "weekdays": [0, 3]})
        assert not pattern_changed(old, new)

    def test_end_date_alone_is_not_a_change(self):
        assert not pattern_changed(WeeklyPattern(), WeeklyPattern(end_date=date(2024, 6, 1)))

    def test_type_interval_and_limit_changes(self):
        assert pattern_changed(WeeklyPattern(), BiweeklyPattern())
        assert pattern_changed(CustomPattern(interval=2), CustomPattern(interval=3))
        assert pattern_changed(WeeklyPattern(), WeeklyPattern(max_occurrences=4))
        assert pattern_changed(None, WeeklyPattern())

    def test_describe(self):
        pattern = MonthlyPattern(monthly_type=MonthlyType.weekday_of_month, week_of_month=2)
        assert describe_pattern(pattern, datetime(2024, 1, 9)) == "Monthly on the 2nd Tuesday"
        assert describe_pattern(CustomPattern(interval=2, weekdays=[0])) == "Every 2 weeks on Sun"
