"""Tests for recurring pattern logic."""

from datetime import date, timedelta

import pytest

from cadence.core.dates import day_of_week
from cadence.core.errors import ValidationError
from cadence.core.patterns import (
    PatternType,
    RecurringPattern,
    format_recurring_pattern,
    is_pattern_expired,
    matches,
    next_occurrence,
    parse_recurring_description,
)


@pytest.fixture
def today():
    # Thursday
    return date(2026, 1, 22)


class TestRecurringPatternValidation:
    def test_weekly_needs_days(self):
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.WEEKLY)

    def test_custom_needs_days(self):
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.CUSTOM, days_of_week=())

    def test_monthly_needs_day_of_month(self):
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.MONTHLY)

    def test_yearly_rejects_impossible_date(self):
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.YEARLY, month_of_year=2, day_of_month=30)

    def test_yearly_allows_leap_day(self):
        pattern = RecurringPattern(PatternType.YEARLY, month_of_year=2, day_of_month=29)
        assert pattern.day_of_month == 29

    def test_rejects_non_hhmm_notify_at(self):
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.DAILY, notify_at="9:00")
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.DAILY, notify_at="24:00")

    def test_accepts_hhmm_notify_at(self):
        pattern = RecurringPattern(PatternType.DAILY, notify_at="09:05")
        assert pattern.notify_minutes == 545

    def test_rejects_zero_interval(self):
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.DAILY, interval=0)

    def test_rejects_out_of_range_fields(self):
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.WEEKLY, days_of_week=(7,))
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.MONTHLY, day_of_month=32)
        with pytest.raises(ValidationError):
            RecurringPattern(PatternType.YEARLY, month_of_year=13, day_of_month=1)

    def test_from_dict_unknown_type(self):
        with pytest.raises(ValidationError):
            RecurringPattern.from_dict({"type": "hourly"})

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ValidationError):
            RecurringPattern.from_dict("daily")

    def test_from_dict_sorts_and_dedups_days(self):
        pattern = RecurringPattern.from_dict({"type": "weekly", "daysOfWeek": [3, 1, 3]})
        assert pattern.days_of_week == (1, 3)

    def test_from_dict_reads_camel_case(self):
        pattern = RecurringPattern.from_dict(
            {
                "type": "monthly",
                "interval": 2,
                "dayOfMonth": 15,
                "endDate": "2026-06-30",
                "occurrences": 4,
                "notifyAt": "08:00",
            }
        )
        assert pattern.type is PatternType.MONTHLY
        assert pattern.interval == 2
        assert pattern.day_of_month == 15
        assert pattern.end_date == date(2026, 6, 30)
        assert pattern.occurrences == 4
        assert pattern.notify_at == "08:00"

    def test_to_dict_omits_defaults(self):
        assert RecurringPattern(PatternType.DAILY).to_dict() == {"type": "daily"}

    def test_to_dict_wire_names(self):
        pattern = RecurringPattern(PatternType.WEEKLY, interval=2, days_of_week=(1, 5), notify_at="07:30")
        assert pattern.to_dict() == {
            "type": "weekly",
            "interval": 2,
            "daysOfWeek": [1, 5],
            "notifyAt": "07:30",
        }


class TestMatches:
    def test_daily_matches_every_date(self, today):
        pattern = RecurringPattern(PatternType.DAILY)
        for i in range(-400, 400):
            assert matches(pattern, today + timedelta(days=i))

    def test_daily_stops_after_end_date(self, today):
        pattern = RecurringPattern(PatternType.DAILY, end_date=today)
        assert matches(pattern, today)
        assert not matches(pattern, today + timedelta(days=1))

    def test_weekly_matches_listed_weekdays(self, today):
        pattern = RecurringPattern(PatternType.WEEKLY, days_of_week=(1, 3, 5))
        for i in range(28):
            d = today + timedelta(days=i)
            assert matches(pattern, d) == (day_of_week(d) in (1, 3, 5))

    def test_sunday_is_zero(self):
        pattern = RecurringPattern(PatternType.WEEKLY, days_of_week=(0,))
        assert matches(pattern, date(2026, 1, 25))
        assert not matches(pattern, date(2026, 1, 26))

    def test_custom_behaves_like_weekly(self, today):
        pattern = RecurringPattern(PatternType.CUSTOM, days_of_week=(4,))
        assert matches(pattern, today)
        assert not matches(pattern, today + timedelta(days=1))

    def test_monthly_skips_short_months(self):
        pattern = RecurringPattern(PatternType.MONTHLY, day_of_month=31)
        assert matches(pattern, date(2026, 1, 31))
        assert not matches(pattern, date(2026, 2, 28))
        assert not matches(pattern, date(2026, 4, 30))

    def test_yearly(self):
        pattern = RecurringPattern(PatternType.YEARLY, month_of_year=3, day_of_month=5)
        assert matches(pattern, date(2026, 3, 5))
        assert matches(pattern, date(2031, 3, 5))
        assert not matches(pattern, date(2026, 4, 5))

    def test_interval_does_not_filter_matches(self, today):
        pattern = RecurringPattern(PatternType.DAILY, interval=3)
        assert matches(pattern, today + timedelta(days=1))


class TestNextOccurrence:
    def test_daily(self, today):
        pattern = RecurringPattern(PatternType.DAILY)
        assert next_occurrence(pattern, today) == date(2026, 1, 23)

    def test_daily_interval(self, today):
        pattern = RecurringPattern(PatternType.DAILY, interval=3)
        assert next_occurrence(pattern, today) == date(2026, 1, 25)

    def test_weekly_next_listed_day(self, today):
        pattern = RecurringPattern(PatternType.WEEKLY, days_of_week=(1, 3))
        assert next_occurrence(pattern, today) == date(2026, 1, 26)

    def test_weekly_interval_skips_weeks(self, today):
        pattern = RecurringPattern(PatternType.WEEKLY, interval=2, days_of_week=(4,))
        assert next_occurrence(pattern, today) == date(2026, 2, 5)

    def test_monthly_skips_months_without_the_day(self):
        pattern = RecurringPattern(PatternType.MONTHLY, day_of_month=31)
        assert next_occurrence(pattern, date(2026, 1, 31)) == date(2026, 3, 31)

    def test_monthly_interval(self):
        pattern = RecurringPattern(PatternType.MONTHLY, interval=2, day_of_month=15)
        assert next_occurrence(pattern, date(2026, 1, 15)) == date(2026, 3, 15)

    def test_monthly_later_in_same_month(self):
        pattern = RecurringPattern(PatternType.MONTHLY, day_of_month=28)
        assert next_occurrence(pattern, date(2026, 1, 22)) == date(2026, 1, 28)

    def test_yearly_leap_day(self):
        pattern = RecurringPattern(PatternType.YEARLY, month_of_year=2, day_of_month=29)
        assert next_occurrence(pattern, date(2024, 2, 29)) == date(2028, 2, 29)

    def test_occurrence_cap(self, today):
        pattern = RecurringPattern(PatternType.DAILY, occurrences=3)
        assert next_occurrence(pattern, today, 2) == date(2026, 1, 23)
        assert next_occurrence(pattern, today, 3) is None

    def test_end_date(self, today):
        pattern = RecurringPattern(PatternType.DAILY, end_date=date(2026, 1, 23))
        assert next_occurrence(pattern, today) == date(2026, 1, 23)
        assert next_occurrence(pattern, date(2026, 1, 23)) is None

    def test_result_is_later_and_matches(self, today):
        patterns = [
            RecurringPattern(PatternType.DAILY, interval=2),
            RecurringPattern(PatternType.WEEKLY, days_of_week=(0, 6)),
            RecurringPattern(PatternType.CUSTOM, interval=3, days_of_week=(2,)),
            RecurringPattern(PatternType.MONTHLY, day_of_month=30),
            RecurringPattern(PatternType.YEARLY, month_of_year=12, day_of_month=31),
        ]
        for pattern in patterns:
            for i in range(60):
                start = today + timedelta(days=i)
                nxt = next_occurrence(pattern, start)
                assert nxt is not None
                assert nxt > start
                assert matches(pattern, nxt)


class TestIsPatternExpired:
    def test_not_expired(self, today):
        assert not is_pattern_expired(RecurringPattern(PatternType.DAILY), today)

    def test_end_date_passed(self, today):
        pattern = RecurringPattern(PatternType.DAILY, end_date=today - timedelta(days=1))
        assert is_pattern_expired(pattern, today)

    def test_cap_reached(self, today):
        pattern = RecurringPattern(PatternType.DAILY, occurrences=2)
        assert not is_pattern_expired(pattern, today, 1)
        assert is_pattern_expired(pattern, today, 2)


class TestParseRecurringDescription:
    def test_daily(self, today):
        assert parse_recurring_description("Daily", today) == RecurringPattern(PatternType.DAILY)
        assert parse_recurring_description("every day", today) == RecurringPattern(PatternType.DAILY)

    def test_every_n_days(self, today):
        assert parse_recurring_description("every 3 days", today).interval == 3

    def test_weekly_uses_reference_weekday(self, today):
        pattern = parse_recurring_description("weekly", today)
        assert pattern.type is PatternType.WEEKLY
        assert pattern.days_of_week == (4,)

    def test_every_n_weeks(self, today):
        pattern = parse_recurring_description("every 2 weeks", today)
        assert pattern.interval == 2
        assert pattern.days_of_week == (4,)

    def test_named_weekdays(self, today):
        pattern = parse_recurring_description("every Mon and Thu", today)
        assert pattern.days_of_week == (1, 4)
        pattern = parse_recurring_description("every mon, wed and fri", today)
        assert pattern.days_of_week == (1, 3, 5)

    def test_monthly(self, today):
        assert parse_recurring_description("monthly", today).day_of_month == 22
        assert parse_recurring_description("every month on the 15th", today).day_of_month == 15
        assert parse_recurring_description("every 2 months", today).interval == 2

    def test_yearly(self, today):
        pattern = parse_recurring_description("yearly", today)
        assert (pattern.month_of_year, pattern.day_of_month) == (1, 22)
        assert parse_recurring_description("every 2 years", today).interval == 2

    def test_unrecognized(self, today):
        assert parse_recurring_description("whenever", today) is None
        assert parse_recurring_description("every month on the 40th", today) is None


class TestFormatRecurringPattern:
    def test_daily(self):
        assert format_recurring_pattern(RecurringPattern(PatternType.DAILY)) == "Daily"
        assert format_recurring_pattern(RecurringPattern(PatternType.DAILY, interval=3)) == "Every 3 days"

    def test_weekly(self):
        pattern = RecurringPattern(PatternType.WEEKLY, days_of_week=(1, 3))
        assert format_recurring_pattern(pattern) == "Weekly on Mon, Wed"

    def test_monthly_ordinals(self):
        def label(day):
            return format_recurring_pattern(RecurringPattern(PatternType.MONTHLY, day_of_month=day))

        assert label(1) == "Monthly on the 1st"
        assert label(22) == "Monthly on the 22nd"
        assert label(11) == "Monthly on the 11th"
        assert label(13) == "Monthly on the 13th"

    def test_yearly(self):
        pattern = RecurringPattern(PatternType.YEARLY, month_of_year=3, day_of_month=5)
        assert format_recurring_pattern(pattern) == "Yearly on Mar 5"

    def test_custom(self):
        pattern = RecurringPattern(PatternType.CUSTOM, days_of_week=(2, 4))
        assert format_recurring_pattern(pattern) == "Custom: Tue, Thu"
        pattern = RecurringPattern(PatternType.CUSTOM, interval=2, days_of_week=(2, 4))
        assert format_recurring_pattern(pattern) == "Custom: Tue, Thu every 2 weeks"
