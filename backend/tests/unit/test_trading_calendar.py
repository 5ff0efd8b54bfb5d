"""Tests for the market holiday calendar."""

from datetime import date

import pytest

from utils.trading_calendar import (
    USMarketHolidayCalendar,
    is_market_holiday,
    is_trading_day,
    market_holidays,
    previous_trading_day,
)


class TestMarketHolidays:
    @pytest.mark.parametrize(
        "holiday",
        [
            date(2024, 1, 1),  # New Year's Day
            date(2024, 1, 15),  # MLK Day
            date(2024, 2, 19),  # Presidents' Day
            date(2024, 5, 27),  # Memorial Day
            date(2024, 6, 19),  # Juneteenth
            date(2024, 7, 4),  # Independence Day
            date(2024, 9, 2),  # Labor Day
            date(2024, 11, 28),  # Thanksgiving
            date(2024, 12, 25),  # Christmas
        ],
    )
    def test_2024_holidays(self, holiday):
        assert is_market_holiday(holiday)
        assert not is_trading_day(holiday)

    def test_nine_holidays_a_year(self):
        assert len(market_holidays(2025)) == 9

    def test_floating_holidays_in_another_year(self):
        holidays = market_holidays(2031)
        assert date(2031, 5, 26) in holidays  # last Monday of May
        assert date(2031, 11, 27) in holidays  # fourth Thursday of November

    def test_fixed_holiday_on_weekend_is_not_observed(self):
        # July 4th 2026 is a Saturday; the Friday before stays open
        assert date(2026, 7, 4) in market_holidays(2026)
        assert is_trading_day(date(2026, 7, 3))

    def test_calendar_is_a_pandas_holiday_calendar(self):
        holidays = USMarketHolidayCalendar().holidays(start="2024-01-01", end="2024-12-31")
        assert {ts.date() for ts in holidays} == market_holidays(2024)

    def test_ordinary_weekday(self):
        assert is_trading_day(date(2024, 3, 13))


class TestPreviousTradingDay:
    def test_trading_day_is_unchanged(self):
        assert previous_trading_day(date(2024, 3, 13)) == date(2024, 3, 13)

    def test_weekend(self):
        assert previous_trading_day(date(2024, 3, 17)) == date(2024, 3, 15)

    def test_monday_holiday_skips_weekend(self):
        assert previous_trading_day(date(2024, 1, 15)) == date(2024, 1, 12)

    def test_new_years_day(self):
        assert previous_trading_day(date(2025, 1, 1)) == date(2024, 12, 31)
