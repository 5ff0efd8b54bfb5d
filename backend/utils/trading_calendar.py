"""US equity market calendar used to resolve quote dates.

Holidays are taken on their nominal dates; no observed-day shifting is
applied when a fixed holiday lands on a weekend (it is a non-trading day
either way).
"""

from datetime import date, timedelta
from functools import lru_cache

from pandas.tseries.holiday import (
    AbstractHolidayCalendar,
    Holiday,
    USLaborDay,
    USMartinLutherKingJr,
    USMemorialDay,
    USPresidentsDay,
    USThanksgivingDay,
)


class USMarketHolidayCalendar(AbstractHolidayCalendar):
    """Full-day exchange closures. Good Friday is not modelled."""

    rules = [
        Holiday("New Year's Day", month=1, day=1),
        USMartinLutherKingJr,
        USPresidentsDay,
        USMemorialDay,
        Holiday("Juneteenth", month=6, day=19),
        Holiday("Independence Day", month=7, day=4),
        USLaborDay,
        USThanksgivingDay,
        Holiday("Christmas Day", month=12, day=25),
    ]


_CALENDAR = USMarketHolidayCalendar()


@lru_cache(maxsize=None)
def market_holidays(year: int) -> frozenset[date]:
    """Return the exchange holidays for a calendar year."""
    holidays = _CALENDAR.holidays(start=f"{year}-01-01", end=f"{year}-12-31")
    return frozenset(ts.date() for ts in holidays)


def is_market_holiday(day: date) -> bool:
    return day in market_holidays(day.year)


def is_trading_day(day: date) -> bool:
    """True when the market is open: a weekday that is not a holiday."""
    return day.weekday() < 5 and not is_market_holiday(day)


def previous_trading_day(day: date) -> date:
    """Return ``day`` if it is a trading day, else the most recent one before it."""
    while not is_trading_day(day):
        day -= timedelta(days=1)
    return day
