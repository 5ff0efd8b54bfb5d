"""Performance service - time-weighted rate of return.

The range is cut into sub-periods at every date that has ledger
activity. Each sub-period's holding-period return compares the closing
value with the opening value plus the external cash that arrived during
it, so deposits and withdrawals do not count as performance. The
sub-period returns are chained geometrically.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

import numpy as np
from sqlalchemy.orm import Session

from models import LedgerTransaction, TransferType
from services.exceptions import InvalidArgumentError, NoValidPeriodsError
from services.ledger_service import LedgerService
from services.valuation_service import ValuationService

logger = logging.getLogger(__name__)

DEFAULT_PERIODS = ["1M", "3M", "QTD", "YTD", "1Y", "3Y", "LQ", "LY"]


@dataclass
class SubPeriodReturn:
    """One link in the return chain."""

    end_date: date
    start_value: Decimal
    cash_flow: Decimal
    end_value: Decimal
    rate: Decimal


@dataclass
class PeriodResult:
    """Return calculation for a single named period."""

    period: str  # "1M", "YTD", etc.
    twr: Decimal | None
    start_date: date
    end_date: date
    has_sufficient_data: bool


class PerformanceService:
    """Computes time-weighted returns for an account."""

    def __init__(self, valuation_service: Optional[ValuationService] = None):
        self._valuation_service = valuation_service

    @property
    def valuation_service(self) -> ValuationService:
        if self._valuation_service is None:
            self._valuation_service = ValuationService()
        return self._valuation_service

    def time_weighted_return(
        self, db: Session, account_id: str, start: date, end: date
    ) -> Decimal:
        """TWR over ``[start, end]`` as a percentage (10 means +10%).

        Raises:
            NotFoundError: the account does not exist.
            InvalidArgumentError: ``start`` is after ``end``.
            NoValidPeriodsError: no sub-period had a non-zero base.
            UpstreamUnavailableError: a closing price could not be fetched.
        """
        if start > end:
            raise InvalidArgumentError(f"Start date {start} is after end date {end}")
        LedgerService.get_account(db, account_id)

        valuation = self.valuation_service
        start_value = valuation.value_as_of(db, account_id, start - timedelta(days=1))
        final_value = valuation.value_as_of(db, account_id, end)
        transactions = LedgerService.get_transactions_between(db, account_id, start, end)

        if not transactions:
            if start_value == 0:
                raise NoValidPeriodsError(
                    f"Account {account_id} had no value before {start}"
                )
            return (final_value - start_value) / start_value * 100

        periods = self.sub_period_returns(
            db, account_id, transactions, start_value, final_value
        )
        if not periods:
            raise NoValidPeriodsError(
                f"No sub-period with a non-zero base for account {account_id} "
                f"between {start} and {end}"
            )
        return chain_returns([p.rate for p in periods])

    def sub_period_returns(
        self,
        db: Session,
        account_id: str,
        transactions: list[LedgerTransaction],
        start_value: Decimal,
        final_value: Decimal,
    ) -> list[SubPeriodReturn]:
        """Walk date-ordered transactions and close a sub-period at each date change.

        The last sub-period closes at ``final_value``. A sub-period whose
        opening value plus cash flow is zero has no defined return; it is
        skipped and the next one opens at its closing value.
        """
        results: list[SubPeriodReturn] = []
        cash_flow = Decimal("0")
        opening = start_value

        for i, txn in enumerate(transactions):
            cash_flow += signed_cash_flow(txn)
            is_last = i == len(transactions) - 1
            if not is_last and transactions[i + 1].date == txn.date:
                continue

            if is_last:
                closing = final_value
            else:
                closing = self.valuation_service.value_as_of(db, account_id, txn.date)

            rate = holding_period_return(opening, cash_flow, closing)
            if rate is None:
                logger.warning(
                    "Skipping sub-period ending %s for account %s: zero base",
                    txn.date,
                    account_id,
                )
            else:
                results.append(SubPeriodReturn(
                    end_date=txn.date,
                    start_value=opening,
                    cash_flow=cash_flow,
                    end_value=closing,
                    rate=rate,
                ))
            cash_flow = Decimal("0")
            opening = closing

        return results

    def get_period_returns(
        self,
        db: Session,
        account_id: str,
        periods: list[str] | None = None,
        end_date: date | None = None,
    ) -> list[PeriodResult]:
        """TWR for each named period ending at ``end_date`` (default yesterday).

        Periods without enough history are reported with ``twr=None``.
        """
        periods = periods or DEFAULT_PERIODS
        end_date = end_date or date.today() - timedelta(days=1)
        LedgerService.get_account(db, account_id)

        results = []
        for period in periods:
            try:
                start, end = get_period_dates(period, end_date)
            except ValueError:
                logger.warning("Unknown period %s, skipping", period)
                continue

            # Period start dates are the baseline day; the return runs from the day after
            try:
                twr = self.time_weighted_return(db, account_id, start + timedelta(days=1), end)
            except NoValidPeriodsError:
                twr = None

            results.append(PeriodResult(
                period=period,
                twr=twr,
                start_date=start,
                end_date=end,
                has_sufficient_data=twr is not None,
            ))
        return results


# ------------------------------------------------------------------
# Module-level helpers
# ------------------------------------------------------------------

def signed_cash_flow(txn: LedgerTransaction) -> Decimal:
    """Return the external cash flow of a ledger row (positive = money in).

    Internal transfers and zero-sum changes move value within the account
    and are not cash flows.
    """
    kind = TransferType(txn.transfer_type)
    if kind == TransferType.DEPOSIT_EXTERNAL:
        return txn.amount
    elif kind == TransferType.WITHDRAWAL_EXTERNAL:
        return -txn.amount
    return Decimal("0")


def holding_period_return(
    start_value: Decimal, cash_flow: Decimal, end_value: Decimal
) -> Decimal | None:
    """``(end - (cf + start)) / (cf + start)``, or None when the base is zero."""
    base = cash_flow + start_value
    if base == 0:
        return None
    return (end_value - base) / base


def chain_returns(rates: list[Decimal]) -> Decimal:
    """Geometrically link holding-period returns into a percentage."""
    growth = np.prod(np.array([1.0 + float(r) for r in rates]))
    return Decimal(str(round(float((growth - 1.0) * 100.0), 8)))


def get_period_dates(period: str, end_date: date) -> tuple[date, date]:
    """Map a period string to (start_date, end_date).

    Start dates are the last day *before* the period (e.g. YTD starts
    Dec 31, QTD starts on the last day of the prior quarter) because the
    start date's value is the opening baseline.
    """
    if period == "1M":
        return _subtract_months(end_date, 1), end_date
    elif period == "3M":
        return _subtract_months(end_date, 3), end_date
    elif period == "QTD":
        return _last_day_of_prev_quarter(end_date), end_date
    elif period == "YTD":
        return date(end_date.year - 1, 12, 31), end_date
    elif period == "1Y":
        return _subtract_months(end_date, 12), end_date
    elif period == "3Y":
        return _subtract_months(end_date, 36), end_date
    elif period == "LQ":
        q_start, q_end = _last_quarter(end_date)
        return q_start - timedelta(days=1), q_end
    elif period == "LY":
        prev_year = end_date.year - 1
        return date(prev_year - 1, 12, 31), date(prev_year, 12, 31)
    else:
        raise ValueError(f"Unknown period: {period}")


def _last_day_of_prev_quarter(ref: date) -> date:
    """Return the last day of the quarter before the one containing *ref*."""
    current_q = (ref.month - 1) // 3 + 1
    if current_q == 1:
        return date(ref.year - 1, 12, 31)
    elif current_q == 2:
        return date(ref.year, 3, 31)
    elif current_q == 3:
        return date(ref.year, 6, 30)
    else:  # Q4
        return date(ref.year, 9, 30)


def _last_quarter(ref: date) -> tuple[date, date]:
    """Return (start, end) of the most recent complete calendar quarter."""
    current_q = (ref.month - 1) // 3 + 1
    if current_q == 1:
        return date(ref.year - 1, 10, 1), date(ref.year - 1, 12, 31)
    elif current_q == 2:
        return date(ref.year, 1, 1), date(ref.year, 3, 31)
    elif current_q == 3:
        return date(ref.year, 4, 1), date(ref.year, 6, 30)
    else:  # Q4
        return date(ref.year, 7, 1), date(ref.year, 9, 30)


def _subtract_months(d: date, months: int) -> date:
    """Subtract months from a date, clamping to valid day."""
    year = d.year
    month = d.month - months
    while month <= 0:
        month += 12
        year -= 1
    max_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, max_day))
