#!/usr/bin/env python
"""Print an account's positions, lots and time-weighted returns.

Usage:
    python -m scripts.report_returns --list-accounts              # show account IDs
    python -m scripts.report_returns <account_id>                 # all named periods
    python -m scripts.report_returns <account_id> --periods 1M,YTD
    python -m scripts.report_returns <account_id> --start 2024-01-02 --end 2024-06-28
    python -m scripts.report_returns <account_id> --verbose       # sub-period breakdown
"""

import argparse
from datetime import date, timedelta
from decimal import Decimal

from database import get_session_local
from logging_config import setup_logging
from models import Account
from services.exceptions import LedgerError, NoValidPeriodsError
from services.ledger_service import LedgerService
from services.lot_ledger_service import LotLedgerService
from services.performance_service import DEFAULT_PERIODS, PerformanceService


def _fmt_pct(val: Decimal | None) -> str:
    if val is None:
        return "  --  "
    sign = "+" if val >= 0 else ""
    return f"{sign}{float(val):.4f}%"


def _fmt_money(val: Decimal | None) -> str:
    if val is None:
        return "--"
    return f"${float(val):>14,.2f}"


def _separator(char: str = "-", width: int = 80) -> str:
    return char * width


def list_accounts(db):
    accounts = db.query(Account).order_by(Account.name).all()
    if not accounts:
        print("No accounts found.")
        return

    print(f"\n{'Account Name':<40} {'Status':<10} {'ID'}")
    print(_separator())
    for acc in accounts:
        status = "active" if acc.is_active else "inactive"
        print(f"{acc.name:<40} {status:<10} {acc.id}")


def print_lots(db, account_id: str):
    positions = LotLedgerService.get_positions(db, account_id)
    print(f"\n{'Ticker':<10} {'Shares':>16}")
    print(_separator())
    for ticker, shares in positions.items():
        print(f"{ticker:<10} {float(shares):>16,.4f}")

    print(f"\n{'Ticker':<10} {'Bought':<12} {'Purchased':>14} {'Remaining':>14} {'Cost/sh':>12}")
    print(_separator())
    for lot in LotLedgerService.get_lots_for_account(db, account_id):
        print(
            f"{lot.ticker:<10} {lot.purchase_date.isoformat():<12} "
            f"{float(lot.shares_purchased):>14,.4f} {float(lot.shares_remaining):>14,.4f} "
            f"{float(lot.cost_basis_per_share):>12,.4f}"
        )


def print_sub_periods(db, service: PerformanceService, account_id: str, start: date, end: date):
    """Show the chain of sub-period returns behind one TWR figure."""
    valuation = service.valuation_service
    start_value = valuation.value_as_of(db, account_id, start - timedelta(days=1))
    final_value = valuation.value_as_of(db, account_id, end)
    txns = LedgerService.get_transactions_between(db, account_id, start, end)

    print(f"\nSub-periods {start} to {end}  (opening {_fmt_money(start_value).strip()})")
    print(f"{'Ends':<12} {'Start value':>16} {'Cash flow':>16} {'End value':>16} {'Return':>12}")
    print(_separator())
    for p in service.sub_period_returns(db, account_id, txns, start_value, final_value):
        print(
            f"{p.end_date.isoformat():<12} {_fmt_money(p.start_value)} "
            f"{_fmt_money(p.cash_flow)} {_fmt_money(p.end_value)} {_fmt_pct(p.rate * 100):>12}"
        )


def print_returns(
    db, service: PerformanceService, account_id: str, periods: list[str] | None, verbose: bool
):
    print(f"\n{'Period':<8} {'From':<12} {'To':<12} {'TWR':>12}")
    print(_separator())
    for result in service.get_period_returns(db, account_id, periods):
        print(
            f"{result.period:<8} {result.start_date.isoformat():<12} "
            f"{result.end_date.isoformat():<12} {_fmt_pct(result.twr):>12}"
        )
        if verbose and result.has_sufficient_data:
            print_sub_periods(
                db, service, account_id, result.start_date + timedelta(days=1), result.end_date
            )


def main():
    parser = argparse.ArgumentParser(
        description="Report lots and time-weighted returns for an account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("account_id", nargs="?", help="Account UUID")
    parser.add_argument(
        "--list-accounts", action="store_true", help="List all accounts with IDs"
    )
    parser.add_argument(
        "--periods",
        help=f"Comma-separated periods (default: {','.join(DEFAULT_PERIODS)})",
    )
    parser.add_argument("--start", type=date.fromisoformat, help="Explicit range start")
    parser.add_argument("--end", type=date.fromisoformat, help="Explicit range end")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show sub-periods and debug logging"
    )

    args = parser.parse_args()
    setup_logging("DEBUG" if args.verbose else None)

    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        if args.list_accounts:
            list_accounts(db)
            return
        if not args.account_id:
            parser.error("account_id is required unless --list-accounts is given")

        account = LedgerService.get_account(db, args.account_id)
        print(f"\n{account.name}  ({account.id})")
        print(_separator("="))
        print_lots(db, account.id)

        service = PerformanceService()
        if args.start or args.end:
            end = args.end or date.today() - timedelta(days=1)
            start = args.start or end.replace(month=1, day=1)
            try:
                twr = service.time_weighted_return(db, account.id, start, end)
            except NoValidPeriodsError as e:
                print(f"\nNo return for {start} to {end}: {e}")
            else:
                print(f"\nTWR {start} to {end}: {_fmt_pct(twr)}")
                if args.verbose:
                    print_sub_periods(db, service, account.id, start, end)
        else:
            periods = [p.strip().upper() for p in args.periods.split(",")] if args.periods else None
            print_returns(db, service, account.id, periods, args.verbose)
    except LedgerError as e:
        raise SystemExit(f"error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
