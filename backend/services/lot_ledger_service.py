"""Service for lot-based share accounting.

Records purchases, sales and splits as typed records paired with one
ledger transaction each, and removes them again. Every compound write
runs inside ``atomic()`` so a failure part-way through leaves no lot
changes behind. Allocation of sales and splits across lots is delegated
to the AllocationService.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from config import settings
from database import atomic
from models import SaleAllocation, StockLot, StockSale, StockSplit, TransferType
from services.allocation_service import AllocationService
from services.exceptions import InconsistentStateError, InvalidArgumentError, NotFoundError
from services.ledger_service import LedgerService
from services.security_service import SecurityService

logger = logging.getLogger(__name__)

CATEGORY_BOUGHT = "Bought"
CATEGORY_SOLD = "Sold"
CATEGORY_SPLIT = "Split"


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class LotLedgerService:
    """Manages purchases, sales, splits and lot queries."""

    # --- Purchases ---

    @staticmethod
    def record_purchase(
        db: Session,
        account_id: str,
        ticker: str,
        purchase_date: date,
        shares: Decimal,
        cost_basis: Decimal,
        overwrite_transaction_id: str | None = None,
    ) -> StockLot:
        """Record a purchase: one withdrawal-internal ledger row plus one lot.

        The ledger amount is ``shares * cost_basis``. With
        ``overwrite_transaction_id`` the existing ledger row is rewritten
        in place instead of a new row being inserted.
        """
        shares = _as_decimal(shares)
        cost_basis = _as_decimal(cost_basis)
        if shares <= 0:
            raise InvalidArgumentError(f"Shares purchased must be positive, got {shares}")
        if cost_basis < 0:
            raise InvalidArgumentError(f"Cost basis must not be negative, got {cost_basis}")

        LedgerService.get_account(db, account_id)
        with atomic(db):
            security = SecurityService.ensure_exists(db, ticker)
            txn = LedgerService.write_transaction(
                db,
                account_id,
                transaction_date=purchase_date,
                amount=shares * cost_basis,
                transfer_type=TransferType.WITHDRAWAL_INTERNAL,
                participant=security.ticker,
                participant_type="payee",
                category=CATEGORY_BOUGHT,
                description=(
                    f"Purchase {shares} shares of {security.ticker} "
                    f"at ${cost_basis} on {purchase_date}"
                ),
                transaction_id=overwrite_transaction_id,
            )
            lot = StockLot(
                account_id=account_id,
                security_id=security.id,
                ledger_transaction_id=txn.id,
                ticker=security.ticker,
                shares_purchased=shares,
                cost_basis_per_share=cost_basis,
                shares_remaining=shares,
            )
            db.add(lot)
            db.flush()

        logger.info(
            "Recorded purchase: %s shares of %s at %s in account %s",
            shares,
            security.ticker,
            cost_basis,
            account_id,
        )
        return lot

    @staticmethod
    def remove_lot(db: Session, lot_id: str) -> None:
        """Delete a lot and its ledger row.

        A lot that sales still draw from cannot be removed; deallocate those
        sales first. Splits that rescaled the lot are replayed without it,
        so their post-split totals stay current.
        """
        lot = LotLedgerService.get_lot(db, lot_id)
        if db.query(SaleAllocation).filter_by(lot_id=lot.id).count():
            raise InconsistentStateError(
                f"Lot {lot_id} has sale allocations; deallocate its sales first"
            )

        with atomic(db):
            txn = lot.ledger_transaction
            effects = AllocationService.unwind(db, lot.account_id, lot.ticker, lot.created_at)
            db.delete(lot)
            db.flush()
            db.delete(txn)
            db.flush()
            AllocationService.replay(db, effects, {lot_id: None})

        logger.info(
            "Removed lot %s (%s shares of %s)",
            lot_id,
            lot.shares_purchased,
            lot.ticker,
        )

    # --- Sales ---

    @staticmethod
    def record_sale_event(
        db: Session,
        account_id: str,
        ticker: str,
        sale_date: date,
        shares: Decimal,
        price: Decimal,
        method: str | None = None,
        overwrite_transaction_id: str | None = None,
    ) -> StockSale:
        """Record a sale and allocate it across the ticker's lots.

        The ledger row is a deposit-internal of ``shares * price``. The
        method defaults to ``settings.DEFAULT_ALLOCATION_METHOD``.
        """
        shares = _as_decimal(shares)
        price = _as_decimal(price)
        if shares <= 0:
            raise InvalidArgumentError(f"Shares sold must be positive, got {shares}")
        if price < 0:
            raise InvalidArgumentError(f"Sale price must not be negative, got {price}")
        method = AllocationService.validate_method(method or settings.DEFAULT_ALLOCATION_METHOD)

        LedgerService.get_account(db, account_id)
        with atomic(db):
            security = SecurityService.ensure_exists(db, ticker)
            LotLedgerService._require_lots(db, account_id, security.ticker)
            txn = LedgerService.write_transaction(
                db,
                account_id,
                transaction_date=sale_date,
                amount=shares * price,
                transfer_type=TransferType.DEPOSIT_INTERNAL,
                participant=security.ticker,
                participant_type="payer",
                category=CATEGORY_SOLD,
                description=(
                    f"Sold {shares} shares of {security.ticker} "
                    f"at ${price} on {sale_date}"
                ),
                transaction_id=overwrite_transaction_id,
            )
            sale = StockSale(
                account_id=account_id,
                security_id=security.id,
                ledger_transaction_id=txn.id,
                ticker=security.ticker,
                shares_sold=shares,
                sale_price_per_share=price,
                allocation_method=method,
            )
            db.add(sale)
            db.flush()
            AllocationService.allocate_sale(db, sale, method)

        logger.info(
            "Recorded sale: %s shares of %s at %s in account %s",
            shares,
            security.ticker,
            price,
            account_id,
        )
        return sale

    @staticmethod
    def remove_sale_event(db: Session, sale_id: str) -> None:
        """Return the sale's shares to their lots, then delete it and its ledger row.

        Splits and sales applied after this sale are unwound first and
        replayed once it is gone.
        """
        sale = LotLedgerService.get_sale(db, sale_id)
        with atomic(db):
            txn = sale.ledger_transaction
            effects = AllocationService.unwind(
                db, sale.account_id, sale.ticker, AllocationService.applied_at(db, sale)
            )
            db.delete(sale)
            db.flush()
            db.delete(txn)
            db.flush()
            AllocationService.replay(db, [e for e in effects if e.record is not sale])
        logger.info("Removed sale %s (%s shares of %s)", sale_id, sale.shares_sold, sale.ticker)

    # --- Splits ---

    @staticmethod
    def record_split_event(
        db: Session,
        account_id: str,
        ticker: str,
        split_date: date,
        split_factor: Decimal,
        overwrite_transaction_id: str | None = None,
    ) -> StockSplit:
        """Record a split and rescale every lot of the ticker.

        The ledger row is a zero-sum change of amount 0 whose
        ``ancillary_numeric`` holds the total shares remaining after the split.
        """
        split_factor = _as_decimal(split_factor)
        if split_factor <= 0:
            raise InvalidArgumentError(f"Split factor must be positive, got {split_factor}")

        LedgerService.get_account(db, account_id)
        with atomic(db):
            security = SecurityService.ensure_exists(db, ticker)
            LotLedgerService._require_lots(db, account_id, security.ticker)
            txn = LedgerService.write_transaction(
                db,
                account_id,
                transaction_date=split_date,
                amount=Decimal("0"),
                transfer_type=TransferType.ZERO_SUM_CHANGE,
                participant=security.ticker,
                participant_type="payer",
                category=CATEGORY_SPLIT,
                description=f"Split {security.ticker} by {split_factor} on {split_date}",
                transaction_id=overwrite_transaction_id,
            )
            split = StockSplit(
                account_id=account_id,
                security_id=security.id,
                ledger_transaction_id=txn.id,
                ticker=security.ticker,
                split_factor=split_factor,
            )
            db.add(split)
            db.flush()
            txn.ancillary_numeric = AllocationService.allocate_split(db, split)
            db.flush()

        logger.info(
            "Recorded split: %s by %s in account %s",
            security.ticker,
            split_factor,
            account_id,
        )
        return split

    @staticmethod
    def remove_split_event(db: Session, split_id: str) -> None:
        """Undo the split on every lot, then delete it and its ledger row.

        Sales and splits applied after this split are unwound first and
        replayed against the unsplit lots.
        """
        split = LotLedgerService.get_split(db, split_id)
        with atomic(db):
            txn = split.ledger_transaction
            effects = AllocationService.unwind(
                db, split.account_id, split.ticker, AllocationService.applied_at(db, split)
            )
            db.delete(split)
            db.flush()
            db.delete(txn)
            db.flush()
            AllocationService.replay(db, [e for e in effects if e.record is not split])
        logger.info("Removed split %s", split_id)

    # --- Lookups ---

    @staticmethod
    def get_lot(db: Session, lot_id: str) -> StockLot:
        lot = db.query(StockLot).filter_by(id=lot_id).first()
        if not lot:
            raise NotFoundError(f"Lot not found: {lot_id}", entity="lot", entity_id=lot_id)
        return lot

    @staticmethod
    def get_sale(db: Session, sale_id: str) -> StockSale:
        sale = db.query(StockSale).filter_by(id=sale_id).first()
        if not sale:
            raise NotFoundError(f"Sale not found: {sale_id}", entity="sale", entity_id=sale_id)
        return sale

    @staticmethod
    def get_split(db: Session, split_id: str) -> StockSplit:
        split = db.query(StockSplit).filter_by(id=split_id).first()
        if not split:
            raise NotFoundError(f"Split not found: {split_id}", entity="split", entity_id=split_id)
        return split

    # --- Queries ---

    @staticmethod
    def get_lots_for_ticker(
        db: Session,
        account_id: str,
        ticker: str,
        descending: bool = False,
        include_closed: bool = True,
    ) -> list[StockLot]:
        """Get lots for a ticker in an account, ordered by purchase date."""
        lots = AllocationService.ordered_lots(db, account_id, ticker.upper(), descending)
        if not include_closed:
            lots = [lot for lot in lots if lot.shares_remaining > 0]
        return lots

    @staticmethod
    def get_lots_for_account(
        db: Session, account_id: str, include_closed: bool = True
    ) -> list[StockLot]:
        """Get all lots for an account, grouped by ticker, oldest purchase first."""
        lots = []
        for ticker in LotLedgerService.get_tickers(db, account_id):
            lots.extend(
                LotLedgerService.get_lots_for_ticker(
                    db, account_id, ticker, include_closed=include_closed
                )
            )
        return lots

    @staticmethod
    def get_sales_for_account(db: Session, account_id: str) -> list[StockSale]:
        return (
            db.query(StockSale)
            .options(joinedload(StockSale.ledger_transaction), joinedload(StockSale.allocations))
            .filter_by(account_id=account_id)
            .all()
        )

    @staticmethod
    def get_splits_for_account(db: Session, account_id: str) -> list[StockSplit]:
        return (
            db.query(StockSplit)
            .options(joinedload(StockSplit.ledger_transaction))
            .filter_by(account_id=account_id)
            .all()
        )

    @staticmethod
    def get_tickers(db: Session, account_id: str) -> list[str]:
        """Distinct tickers ever purchased in an account, alphabetically."""
        rows = (
            db.query(StockLot.ticker)
            .filter_by(account_id=account_id)
            .distinct()
            .order_by(StockLot.ticker.asc())
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def get_positions(db: Session, account_id: str) -> dict[str, Decimal]:
        """Shares still held per ticker, from the lots' remaining quantities."""
        positions: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        for lot in db.query(StockLot).filter_by(account_id=account_id).all():
            positions[lot.ticker] += lot.shares_remaining
        return {ticker: shares for ticker, shares in sorted(positions.items()) if shares > 0}

    @staticmethod
    def get_lot_summary(
        db: Session,
        account_id: str,
        ticker: str,
        market_price: Decimal | None = None,
    ) -> dict:
        """Compute an aggregated lot summary for a ticker.

        Args:
            db: Database session
            account_id: Account ID
            ticker: Ticker symbol
            market_price: Current market price for unrealized gain/loss

        Returns:
            Dict matching LotSummaryResponse fields.
        """
        ticker = ticker.upper()
        lots = LotLedgerService.get_lots_for_ticker(db, account_id, ticker, include_closed=False)
        if not lots and not LotLedgerService.get_lots_for_ticker(db, account_id, ticker):
            raise NotFoundError(f"No lots for ticker {ticker} in account {account_id}")

        lotted_quantity = sum((lot.shares_remaining for lot in lots), Decimal("0"))
        total_cost_basis = sum(
            (lot.cost_basis_per_share * lot.shares_remaining for lot in lots),
            Decimal("0"),
        )

        unrealized_gain_loss = None
        if market_price is not None and lotted_quantity > 0:
            unrealized_gain_loss = market_price * lotted_quantity - total_cost_basis

        allocations = (
            db.query(SaleAllocation)
            .join(StockSale, SaleAllocation.sale_id == StockSale.id)
            .filter(StockSale.account_id == account_id, StockSale.ticker == ticker)
            .all()
        )
        realized_gain_loss = Decimal("0")
        for allocation in allocations:
            realized_gain_loss += (
                allocation.sale.sale_price_per_share - allocation.cost_basis_per_share
            ) * allocation.quantity

        security = lots[0].security if lots else None
        return {
            "ticker": ticker,
            "security_name": security.name if security else None,
            "lotted_quantity": lotted_quantity,
            "lot_count": len(lots),
            "total_cost_basis": total_cost_basis if lots else None,
            "unrealized_gain_loss": unrealized_gain_loss,
            "realized_gain_loss": realized_gain_loss,
        }

    @staticmethod
    def _require_lots(db: Session, account_id: str, ticker: str) -> None:
        if not db.query(StockLot).filter_by(account_id=account_id, ticker=ticker).count():
            raise NotFoundError(
                f"No lots for ticker {ticker} in account {account_id}",
                entity="ticker",
                entity_id=ticker,
            )
