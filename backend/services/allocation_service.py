"""Allocation engine - applies sales and splits to stock lots, reversibly.

Every effect on a lot is recorded as an allocation row so it can be
undone exactly: a sale allocation remembers the quantity it took from a
lot, a split allocation remembers that the lot was rescaled.

Effects only reverse cleanly against the lot state they were applied to.
To take out or change an effect that later effects were stacked on,
``unwind`` peels the ticker's effects off newest first and ``replay``
puts the survivors back in their original order.

Method labels follow the convention this ledger has always used:
``"LIFO"`` consumes lots oldest purchase first and ``"FIFO"`` newest
purchase first. Stored sales carry the label, so it is kept as-is.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from models import LedgerTransaction, SaleAllocation, SplitAllocation, StockLot, StockSale, StockSplit
from services.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

ALLOCATION_METHODS = ("LIFO", "FIFO")


def _naive(stamp: datetime) -> datetime:
    # SQLite hands back naive datetimes; freshly flushed rows still hold aware ones
    return stamp.replace(tzinfo=None)


@dataclass
class AppliedEffect:
    """A sale or split taken off the lots by ``unwind``."""

    applied_at: datetime
    sale: StockSale | None = None
    split: StockSplit | None = None
    lots: list[StockLot] = field(default_factory=list)

    @property
    def record(self) -> StockSale | StockSplit:
        return self.sale if self.sale is not None else self.split


class AllocationService:
    """Allocates sales and splits across lots and reverses them."""

    @staticmethod
    def validate_method(method: str) -> str:
        """Return the normalized method label or raise InvalidArgumentError."""
        normalized = (method or "").strip().upper()
        if normalized not in ALLOCATION_METHODS:
            raise InvalidArgumentError(
                f"Unknown allocation method: {method!r}. "
                f"Expected one of {', '.join(ALLOCATION_METHODS)}"
            )
        return normalized

    @staticmethod
    def ordered_lots(
        db: Session, account_id: str, ticker: str, descending: bool = False
    ) -> list[StockLot]:
        """All lots of a ticker in an account, ordered by purchase date.

        Lots bought on the same date are ordered by when they were recorded,
        then by id, in the same direction as the date ordering.
        """
        columns = (LedgerTransaction.date, StockLot.created_at, StockLot.id)
        order = [c.desc() if descending else c.asc() for c in columns]
        return (
            db.query(StockLot)
            .join(LedgerTransaction, StockLot.ledger_transaction_id == LedgerTransaction.id)
            .options(joinedload(StockLot.ledger_transaction))
            .filter(StockLot.account_id == account_id, StockLot.ticker == ticker)
            .order_by(*order)
            .all()
        )

    # --- Sales ---

    @staticmethod
    def allocate_sale(
        db: Session, sale: StockSale, method: str
    ) -> list[SaleAllocation]:
        """Draw ``sale.shares_sold`` from the ticker's lots.

        Each lot with shares left gives up ``min(shares_remaining, still
        needed)``. When the lots run out first the sale stays partially
        covered; the shortfall is logged, not raised. Each allocation
        keeps the lot's cost basis at the time, so later splits do not
        change the gain realized on it.
        """
        method = AllocationService.validate_method(method)
        lots = AllocationService.ordered_lots(
            db, sale.account_id, sale.ticker, descending=(method == "FIFO")
        )

        left_to_allocate = Decimal(sale.shares_sold)
        allocations: list[SaleAllocation] = []
        for lot in lots:
            if left_to_allocate <= 0:
                break
            if lot.shares_remaining <= 0:
                continue

            quantity = min(lot.shares_remaining, left_to_allocate)
            lot.shares_remaining -= quantity
            left_to_allocate -= quantity

            allocation = SaleAllocation(
                lot=lot,
                sale=sale,
                quantity=quantity,
                cost_basis_per_share=lot.cost_basis_per_share,
            )
            db.add(allocation)
            allocations.append(allocation)

        db.flush()

        if left_to_allocate > 0:
            logger.warning(
                "Sale %s of %s %s only partially allocated: %s shares uncovered",
                sale.id,
                sale.shares_sold,
                sale.ticker,
                left_to_allocate,
            )
        logger.info(
            "Allocated sale %s (%s) across %d lots",
            sale.id,
            method,
            len(allocations),
        )
        return allocations

    @staticmethod
    def deallocate_sale(db: Session, sale: StockSale) -> Decimal:
        """Return every allocated share of a sale to its lot.

        Returns the number of shares restored. A sale with no allocations
        left is a no-op. Only exact when no split was applied to those
        lots after the sale; ``unwind`` handles the general case.
        """
        allocations = db.query(SaleAllocation).filter_by(sale_id=sale.id).all()
        restored = Decimal("0")
        for allocation in allocations:
            allocation.lot.shares_remaining += allocation.quantity
            restored += allocation.quantity
            db.delete(allocation)
        db.flush()
        db.expire(sale, ["allocations"])
        for allocation in allocations:
            db.expire(allocation.lot, ["sale_allocations"])
        logger.info(
            "Deallocated sale %s: %s shares restored to %d lots",
            sale.id,
            restored,
            len(allocations),
        )
        return restored

    # --- Splits ---

    @staticmethod
    def allocate_split(db: Session, split: StockSplit) -> Decimal:
        """Rescale every lot of the ticker, exhausted lots included.

        Returns the total shares remaining across the ticker's lots after
        the split.
        """
        factor = Decimal(split.split_factor)
        if factor <= 0:
            raise InvalidArgumentError(f"Split factor must be positive, got {factor}")

        lots = AllocationService.ordered_lots(db, split.account_id, split.ticker)
        return AllocationService._apply_split(db, split, lots)

    @staticmethod
    def deallocate_split(db: Session, split: StockSplit) -> None:
        """Undo a split on every lot it touched, then delete the split.

        Only exact when nothing was applied to those lots after the split;
        ``unwind`` handles the general case.
        """
        AllocationService._unapply_split(db, split)
        db.delete(split)
        db.flush()

    # --- Unwind and replay ---

    @staticmethod
    def applied_at(db: Session, record: StockSale | StockSplit) -> datetime:
        """When a sale or split took effect: its earliest allocation, else its creation."""
        if isinstance(record, StockSale):
            query = db.query(SaleAllocation.created_at).filter_by(sale_id=record.id)
        else:
            query = db.query(SplitAllocation.created_at).filter_by(split_id=record.id)
        stamps = [_naive(row[0]) for row in query.all()]
        return min(stamps) if stamps else _naive(record.created_at)

    @staticmethod
    def unwind(
        db: Session, account_id: str, ticker: str, since: datetime
    ) -> list[AppliedEffect]:
        """Take every sale and split applied to a ticker's lots at or after ``since`` off the lots.

        Effects are reversed newest first, so each one is undone against
        the lot state it was applied to. Sales and splits themselves are
        kept. Returns the effects in the order they were applied.
        """
        since = _naive(since)
        effects: dict[tuple[str, str], AppliedEffect] = {}

        sale_allocations = (
            db.query(SaleAllocation)
            .join(StockSale, SaleAllocation.sale_id == StockSale.id)
            .filter(
                StockSale.account_id == account_id,
                StockSale.ticker == ticker,
                SaleAllocation.created_at >= since,
            )
            .all()
        )
        for allocation in sale_allocations:
            stamp = _naive(allocation.created_at)
            effect = effects.setdefault(
                ("sale", allocation.sale_id),
                AppliedEffect(applied_at=stamp, sale=allocation.sale),
            )
            effect.applied_at = min(effect.applied_at, stamp)

        split_allocations = (
            db.query(SplitAllocation)
            .join(StockSplit, SplitAllocation.split_id == StockSplit.id)
            .filter(
                StockSplit.account_id == account_id,
                StockSplit.ticker == ticker,
                SplitAllocation.created_at >= since,
            )
            .all()
        )
        for allocation in split_allocations:
            stamp = _naive(allocation.created_at)
            effect = effects.setdefault(
                ("split", allocation.split_id),
                AppliedEffect(applied_at=stamp, split=allocation.split),
            )
            effect.applied_at = min(effect.applied_at, stamp)
            effect.lots.append(allocation.lot)

        ordered = sorted(effects.values(), key=lambda e: e.applied_at)
        for effect in reversed(ordered):
            if effect.sale is not None:
                AllocationService.deallocate_sale(db, effect.sale)
            else:
                AllocationService._unapply_split(db, effect.split)

        if ordered:
            logger.info(
                "Unwound %d effects on %s in account %s", len(ordered), ticker, account_id
            )
        return ordered

    @staticmethod
    def replay(
        db: Session,
        effects: list[AppliedEffect],
        replaced_lots: dict[str, StockLot | None] | None = None,
    ) -> None:
        """Re-apply unwound effects in their original order.

        Sales are re-allocated with their recorded method. Splits rescale
        the lots they touched before; ``replaced_lots`` maps the id of a
        deleted lot to the lot standing in for it, or to None to drop it.
        """
        replaced_lots = replaced_lots or {}
        for effect in effects:
            if effect.sale is not None:
                AllocationService.allocate_sale(db, effect.sale, effect.sale.allocation_method)
                continue
            lots = []
            for lot in effect.lots:
                lot = replaced_lots.get(lot.id, lot)
                if lot is not None:
                    lots.append(lot)
            AllocationService._apply_split(db, effect.split, lots)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_split(db: Session, split: StockSplit, lots: list[StockLot]) -> Decimal:
        """Rescale ``lots`` by the split and refresh its post-split share total."""
        factor = Decimal(split.split_factor)
        total_remaining = Decimal("0")
        for lot in lots:
            lot.shares_remaining = lot.shares_remaining * factor
            lot.cost_basis_per_share = lot.cost_basis_per_share / factor
            total_remaining += lot.shares_remaining
            db.add(SplitAllocation(split=split, lot=lot))

        if split.ledger_transaction is not None:
            split.ledger_transaction.ancillary_numeric = total_remaining
        db.flush()
        logger.info(
            "Applied %s split of %s to %d lots (%s shares remaining)",
            factor,
            split.ticker,
            len(lots),
            total_remaining,
        )
        return total_remaining

    @staticmethod
    def _unapply_split(db: Session, split: StockSplit) -> None:
        factor = Decimal(split.split_factor)
        allocations = db.query(SplitAllocation).filter_by(split_id=split.id).all()
        for allocation in allocations:
            lot = allocation.lot
            lot.shares_remaining = lot.shares_remaining / factor
            lot.cost_basis_per_share = lot.cost_basis_per_share * factor
            db.delete(allocation)
        db.flush()
        db.expire(split, ["allocations"])
        for allocation in allocations:
            db.expire(allocation.lot, ["split_allocations"])
        logger.info(
            "Reversed %s split of %s on %d lots",
            factor,
            split.ticker,
            len(allocations),
        )
