"""Turns stored purchases and sale lines into costing events.

Purchases are read without a start bound and without an account filter, and
sales are read for every account the user owns, because stock bought or sold
before a report window still shapes the average cost inside it. Only the
replay decides which sales count towards a report.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger.core.config import settings
from ledger.core.dates import as_naive_utc
from ledger.models.ledger import EntryType, InventoryPurchase, LedgerEntry

logger = logging.getLogger(__name__)


def safe_number(value) -> float:
    """Coerce to a finite float; anything else becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass(frozen=True)
class PurchaseEvent:
    product_id: int
    product_name: str
    timestamp: datetime
    quantity: float
    total_cost: float


@dataclass(frozen=True)
class SaleEvent:
    product_id: int
    product_name: str
    account_id: int
    timestamp: datetime
    quantity: float
    revenue: float


CostingEvent = PurchaseEvent | SaleEvent


def find_sale_entry_type(db: Session) -> EntryType | None:
    return db.scalar(select(EntryType).where(EntryType.key == settings.sale_entry_type_key))


def purchase_to_event(purchase: InventoryPurchase) -> PurchaseEvent:
    return PurchaseEvent(
        product_id=purchase.product_id,
        product_name=purchase.product.name,
        timestamp=as_naive_utc(purchase.purchase_date),
        quantity=abs(safe_number(purchase.quantity)),
        total_cost=safe_number(purchase.total_cost),
    )


def sale_to_event(entry: LedgerEntry) -> SaleEvent:
    amount = safe_number(entry.amount)
    price = safe_number(entry.price)
    return SaleEvent(
        product_id=entry.product_id,
        product_name=entry.product.name,
        account_id=entry.account_id,
        timestamp=as_naive_utc(entry.timestamp),
        quantity=abs(amount),
        revenue=abs(safe_number(amount * price)),
    )


def assemble_events(
    db: Session,
    *,
    owner_id: int,
    account_ids: list[int],
    end: datetime | None,
    sale_type_id: int | None,
) -> list[CostingEvent]:
    """Collect every purchase and sale up to ``end`` (``None`` means no bound).

    The result is unordered as far as costing is concerned; rows come back in
    ``(timestamp, id)`` order so that events sharing an instant keep a stable
    relative position through the replay's sort.
    """
    purchase_query = (
        select(InventoryPurchase)
        .where(InventoryPurchase.user_id == owner_id)
        .order_by(InventoryPurchase.purchase_date, InventoryPurchase.id)
    )
    if end is not None:
        purchase_query = purchase_query.where(InventoryPurchase.purchase_date <= end)

    events: list[CostingEvent] = []
    for purchase in db.scalars(purchase_query).unique():
        if purchase.product is None:
            continue
        events.append(purchase_to_event(purchase))
    purchase_count = len(events)

    if account_ids and sale_type_id is not None:
        sale_query = (
            select(LedgerEntry)
            .where(
                LedgerEntry.account_id.in_(account_ids),
                LedgerEntry.type_id == sale_type_id,
            )
            .order_by(LedgerEntry.timestamp, LedgerEntry.id)
        )
        if end is not None:
            sale_query = sale_query.where(LedgerEntry.timestamp <= end)
        for entry in db.scalars(sale_query).unique():
            if entry.product_id is None or entry.product is None:
                continue
            events.append(sale_to_event(entry))

    logger.debug(
        "Assembled %s purchase and %s sale events for user %s up to %s",
        purchase_count,
        len(events) - purchase_count,
        owner_id,
        end,
    )
    return events
