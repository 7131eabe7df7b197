import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger.models.ledger import InventoryPurchase, LedgerEntry
from ledger.models.user import User
from ledger.services.accounts import get_owned_account, list_owned_account_ids
from ledger.services.costing import CostingResult, ProductBreakdown, replay
from ledger.services.events import assemble_events, find_sale_entry_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricsReport:
    revenue: float
    cost: float
    profit: float
    total_ledger_lines: int
    total_purchase_count: int
    negative_stock_occurred: bool
    product_breakdown: tuple[ProductBreakdown, ...]


EMPTY_REPORT = MetricsReport(
    revenue=0.0,
    cost=0.0,
    profit=0.0,
    total_ledger_lines=0,
    total_purchase_count=0,
    negative_stock_occurred=False,
    product_breakdown=(),
)


def _count_ledger_lines(db: Session, account_ids: list[int], start: datetime, end: datetime) -> int:
    return int(
        db.scalar(
            select(func.count(LedgerEntry.id)).where(
                LedgerEntry.account_id.in_(account_ids),
                LedgerEntry.timestamp >= start,
                LedgerEntry.timestamp <= end,
            )
        )
        or 0
    )


def _count_purchases(db: Session, user_id: int, start: datetime, end: datetime) -> int:
    return int(
        db.scalar(
            select(func.count(InventoryPurchase.id)).where(
                InventoryPurchase.user_id == user_id,
                InventoryPurchase.purchase_date >= start,
                InventoryPurchase.purchase_date <= end,
            )
        )
        or 0
    )


def _build_report(result: CostingResult, *, ledger_lines: int, purchases: int) -> MetricsReport:
    if result.negative_stock_occurred:
        logger.warning("Sales exceeded recorded stock for at least one product; costs use the last known average")
    return MetricsReport(
        revenue=result.revenue,
        cost=result.cost,
        profit=result.profit,
        total_ledger_lines=ledger_lines,
        total_purchase_count=purchases,
        negative_stock_occurred=result.negative_stock_occurred,
        product_breakdown=result.product_breakdown,
    )


def report_for_account(db: Session, user: User, account_id: int, start: datetime, end: datetime) -> MetricsReport:
    get_owned_account(db, user.id, account_id)

    sale_type = find_sale_entry_type(db)
    if sale_type is None:
        return EMPTY_REPORT

    ledger_lines = _count_ledger_lines(db, [account_id], start, end)
    purchases = _count_purchases(db, user.id, start, end)

    # Other accounts' sales still draw down the shared stock.
    events = assemble_events(
        db,
        owner_id=user.id,
        account_ids=list_owned_account_ids(db, user.id),
        end=end,
        sale_type_id=sale_type.id,
    )
    result = replay(events, start=start, end=end, account_id=account_id)
    logger.debug(
        "Account %s report over %s events: revenue=%s cost=%s",
        account_id,
        len(events),
        result.revenue,
        result.cost,
    )
    return _build_report(result, ledger_lines=ledger_lines, purchases=purchases)


def report_for_all_accounts(db: Session, user: User, start: datetime, end: datetime) -> MetricsReport:
    sale_type = find_sale_entry_type(db)
    if sale_type is None:
        return EMPTY_REPORT

    account_ids = list_owned_account_ids(db, user.id)
    if not account_ids:
        return EMPTY_REPORT

    ledger_lines = _count_ledger_lines(db, account_ids, start, end)
    purchases = _count_purchases(db, user.id, start, end)

    events = assemble_events(
        db,
        owner_id=user.id,
        account_ids=account_ids,
        end=end,
        sale_type_id=sale_type.id,
    )
    result = replay(events, start=start, end=end)
    logger.debug(
        "Report across %s accounts over %s events: revenue=%s cost=%s",
        len(account_ids),
        len(events),
        result.revenue,
        result.cost,
    )
    return _build_report(result, ledger_lines=ledger_lines, purchases=purchases)
