from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ledger.api.deps import get_current_user
from ledger.core.dates import as_naive_utc, current_month_range
from ledger.db.database import get_db
from ledger.models.user import User
from ledger.schemas.metrics import DateRangeOut, MetricsReportOut, ProductBreakdownOut
from ledger.services.accounts import AccountAccessError
from ledger.services.metrics import MetricsReport, report_for_account, report_for_all_accounts

router = APIRouter(prefix="/metrics", tags=["Metrics"])


def _resolve_window(start_date: datetime | None, end_date: datetime | None) -> tuple[datetime, datetime]:
    default_start, default_end = current_month_range()
    start = as_naive_utc(start_date) if start_date is not None else default_start
    end = as_naive_utc(end_date) if end_date is not None else default_end
    if start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must not be after end_date")
    return start, end


def _report_out(report: MetricsReport, start: datetime, end: datetime) -> MetricsReportOut:
    return MetricsReportOut(
        period_from=start,
        period_to=end,
        revenue=report.revenue,
        cost=report.cost,
        profit=report.profit,
        total_ledger_lines=report.total_ledger_lines,
        total_purchase_count=report.total_purchase_count,
        negative_stock_occurred=report.negative_stock_occurred,
        product_breakdown=[ProductBreakdownOut.model_validate(item) for item in report.product_breakdown],
    )


@router.get("/current-month", response_model=DateRangeOut)
def current_month(_: User = Depends(get_current_user)):
    start, end = current_month_range()
    return DateRangeOut(start_date=start, end_date=end)


@router.get("/accounts/{account_id}", response_model=MetricsReportOut)
def account_metrics(
    account_id: int,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    start, end = _resolve_window(start_date, end_date)
    try:
        report = report_for_account(db, current_user, account_id, start, end)
    except AccountAccessError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found or unauthorized") from exc
    return _report_out(report, start, end)


@router.get("", response_model=MetricsReportOut)
def global_metrics(
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    start, end = _resolve_window(start_date, end_date)
    try:
        report = report_for_all_accounts(db, current_user, start, end)
    except AccountAccessError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found or unauthorized") from exc
    return _report_out(report, start, end)
