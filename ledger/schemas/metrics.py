from datetime import datetime

from pydantic import BaseModel


class ProductBreakdownOut(BaseModel):
    product_id: int
    product_name: str
    quantity_sold: float
    revenue: float
    cost: float
    profit: float

    model_config = {"from_attributes": True}


class MetricsReportOut(BaseModel):
    period_from: datetime
    period_to: datetime
    revenue: float
    cost: float
    profit: float
    total_ledger_lines: int
    total_purchase_count: int
    negative_stock_occurred: bool
    product_breakdown: list[ProductBreakdownOut]


class DateRangeOut(BaseModel):
    start_date: datetime
    end_date: datetime
