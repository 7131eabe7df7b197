from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class PurchaseCreate(BaseModel):
    product_id: int
    quantity: Decimal = Field(gt=0)
    buying_price: Decimal = Field(ge=0)
    note: str | None = Field(default=None, max_length=1000)
    purchase_date: datetime | None = None


class PurchaseUpdate(BaseModel):
    quantity: Decimal | None = Field(default=None, gt=0)
    buying_price: Decimal | None = Field(default=None, ge=0)
    note: str | None = Field(default=None, max_length=1000)
    purchase_date: datetime | None = None


class PurchaseOut(BaseModel):
    id: int
    product_id: int
    quantity: Decimal
    buying_price: Decimal
    total_cost: Decimal
    note: str | None
    purchase_date: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class InventoryPositionOut(BaseModel):
    product_id: int
    product_name: str
    total_purchased: float
    total_sold: float
    on_hand_quantity: float
    on_hand_cost: float
    average_cost: float

    model_config = {"from_attributes": True}
