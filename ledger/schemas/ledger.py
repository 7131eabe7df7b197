from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator


class AccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    initial_amount: Decimal = Decimal("0")


class AccountUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class AccountOut(BaseModel):
    id: int
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountBalanceOut(BaseModel):
    account_id: int
    balance: Decimal


class EntryTypeCreate(BaseModel):
    key: str = Field(min_length=1, max_length=100, pattern=r"^[a-z_]+$")
    name: str = Field(min_length=1, max_length=255)


class EntryTypeUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class EntryTypeOut(BaseModel):
    id: int
    key: str
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ProductCreate(BaseModel):
    key: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9_]+$")
    name: str = Field(min_length=1, max_length=255)
    default_buying_price: Decimal | None = Field(default=None, ge=0)


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    default_buying_price: Decimal | None = Field(default=None, ge=0)


class ProductOut(BaseModel):
    id: int
    key: str
    name: str
    default_buying_price: Decimal | None
    created_at: datetime

    model_config = {"from_attributes": True}


class LedgerEntryCreate(BaseModel):
    type_id: int
    product_id: int | None = None
    amount: Decimal = Field(description="Signed quantity")
    price: Decimal = Field(description="Signed unit price")
    note: str | None = Field(default=None, max_length=1000)
    timestamp: datetime | None = None


class LedgerEntryUpdate(BaseModel):
    type_id: int | None = None
    product_id: int | None = None
    amount: Decimal | None = None
    price: Decimal | None = None
    note: str | None = Field(default=None, max_length=1000)
    timestamp: datetime | None = None


class FieldChangeOut(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class EditRecordOut(BaseModel):
    edited_at: datetime
    edited_by: int
    changes: list[FieldChangeOut]


class LedgerEntryOut(BaseModel):
    id: int
    account_id: int
    type_id: int
    product_id: int | None
    amount: Decimal
    price: Decimal
    note: str | None
    timestamp: datetime
    edit_history: list[EditRecordOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("edit_history", mode="before")
    @classmethod
    def empty_history_for_null(cls, value):
        return value or []
