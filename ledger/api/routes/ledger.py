from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger.api.deps import get_current_user
from ledger.core.dates import as_naive_utc
from ledger.db.database import get_db
from ledger.models.ledger import Account, EntryType, LedgerEntry, Product
from ledger.models.user import User
from ledger.schemas.ledger import (
    AccountBalanceOut,
    AccountCreate,
    AccountOut,
    AccountUpdate,
    EntryTypeCreate,
    EntryTypeOut,
    EntryTypeUpdate,
    LedgerEntryCreate,
    LedgerEntryOut,
    LedgerEntryUpdate,
    ProductCreate,
    ProductOut,
    ProductUpdate,
)
from ledger.services.accounts import AccountAccessError, get_owned_account

router = APIRouter(tags=["Ledger"])


def _owned_account_or_404(db: Session, current_user: User, account_id: int) -> Account:
    try:
        return get_owned_account(db, current_user.id, account_id)
    except AccountAccessError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found or unauthorized") from exc


def _require_entry_type(db: Session, type_id: int) -> EntryType:
    entry_type = db.get(EntryType, type_id)
    if not entry_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Entry type not found")
    return entry_type


def _require_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product not found")
    return product


@router.post("/accounts", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    account = Account(user_id=current_user.id, name=payload.name.strip())
    db.add(account)
    db.flush()

    if payload.initial_amount != 0:
        opening_type = db.scalar(select(EntryType).order_by(EntryType.id).limit(1))
        if not opening_type:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="An entry type is required to post an opening balance",
            )
        db.add(
            LedgerEntry(
                account_id=account.id,
                type_id=opening_type.id,
                amount=Decimal("1"),
                price=payload.initial_amount,
                note="Initial entry",
            )
        )

    db.commit()
    db.refresh(account)
    return account


@router.get("/accounts", response_model=list[AccountOut])
def list_accounts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = (
        select(Account)
        .where(Account.user_id == current_user.id)
        .order_by(Account.created_at.desc(), Account.id.desc())
    )
    return list(db.scalars(query).all())


@router.get("/accounts/{account_id}", response_model=AccountOut)
def get_account(
    account_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _owned_account_or_404(db, current_user, account_id)


@router.patch("/accounts/{account_id}", response_model=AccountOut)
def rename_account(
    account_id: int,
    payload: AccountUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    account = _owned_account_or_404(db, current_user, account_id)
    account.name = payload.name.strip()
    db.commit()
    db.refresh(account)
    return account


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    account = _owned_account_or_404(db, current_user, account_id)
    db.delete(account)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/accounts/{account_id}/balance", response_model=AccountBalanceOut)
def account_balance(
    account_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _owned_account_or_404(db, current_user, account_id)
    rows = db.execute(
        select(LedgerEntry.amount, LedgerEntry.price).where(LedgerEntry.account_id == account_id)
    ).all()
    balance = sum((Decimal(amount) * Decimal(price) for amount, price in rows), Decimal("0"))
    return AccountBalanceOut(account_id=account_id, balance=balance)


@router.post("/accounts/{account_id}/entries", response_model=LedgerEntryOut, status_code=status.HTTP_201_CREATED)
def create_entry(
    account_id: int,
    payload: LedgerEntryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _owned_account_or_404(db, current_user, account_id)
    _require_entry_type(db, payload.type_id)
    if payload.product_id is not None:
        _require_product(db, payload.product_id)

    entry = LedgerEntry(
        account_id=account_id,
        type_id=payload.type_id,
        product_id=payload.product_id,
        amount=payload.amount,
        price=payload.price,
        note=payload.note.strip() if payload.note else None,
        timestamp=as_naive_utc(payload.timestamp) if payload.timestamp else datetime.utcnow(),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


@router.get("/accounts/{account_id}/entries", response_model=list[LedgerEntryOut])
def list_entries(
    account_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _owned_account_or_404(db, current_user, account_id)
    query = (
        select(LedgerEntry)
        .where(LedgerEntry.account_id == account_id)
        .order_by(LedgerEntry.timestamp.desc(), LedgerEntry.id.desc())
    )
    return list(db.scalars(query).unique().all())


def _history_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _owned_entry_or_404(db: Session, account_id: int, entry_id: int) -> LedgerEntry:
    entry = db.scalar(select(LedgerEntry).where(LedgerEntry.id == entry_id, LedgerEntry.account_id == account_id))
    if not entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found")
    return entry


@router.patch("/accounts/{account_id}/entries/{entry_id}", response_model=LedgerEntryOut)
def update_entry(
    account_id: int,
    entry_id: int,
    payload: LedgerEntryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _owned_account_or_404(db, current_user, account_id)
    entry = _owned_entry_or_404(db, account_id, entry_id)

    updates = payload.model_dump(exclude_unset=True)
    requested = {}
    if updates.get("type_id") is not None:
        _require_entry_type(db, updates["type_id"])
        requested["type_id"] = updates["type_id"]
    if "product_id" in updates:
        if updates["product_id"] is not None:
            _require_product(db, updates["product_id"])
        requested["product_id"] = updates["product_id"]
    if updates.get("amount") is not None:
        requested["amount"] = updates["amount"]
    if updates.get("price") is not None:
        requested["price"] = updates["price"]
    if "note" in updates:
        requested["note"] = updates["note"].strip() if updates["note"] else None
    if updates.get("timestamp") is not None:
        requested["timestamp"] = as_naive_utc(updates["timestamp"])

    changes = [
        {
            "field": field,
            "old_value": _history_value(getattr(entry, field)),
            "new_value": _history_value(value),
        }
        for field, value in requested.items()
        if getattr(entry, field) != value
    ]
    if not changes:
        return entry

    for field, value in requested.items():
        setattr(entry, field, value)
    # Reassign so the JSON column is flagged dirty.
    entry.edit_history = [
        *(entry.edit_history or []),
        {
            "edited_at": datetime.utcnow().isoformat(),
            "edited_by": current_user.id,
            "changes": changes,
        },
    ]

    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/accounts/{account_id}/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    account_id: int,
    entry_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _owned_account_or_404(db, current_user, account_id)
    entry = _owned_entry_or_404(db, account_id, entry_id)
    db.delete(entry)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/entry-types", response_model=list[EntryTypeOut])
def list_entry_types(
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list(db.scalars(select(EntryType).order_by(EntryType.id)).all())


@router.post("/entry-types", response_model=EntryTypeOut, status_code=status.HTTP_201_CREATED)
def create_entry_type(
    payload: EntryTypeCreate,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry_type = EntryType(key=payload.key, name=payload.name.strip())
    db.add(entry_type)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Entry type key already exists") from exc
    db.refresh(entry_type)
    return entry_type


@router.patch("/entry-types/{type_id}", response_model=EntryTypeOut)
def rename_entry_type(
    type_id: int,
    payload: EntryTypeUpdate,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry_type = db.get(EntryType, type_id)
    if not entry_type:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry type not found")
    entry_type.name = payload.name.strip()
    db.commit()
    db.refresh(entry_type)
    return entry_type


@router.get("/products", response_model=list[ProductOut])
def list_products(
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list(db.scalars(select(Product).order_by(Product.name, Product.id)).all())


@router.post("/products", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = Product(
        key=payload.key,
        name=payload.name.strip(),
        default_buying_price=payload.default_buying_price,
    )
    db.add(product)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Product key already exists") from exc
    db.refresh(product)
    return product


@router.patch("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    updates = payload.model_dump(exclude_unset=True)
    if updates.get("name") is not None:
        product.name = updates["name"].strip()
    if "default_buying_price" in updates:
        product.default_buying_price = updates["default_buying_price"]
    db.commit()
    db.refresh(product)
    return product


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    db.delete(product)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Product is still referenced by purchases or ledger entries",
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
