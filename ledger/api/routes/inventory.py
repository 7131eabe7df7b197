from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger.api.deps import get_current_user
from ledger.core.dates import as_naive_utc
from ledger.db.database import get_db
from ledger.models.ledger import InventoryPurchase, Product
from ledger.models.user import User
from ledger.schemas.inventory import InventoryPositionOut, PurchaseCreate, PurchaseOut, PurchaseUpdate
from ledger.services.accounts import list_owned_account_ids
from ledger.services.costing import inventory_positions
from ledger.services.events import CostingEvent, assemble_events, find_sale_entry_type

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _quantize_money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"))


def _owned_purchase_or_404(db: Session, current_user: User, purchase_id: int) -> InventoryPurchase:
    purchase = db.scalar(
        select(InventoryPurchase).where(
            InventoryPurchase.id == purchase_id,
            InventoryPurchase.user_id == current_user.id,
        )
    )
    if not purchase:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase not found")
    return purchase


@router.post("/purchases", response_model=PurchaseOut, status_code=status.HTTP_201_CREATED)
def create_purchase(
    payload: PurchaseCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = db.get(Product, payload.product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    purchase = InventoryPurchase(
        user_id=current_user.id,
        product_id=product.id,
        quantity=payload.quantity,
        buying_price=payload.buying_price,
        total_cost=_quantize_money(payload.quantity * payload.buying_price),
        note=payload.note.strip() if payload.note else None,
        purchase_date=as_naive_utc(payload.purchase_date) if payload.purchase_date else datetime.utcnow(),
    )
    db.add(purchase)
    db.commit()
    db.refresh(purchase)
    return purchase


@router.get("/purchases", response_model=list[PurchaseOut])
def list_purchases(
    product_id: int | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = (
        select(InventoryPurchase)
        .where(InventoryPurchase.user_id == current_user.id)
        .order_by(InventoryPurchase.purchase_date.desc(), InventoryPurchase.id.desc())
    )
    if product_id is not None:
        query = query.where(InventoryPurchase.product_id == product_id)
    if date_from is not None:
        query = query.where(InventoryPurchase.purchase_date >= as_naive_utc(date_from))
    if date_to is not None:
        query = query.where(InventoryPurchase.purchase_date <= as_naive_utc(date_to))
    return list(db.scalars(query).unique().all())


@router.patch("/purchases/{purchase_id}", response_model=PurchaseOut)
def update_purchase(
    purchase_id: int,
    payload: PurchaseUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    purchase = _owned_purchase_or_404(db, current_user, purchase_id)

    if payload.quantity is not None:
        purchase.quantity = payload.quantity
    if payload.buying_price is not None:
        purchase.buying_price = payload.buying_price
    if payload.quantity is not None or payload.buying_price is not None:
        purchase.total_cost = _quantize_money(Decimal(purchase.quantity) * Decimal(purchase.buying_price))
    if "note" in payload.model_fields_set:
        purchase.note = payload.note.strip() if payload.note else None
    if payload.purchase_date is not None:
        purchase.purchase_date = as_naive_utc(payload.purchase_date)

    db.commit()
    db.refresh(purchase)
    return purchase


@router.delete("/purchases/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_purchase(
    purchase_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    purchase = _owned_purchase_or_404(db, current_user, purchase_id)
    db.delete(purchase)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/current", response_model=list[InventoryPositionOut])
def current_inventory(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    sale_type = find_sale_entry_type(db)
    account_ids = list_owned_account_ids(db, current_user.id)
    events: list[CostingEvent] = assemble_events(
        db,
        owner_id=current_user.id,
        account_ids=account_ids,
        end=None,
        sale_type_id=sale_type.id if sale_type else None,
    )
    return inventory_positions(events)
