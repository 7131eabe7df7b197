import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("SALE_ENTRY_TYPE_KEY", "sale")

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ledger.core.security import create_access_token, hash_password
from ledger.db.database import Base, SessionLocal, engine, get_db
from ledger.main import app
from ledger.models import Account, EntryType, InventoryPurchase, LedgerEntry, Product, User

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db, username: str = "owner") -> User:
    user = User(
        email=f"{username}@example.com",
        username=username,
        password_hash=hash_password(TEST_PASSWORD),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=str(user.id))}"}


@pytest.fixture()
def user(db) -> User:
    return make_user(db)


@pytest.fixture()
def auth_headers(user) -> dict[str, str]:
    return auth_headers_for(user)


@pytest.fixture()
def sale_type(db) -> EntryType:
    entry_type = EntryType(key="sale", name="Sale")
    db.add(entry_type)
    db.commit()
    db.refresh(entry_type)
    return entry_type


@pytest.fixture()
def payment_type(db) -> EntryType:
    entry_type = EntryType(key="payment", name="Payment")
    db.add(entry_type)
    db.commit()
    db.refresh(entry_type)
    return entry_type


def add_account(db, owner: User, name: str = "Acme") -> Account:
    account = Account(user_id=owner.id, name=name)
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def add_product(db, key: str = "widget", name: str = "Widget") -> Product:
    product = Product(key=key, name=name)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def add_purchase(db, owner: User, product: Product, quantity, buying_price, when: datetime) -> InventoryPurchase:
    quantity = Decimal(str(quantity))
    buying_price = Decimal(str(buying_price))
    purchase = InventoryPurchase(
        user_id=owner.id,
        product_id=product.id,
        quantity=quantity,
        buying_price=buying_price,
        total_cost=quantity * buying_price,
        purchase_date=when,
    )
    db.add(purchase)
    db.commit()
    db.refresh(purchase)
    return purchase


def add_entry(db, account: Account, entry_type: EntryType, amount, price, when: datetime, product=None) -> LedgerEntry:
    entry = LedgerEntry(
        account_id=account.id,
        type_id=entry_type.id,
        product_id=product.id if product is not None else None,
        amount=Decimal(str(amount)),
        price=Decimal(str(price)),
        timestamp=when,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry
