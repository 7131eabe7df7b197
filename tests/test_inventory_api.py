from datetime import datetime
from decimal import Decimal

import pytest

from conftest import add_account, add_entry, add_product, add_purchase, auth_headers_for, make_user


def test_purchase_lifecycle(client, db, auth_headers):
    widget = add_product(db)

    created = client.post(
        "/inventory/purchases",
        json={
            "product_id": widget.id,
            "quantity": "12",
            "buying_price": "1.25",
            "purchase_date": "2025-04-01T09:00:00",
        },
        headers=auth_headers,
    )
    assert created.status_code == 201
    purchase = created.json()
    assert Decimal(purchase["total_cost"]) == Decimal("15.00")

    updated = client.patch(
        f"/inventory/purchases/{purchase['id']}",
        json={"buying_price": "2.00", "note": "price fix"},
        headers=auth_headers,
    )
    assert updated.status_code == 200
    assert Decimal(updated.json()["total_cost"]) == Decimal("24.00")
    assert updated.json()["note"] == "price fix"

    assert client.delete(f"/inventory/purchases/{purchase['id']}", headers=auth_headers).status_code == 204
    assert client.get("/inventory/purchases", headers=auth_headers).json() == []


def test_purchase_validation(client, db, auth_headers):
    widget = add_product(db)

    unknown = client.post(
        "/inventory/purchases",
        json={"product_id": 999, "quantity": "1", "buying_price": "1"},
        headers=auth_headers,
    )
    zero = client.post(
        "/inventory/purchases",
        json={"product_id": widget.id, "quantity": "0", "buying_price": "1"},
        headers=auth_headers,
    )

    assert unknown.status_code == 404
    assert zero.status_code == 422


def test_purchase_listing_filters(client, db, user, auth_headers):
    widget = add_product(db)
    gadget = add_product(db, "gadget", "Gadget")
    add_purchase(db, user, widget, 1, 1, datetime(2025, 1, 10))
    add_purchase(db, user, widget, 1, 1, datetime(2025, 2, 10))
    add_purchase(db, user, gadget, 1, 1, datetime(2025, 2, 11))

    by_product = client.get("/inventory/purchases", params={"product_id": widget.id}, headers=auth_headers).json()
    february = client.get(
        "/inventory/purchases",
        params={"date_from": "2025-02-01T00:00:00", "date_to": "2025-02-28T23:59:59"},
        headers=auth_headers,
    ).json()

    assert len(by_product) == 2
    assert [item["product_id"] for item in february] == [gadget.id, widget.id]


def test_purchases_are_private_to_their_owner(client, db, user):
    stranger = make_user(db, "stranger")
    widget = add_product(db)
    theirs = add_purchase(db, stranger, widget, 1, 1, datetime(2025, 1, 10))
    headers = auth_headers_for(user)

    assert client.get("/inventory/purchases", headers=headers).json() == []
    assert client.delete(f"/inventory/purchases/{theirs.id}", headers=headers).status_code == 404


def test_current_inventory(client, db, user, auth_headers, sale_type):
    first = add_account(db, user, "First")
    second = add_account(db, user, "Second")
    widget = add_product(db)
    add_purchase(db, user, widget, 10, 2, datetime(2025, 1, 1))
    add_purchase(db, user, widget, 10, 4, datetime(2025, 1, 2))
    add_entry(db, first, sale_type, 3, 10, datetime(2025, 1, 3), product=widget)
    add_entry(db, second, sale_type, 2, 10, datetime(2025, 1, 4), product=widget)

    response = client.get("/inventory/current", headers=auth_headers)

    assert response.status_code == 200
    [position] = response.json()
    assert position["product_name"] == "Widget"
    assert position["total_purchased"] == pytest.approx(20.0)
    assert position["total_sold"] == pytest.approx(5.0)
    assert position["on_hand_quantity"] == pytest.approx(15.0)
    assert position["on_hand_cost"] == pytest.approx(45.0)
    assert position["average_cost"] == pytest.approx(3.0)


def test_current_inventory_without_sale_type_counts_purchases_only(client, db, user, auth_headers):
    widget = add_product(db)
    add_purchase(db, user, widget, 4, "2.50", datetime(2025, 1, 1))

    [position] = client.get("/inventory/current", headers=auth_headers).json()

    assert position["total_sold"] == 0
    assert position["on_hand_cost"] == pytest.approx(10.0)
