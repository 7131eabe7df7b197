from datetime import datetime
from decimal import Decimal

from conftest import add_account, add_entry, add_product, add_purchase, auth_headers_for, make_user


def test_create_account_posts_opening_entry(client, auth_headers, payment_type, sale_type):
    response = client.post("/accounts", json={"name": " Acme ", "initial_amount": "250.00"}, headers=auth_headers)
    assert response.status_code == 201
    account = response.json()
    assert account["name"] == "Acme"

    entries = client.get(f"/accounts/{account['id']}/entries", headers=auth_headers).json()
    assert len(entries) == 1
    assert entries[0]["type_id"] == payment_type.id
    assert Decimal(entries[0]["amount"]) == Decimal("1")
    assert Decimal(entries[0]["price"]) == Decimal("250")
    assert entries[0]["note"] == "Initial entry"

    balance = client.get(f"/accounts/{account['id']}/balance", headers=auth_headers).json()
    assert Decimal(balance["balance"]) == Decimal("250")


def test_opening_balance_needs_an_entry_type(client, auth_headers):
    response = client.post("/accounts", json={"name": "Acme", "initial_amount": "10"}, headers=auth_headers)

    assert response.status_code == 400
    assert client.get("/accounts", headers=auth_headers).json() == []


def test_account_without_opening_balance_has_no_entries(client, auth_headers):
    account = client.post("/accounts", json={"name": "Quiet"}, headers=auth_headers).json()

    entries = client.get(f"/accounts/{account['id']}/entries", headers=auth_headers)

    assert entries.status_code == 200
    assert entries.json() == []


def test_balance_sums_signed_lines(client, auth_headers, user, db, sale_type, payment_type):
    account = add_account(db, user)
    lines = [
        {"type_id": sale_type.id, "amount": "3", "price": "-20.00"},
        {"type_id": payment_type.id, "amount": "1", "price": "45.50"},
    ]
    for line in lines:
        created = client.post(f"/accounts/{account.id}/entries", json=line, headers=auth_headers)
        assert created.status_code == 201

    balance = client.get(f"/accounts/{account.id}/balance", headers=auth_headers).json()

    assert Decimal(balance["balance"]) == Decimal("-14.50")


def test_foreign_account_is_hidden(client, db, auth_headers, sale_type):
    stranger = make_user(db, "stranger")
    foreign = add_account(db, stranger, "Theirs")

    assert client.get(f"/accounts/{foreign.id}", headers=auth_headers).status_code == 404
    assert client.get(f"/accounts/{foreign.id}/balance", headers=auth_headers).status_code == 404
    assert (
        client.post(
            f"/accounts/{foreign.id}/entries",
            json={"type_id": sale_type.id, "amount": "1", "price": "1"},
            headers=auth_headers,
        ).status_code
        == 404
    )
    assert client.get("/accounts", headers=auth_headers_for(stranger)).json()[0]["id"] == foreign.id


def test_rename_and_delete_account(client, db, user, auth_headers):
    account = add_account(db, user)

    renamed = client.patch(f"/accounts/{account.id}", json={"name": "Renamed"}, headers=auth_headers)
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Renamed"

    assert client.delete(f"/accounts/{account.id}", headers=auth_headers).status_code == 204
    assert client.get(f"/accounts/{account.id}", headers=auth_headers).status_code == 404


def test_entry_update_and_delete(client, db, user, auth_headers, sale_type, payment_type):
    account = add_account(db, user)
    product = client.post("/products", json={"key": "widget", "name": "Widget"}, headers=auth_headers).json()
    entry = client.post(
        f"/accounts/{account.id}/entries",
        json={
            "type_id": sale_type.id,
            "product_id": product["id"],
            "amount": "2",
            "price": "9.99",
            "timestamp": "2025-03-01T10:00:00+02:00",
        },
        headers=auth_headers,
    ).json()
    assert entry["timestamp"].startswith("2025-03-01T08:00:00")

    updated = client.patch(
        f"/accounts/{account.id}/entries/{entry['id']}",
        json={"type_id": payment_type.id, "product_id": None, "note": "  corrected  "},
        headers=auth_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["type_id"] == payment_type.id
    assert updated.json()["product_id"] is None
    assert updated.json()["note"] == "corrected"

    assert client.delete(f"/accounts/{account.id}/entries/{entry['id']}", headers=auth_headers).status_code == 204
    assert (
        client.delete(f"/accounts/{account.id}/entries/{entry['id']}", headers=auth_headers).status_code == 404
    )


def test_entry_requires_known_type_and_product(client, db, user, auth_headers, sale_type):
    account = add_account(db, user)

    unknown_type = client.post(
        f"/accounts/{account.id}/entries",
        json={"type_id": 999, "amount": "1", "price": "1"},
        headers=auth_headers,
    )
    unknown_product = client.post(
        f"/accounts/{account.id}/entries",
        json={"type_id": sale_type.id, "product_id": 999, "amount": "1", "price": "1"},
        headers=auth_headers,
    )

    assert unknown_type.status_code == 400
    assert unknown_product.status_code == 400


def test_entry_type_catalog(client, auth_headers):
    created = client.post("/entry-types", json={"key": "sale", "name": "Sale"}, headers=auth_headers)
    assert created.status_code == 201

    duplicate = client.post("/entry-types", json={"key": "sale", "name": "Sale again"}, headers=auth_headers)
    assert duplicate.status_code == 409

    renamed = client.patch(f"/entry-types/{created.json()['id']}", json={"name": "Sales"}, headers=auth_headers)
    assert renamed.json()["name"] == "Sales"
    assert [item["key"] for item in client.get("/entry-types", headers=auth_headers).json()] == ["sale"]


def test_product_catalog(client, auth_headers):
    created = client.post(
        "/products",
        json={"key": "bolt_m8", "name": "Bolt M8", "default_buying_price": "0.35"},
        headers=auth_headers,
    )
    assert created.status_code == 201
    assert client.post("/products", json={"key": "bolt_m8", "name": "Dup"}, headers=auth_headers).status_code == 409
    assert client.post("/products", json={"key": "Bad Key", "name": "Bad"}, headers=auth_headers).status_code == 422

    updated = client.patch(
        f"/products/{created.json()['id']}",
        json={"default_buying_price": None},
        headers=auth_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["default_buying_price"] is None
    assert updated.json()["name"] == "Bolt M8"


def test_ledger_routes_require_auth(client):
    assert client.get("/accounts").status_code == 401
    assert client.get("/products").status_code == 401


def test_entry_edits_accumulate_history(client, db, user, auth_headers, sale_type):
    account = add_account(db, user)
    product = client.post("/products", json={"key": "widget", "name": "Widget"}, headers=auth_headers).json()
    entry = client.post(
        f"/accounts/{account.id}/entries",
        json={"type_id": sale_type.id, "amount": "2", "price": "9.50"},
        headers=auth_headers,
    ).json()
    assert entry["edit_history"] == []
    path = f"/accounts/{account.id}/entries/{entry['id']}"

    first = client.patch(path, json={"amount": "3", "price": "9.50"}, headers=auth_headers).json()
    second = client.patch(path, json={"product_id": product["id"], "note": "restock"}, headers=auth_headers).json()

    assert len(first["edit_history"]) == 1
    assert first["edit_history"][0]["edited_by"] == user.id
    assert first["edit_history"][0]["changes"] == [{"field": "amount", "old_value": 2.0, "new_value": 3.0}]
    assert len(second["edit_history"]) == 2
    assert second["edit_history"][1]["changes"] == [
        {"field": "product_id", "old_value": None, "new_value": product["id"]},
        {"field": "note", "old_value": None, "new_value": "restock"},
    ]


def test_unchanged_entry_edit_leaves_history_alone(client, db, user, auth_headers, sale_type):
    account = add_account(db, user)
    entry = client.post(
        f"/accounts/{account.id}/entries",
        json={"type_id": sale_type.id, "amount": "2", "price": "9.50", "note": "first"},
        headers=auth_headers,
    ).json()
    path = f"/accounts/{account.id}/entries/{entry['id']}"
    client.patch(path, json={"price": "10"}, headers=auth_headers)

    response = client.patch(
        path,
        json={"amount": "2.00", "price": "10.00", "note": " first ", "type_id": sale_type.id},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert len(response.json()["edit_history"]) == 1
    assert response.json()["edit_history"][0]["changes"] == [{"field": "price", "old_value": 9.5, "new_value": 10.0}]


def test_delete_product(client, auth_headers):
    product = client.post("/products", json={"key": "spare", "name": "Spare"}, headers=auth_headers).json()

    assert client.delete(f"/products/{product['id']}", headers=auth_headers).status_code == 204
    assert client.get("/products", headers=auth_headers).json() == []
    assert client.delete(f"/products/{product['id']}", headers=auth_headers).status_code == 404


def test_delete_product_in_use_is_rejected(client, db, user, auth_headers, sale_type):
    account = add_account(db, user)
    purchased = add_product(db, "bought", "Bought")
    sold = add_product(db, "sold", "Sold")
    add_purchase(db, user, purchased, 1, 1, datetime(2025, 1, 1))
    add_entry(db, account, sale_type, 1, 5, datetime(2025, 1, 2), product=sold)

    assert client.delete(f"/products/{purchased.id}", headers=auth_headers).status_code == 409
    assert client.delete(f"/products/{sold.id}", headers=auth_headers).status_code == 409
    assert len(client.get("/products", headers=auth_headers).json()) == 2
