# Overview: Pytest coverage for the transactions API.

from datetime import timedelta

from stockbook.models import Transaction
from stockbook.time_utils import utcnow


def _sale(customer, product, quantity=1, price=10, **extra):
    payload = {
        "kind": "sale",
        "customerRef": customer.id,
        "lineItems": [{"productRef": product.id, "quantity": quantity, "unitPrice": price}],
    }
    payload.update(extra)
    return payload


def test_create_sale(client, headers_a, product_a, customer_a, read_stock):
    resp = client.post("/api/transactions", json=_sale(customer_a, product_a, 3, 9.99), headers=headers_a)

    assert resp.status_code == 201
    txn = resp.json["transaction"]
    assert txn["kind"] == "sale"
    assert txn["customerRef"] == customer_a.id
    assert txn["customer"]["name"] == "Carol Customer"
    assert txn["totalAmount"] == 29.97
    assert txn["lineItems"] == [{
        "productRef": product_a.id,
        "quantity": 3,
        "unitPrice": 9.99,
        "lineTotal": 29.97,
        "product": {"id": product_a.id, "name": "Widget", "category": "Gadgets"},
    }]
    assert read_stock(product_a.id) == 7


def test_create_purchase(client, headers_a, product_a, vendor_a, read_stock):
    resp = client.post("/api/transactions", json={
        "kind": "purchase",
        "vendorRef": vendor_a.id,
        "lineItems": [{"productRef": product_a.id, "quantity": 5, "unitPrice": 4}],
    }, headers=headers_a)

    assert resp.status_code == 201
    assert resp.json["transaction"]["vendorRef"] == vendor_a.id
    assert resp.json["transaction"]["vendor"]["name"] == "Victor Vendor"
    assert read_stock(product_a.id) == 15


def test_insufficient_stock_response(client, headers_a, product_a2, customer_a, read_stock):
    payload = _sale(customer_a, product_a2, 3, 1)
    payload["lineItems"].append({"productRef": product_a2.id, "quantity": 3, "unitPrice": 1})

    resp = client.post("/api/transactions", json=payload, headers=headers_a)

    assert resp.status_code == 400
    assert resp.json["error"] == "Insufficient stock for product: Gizmo. Available: 5, Required: 6"
    assert resp.json["details"]["productId"] == product_a2.id
    assert resp.json["details"]["available"] == 5
    assert resp.json["details"]["required"] == 6
    assert read_stock(product_a2.id) == 5


def test_wrong_role_response(client, headers_a, product_a, vendor_a, db_session):
    resp = client.post("/api/transactions", json=_sale(vendor_a, product_a), headers=headers_a)

    assert resp.status_code == 404
    assert resp.json["error"] == "Customer not found"
    assert db_session.query(Transaction).count() == 0


def test_invalid_body(client, headers_a):
    resp = client.post("/api/transactions", data="not json", headers=headers_a)
    assert resp.status_code == 400


def test_get_and_list(client, headers_a, product_a, customer_a, vendor_a):
    first = client.post("/api/transactions", json=_sale(customer_a, product_a), headers=headers_a).json["transaction"]
    client.post("/api/transactions", json={
        "kind": "purchase",
        "vendorRef": vendor_a.id,
        "lineItems": [{"productRef": product_a.id, "quantity": 1, "unitPrice": 1}],
    }, headers=headers_a)

    resp = client.get(f"/api/transactions/{first['id']}", headers=headers_a)
    assert resp.status_code == 200
    assert resp.json["transaction"]["id"] == first["id"]

    resp = client.get("/api/transactions", headers=headers_a)
    assert resp.json["pagination"]["totalItems"] == 2
    assert resp.json["transactions"][0]["kind"] == "purchase"

    resp = client.get("/api/transactions?type=sale", headers=headers_a)
    assert [t["id"] for t in resp.json["transactions"]] == [first["id"]]

    assert client.get("/api/transactions?type=refund", headers=headers_a).status_code == 400
    assert client.get("/api/transactions/999999", headers=headers_a).status_code == 404


def test_date_filters_use_occurred_at(client, headers_a, product_a, customer_a):
    last_week = (utcnow() - timedelta(days=7)).replace(microsecond=0).isoformat() + "Z"
    client.post("/api/transactions", json=_sale(customer_a, product_a, occurredAt=last_week), headers=headers_a)
    client.post("/api/transactions", json=_sale(customer_a, product_a), headers=headers_a)

    since = (utcnow() - timedelta(days=1)).date().isoformat()
    resp = client.get(f"/api/transactions?startDate={since}", headers=headers_a)
    assert resp.json["pagination"]["totalItems"] == 1

    assert client.get("/api/transactions?startDate=yesterday", headers=headers_a).status_code == 400


def test_contact_history(client, headers_a, product_a, customer_a, vendor_a):
    client.post("/api/transactions", json=_sale(customer_a, product_a), headers=headers_a)
    client.post("/api/transactions", json=_sale(customer_a, product_a), headers=headers_a)

    resp = client.get(f"/api/transactions/contact/{customer_a.id}", headers=headers_a)
    assert resp.status_code == 200
    assert resp.json["contact"]["id"] == customer_a.id
    assert resp.json["pagination"]["totalItems"] == 2

    resp = client.get(f"/api/transactions/contact/{vendor_a.id}", headers=headers_a)
    assert resp.json["transactions"] == []


def test_oversized_amounts_are_rejected(client, headers_a, product_a, vendor_a, read_stock):
    for quantity, price in ((10**20, 1), (1, "1e999999999")):
        resp = client.post("/api/transactions", json={
            "kind": "purchase",
            "vendorRef": vendor_a.id,
            "lineItems": [{"productRef": product_a.id, "quantity": quantity, "unitPrice": price}],
        }, headers=headers_a)
        assert resp.status_code == 400

    assert read_stock(product_a.id) == 10


def test_out_of_range_ids_are_not_found(client, headers_a, customer_a):
    huge = 10**20
    assert client.get(f"/api/transactions/{huge}", headers=headers_a).status_code == 404
    assert client.get(f"/api/products/{huge}", headers=headers_a).status_code == 404

    resp = client.post("/api/transactions", json={
        "kind": "sale",
        "customerRef": customer_a.id,
        "lineItems": [{"productRef": huge, "quantity": 1, "unitPrice": 1}],
    }, headers=headers_a)
    assert resp.status_code == 400
