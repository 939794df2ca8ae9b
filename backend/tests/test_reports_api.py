# Overview: Pytest coverage for report endpoints.

from datetime import timedelta

from stockbook.time_utils import utcnow


def _post(client, headers, payload):
    resp = client.post("/api/transactions", json=payload, headers=headers)
    assert resp.status_code == 201
    return resp.json["transaction"]


def test_inventory_report(client, headers_a, product_a, product_a2):
    resp = client.get("/api/reports/inventory?lowStock=5&sortBy=stock&sortOrder=desc", headers=headers_a)

    assert resp.status_code == 200
    report = resp.json
    assert report["summary"]["totalProducts"] == 2
    # 10 * 10.00 + 5 * 2.50
    assert report["summary"]["totalValue"] == 112.5
    assert [p["name"] for p in report["products"]] == ["Widget", "Gizmo"]
    assert [p["name"] for p in report["lowStockProducts"]] == ["Gizmo"]
    assert report["outOfStockProducts"] == []
    assert report["categoryStats"]["Parts"] == {"count": 1, "totalStock": 5, "totalValue": 12.5}


def test_inventory_report_rejects_unknown_sort(client, headers_a):
    assert client.get("/api/reports/inventory?sortBy=color", headers=headers_a).status_code == 400


def test_transaction_report(client, headers_a, product_a, customer_a, vendor_a):
    _post(client, headers_a, {
        "kind": "sale",
        "customerRef": customer_a.id,
        "lineItems": [{"productRef": product_a.id, "quantity": 2, "unitPrice": 25}],
    })
    _post(client, headers_a, {
        "kind": "purchase",
        "vendorRef": vendor_a.id,
        "lineItems": [{"productRef": product_a.id, "quantity": 4, "unitPrice": 5}],
    })

    resp = client.get("/api/reports/transactions?period=today", headers=headers_a)
    assert resp.status_code == 200
    summary = resp.json["summary"]
    assert summary["salesCount"] == 1
    assert summary["purchasesCount"] == 1
    assert summary["totalSales"] == 50
    assert summary["totalPurchases"] == 20
    assert summary["netProfit"] == 30
    assert summary["period"] == "today"
    assert resp.json["topCustomers"] == [
        {"id": customer_a.id, "name": "Carol Customer", "totalAmount": 50, "transactionCount": 1}
    ]
    assert resp.json["topVendors"][0]["id"] == vendor_a.id

    resp = client.get("/api/reports/transactions?type=sale", headers=headers_a)
    assert resp.json["summary"]["purchasesCount"] == 0
    assert resp.json["topVendors"] == []

    assert client.get("/api/reports/transactions?period=decade", headers=headers_a).status_code == 400


def test_transaction_report_excludes_old_transactions_from_period(client, headers_a, product_a, customer_a):
    two_years_ago = (utcnow() - timedelta(days=800)).isoformat() + "Z"
    _post(client, headers_a, {
        "kind": "sale",
        "customerRef": customer_a.id,
        "occurredAt": two_years_ago,
        "lineItems": [{"productRef": product_a.id, "quantity": 1, "unitPrice": 10}],
    })

    resp = client.get("/api/reports/transactions?period=year", headers=headers_a)
    assert resp.json["summary"]["totalTransactions"] == 0

    resp = client.get("/api/reports/transactions", headers=headers_a)
    assert resp.json["summary"]["totalTransactions"] == 1


def test_dashboard(client, headers_a, product_a, product_a2, customer_a, vendor_a):
    _post(client, headers_a, {
        "kind": "sale",
        "customerRef": customer_a.id,
        "lineItems": [{"productRef": product_a2.id, "quantity": 5, "unitPrice": 3}],
    })

    resp = client.get("/api/reports/dashboard", headers=headers_a)
    assert resp.status_code == 200
    data = resp.json
    assert data["overview"] == {"totalProducts": 2, "totalCustomers": 1, "totalVendors": 1, "lowStockCount": 2}
    assert data["today"]["sales"] == 15
    assert data["today"]["transactionCount"] == 1
    assert data["thisMonth"]["profit"] == 15
    assert data["alerts"]["lowStockProducts"][0]["name"] == "Gizmo"
    assert data["alerts"]["lowStockProducts"][0]["stock"] == 0
