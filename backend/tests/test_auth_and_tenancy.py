# Overview: Pytest coverage for authentication and tenant isolation.

"""
Authentication and Multi-Tenant Isolation Tests

SECURITY TESTS: a business only ever sees and changes its own records.
Foreign ids read exactly like missing ones (404), never 403.
"""

from datetime import timedelta

import pytest

from stockbook.models import SessionToken
from stockbook.services import auth_service, session_service
from stockbook.time_utils import utcnow


class TestRegistrationAndLogin:

    def test_register_returns_token(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "username": "newshop",
            "email": "owner@newshop.test",
            "password": "secret1",
            "businessName": "New Shop",
        })

        assert resp.status_code == 201
        assert resp.json["business"]["businessName"] == "New Shop"

        profile = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {resp.json['token']}"})
        assert profile.status_code == 200
        assert profile.json["business"]["username"] == "newshop"

    def test_duplicate_registration_conflicts(self, client, business_a):
        resp = client.post("/api/auth/register", json={
            "username": "acme",
            "email": "other@example.com",
            "password": "secret1",
            "businessName": "Other",
        })
        assert resp.status_code == 409

    def test_registration_race_conflicts(self, client, monkeypatch, business_a):
        # Both requests pass the pre-check; the unique index decides
        monkeypatch.setattr(auth_service, "find_existing", lambda username, email: None)

        resp = client.post("/api/auth/register", json={
            "username": "acme",
            "email": "acme@example.com",
            "password": "secret1",
            "businessName": "Acme Again",
        })

        assert resp.status_code == 409
        assert resp.json["error"] == "User with this username or email already exists"

    @pytest.mark.parametrize(
        "payload",
        [
            {"username": "ab", "email": "a@b.co", "password": "secret1", "businessName": "X"},
            {"username": "valid", "email": "nope", "password": "secret1", "businessName": "X"},
            {"username": "valid", "email": "a@b.co", "password": "123", "businessName": "X"},
            {"username": "valid", "email": "a@b.co", "password": "secret1"},
        ],
    )
    def test_invalid_registration(self, client, db_session, payload):
        assert client.post("/api/auth/register", json=payload).status_code == 400

    def test_login_by_username_or_email(self, client, business_a):
        for login in ("acme", "acme@example.com"):
            resp = client.post("/api/auth/login", json={"login": login, "password": "secret123"})
            assert resp.status_code == 200
            assert resp.json["token"]

    def test_login_wrong_password(self, client, business_a):
        resp = client.post("/api/auth/login", json={"login": "acme", "password": "wrong-pass"})
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, headers_a):
        assert client.post("/api/auth/logout", headers=headers_a).status_code == 200
        assert client.get("/api/auth/profile", headers=headers_a).status_code == 401


class TestSessions:

    @pytest.mark.parametrize("path", ["/api/products", "/api/contacts", "/api/transactions", "/api/reports/dashboard"])
    def test_requires_auth(self, client, db_session, path):
        assert client.get(path).status_code == 401
        assert client.get(path, headers={"Authorization": "Bearer bogus"}).status_code == 401

    def test_idle_session_is_rejected(self, client, db_session, business_a, headers_a):
        session = db_session.query(SessionToken).filter_by(business_id=business_a.id).one()
        session.last_used_at = utcnow() - timedelta(hours=3)
        db_session.commit()

        assert client.get("/api/auth/profile", headers=headers_a).status_code == 401

    def test_deactivated_business_is_rejected(self, client, db_session, business_a, headers_a):
        business_a.is_active = False
        db_session.commit()

        assert client.get("/api/products", headers=headers_a).status_code == 401

    def test_cleanup_removes_old_revoked_sessions(self, db_session, business_a):
        session, token = session_service.create_session(business_a.id)
        session_service.revoke_session(token)
        session.created_at = utcnow() - timedelta(days=31)
        db_session.commit()

        assert session_service.cleanup_expired_sessions() == 1


class TestTenantIsolation:

    def test_cannot_read_foreign_product(self, client, headers_a, product_b):
        assert client.get(f"/api/products/{product_b.id}", headers=headers_a).status_code == 404

    def test_cannot_update_or_delete_foreign_product(self, client, headers_a, product_b, read_stock):
        assert client.put(f"/api/products/{product_b.id}", json={"name": "Hijacked"}, headers=headers_a).status_code == 404
        assert client.delete(f"/api/products/{product_b.id}", headers=headers_a).status_code == 404
        assert client.patch(
            f"/api/products/{product_b.id}/stock",
            json={"action": "decrease", "quantity": 1},
            headers=headers_a,
        ).status_code == 404
        assert read_stock(product_b.id) == 7

    def test_lists_are_scoped(self, client, headers_a, headers_b, product_a, product_b, customer_a, customer_b):
        resp = client.get("/api/products", headers=headers_a)
        assert [p["id"] for p in resp.json["products"]] == [product_a.id]

        resp = client.get("/api/contacts", headers=headers_b)
        assert [c["id"] for c in resp.json["contacts"]] == [customer_b.id]

    def test_cannot_read_foreign_contact_or_history(self, client, headers_a, customer_b):
        assert client.get(f"/api/contacts/{customer_b.id}", headers=headers_a).status_code == 404
        assert client.get(f"/api/transactions/contact/{customer_b.id}", headers=headers_a).status_code == 404

    def test_cannot_sell_foreign_product(self, client, headers_a, customer_a, product_b, read_stock):
        resp = client.post("/api/transactions", json={
            "kind": "sale",
            "customerRef": customer_a.id,
            "lineItems": [{"productRef": product_b.id, "quantity": 1, "unitPrice": 1}],
        }, headers=headers_a)

        assert resp.status_code == 404
        assert read_stock(product_b.id) == 7

    def test_cannot_read_foreign_transaction(self, client, headers_b, headers_a, product_b, customer_b):
        txn = client.post("/api/transactions", json={
            "kind": "sale",
            "customerRef": customer_b.id,
            "lineItems": [{"productRef": product_b.id, "quantity": 1, "unitPrice": 1}],
        }, headers=headers_b).json["transaction"]

        assert client.get(f"/api/transactions/{txn['id']}", headers=headers_a).status_code == 404
        assert client.get("/api/transactions", headers=headers_a).json["transactions"] == []


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json["checks"]["database"]["status"] == "healthy"


def test_unknown_route_is_json_404(client, db_session):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.json == {"error": "Route not found"}
