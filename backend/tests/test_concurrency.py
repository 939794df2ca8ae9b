# Overview: Concurrency tests for stock commits against a file-backed SQLite database.

"""
Concurrent commit tests.

Each worker runs in its own app context (its own session and connection),
the way concurrent requests do. With N single-unit sales racing for S units,
exactly min(N, S) succeed and stock never goes below zero.
"""

import os
import tempfile
import threading

import pytest

from stockbook import create_app
from stockbook.errors import InsufficientStock
from stockbook.extensions import db
from stockbook.models import Business, Contact, Product, Transaction
from stockbook.services import products_service, transaction_service


WORKERS = 12


@pytest.fixture
def file_app():
    tmpdir = tempfile.TemporaryDirectory()
    db_path = os.path.join(tmpdir.name, "concurrency.db")
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
        "STORE_RETRY_ATTEMPTS": 5,
        "STORE_RETRY_BACKOFF": 0.05,
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()
    tmpdir.cleanup()


def _seed(app, stock: int) -> dict:
    with app.app_context():
        business = Business(
            username="concurrent",
            email="concurrent@example.com",
            password_hash="dummy",
            business_name="Concurrent Store",
        )
        db.session.add(business)
        db.session.flush()

        product = Product(business_id=business.id, name="Hot Item", category="Deals", price_cents=500, stock=stock)
        customer = Contact(business_id=business.id, name="Racer", phone="+15550009999", role="customer")
        db.session.add_all([product, customer])
        db.session.commit()

        return {"business_id": business.id, "product_id": product.id, "customer_id": customer.id}


def _run_workers(app, target, count: int):
    successes = []
    rejections = []
    errors = []
    lock = threading.Lock()
    barrier = threading.Barrier(count)

    def worker():
        with app.app_context():
            try:
                barrier.wait()
                result = target()
                with lock:
                    successes.append(result)
            except InsufficientStock as exc:
                with lock:
                    rejections.append(exc)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    return successes, rejections, errors


def _final_state(app, ids):
    with app.app_context():
        stock = db.session.get(Product, ids["product_id"]).stock
        committed = db.session.query(Transaction).filter_by(business_id=ids["business_id"]).count()
        db.session.remove()
    return stock, committed


@pytest.mark.parametrize("stock", [5, WORKERS, WORKERS + 3])
def test_concurrent_single_unit_sales(file_app, stock):
    ids = _seed(file_app, stock)
    payload = {
        "kind": "sale",
        "customerRef": ids["customer_id"],
        "lineItems": [{"productRef": ids["product_id"], "quantity": 1, "unitPrice": 5}],
    }

    successes, rejections, errors = _run_workers(
        file_app,
        lambda: transaction_service.create_transaction(ids["business_id"], payload).id,
        WORKERS,
    )

    expected = min(WORKERS, stock)
    assert errors == []
    assert len(successes) == expected
    assert len(rejections) == WORKERS - expected

    final_stock, committed = _final_state(file_app, ids)
    assert final_stock == stock - expected
    assert final_stock >= 0
    assert committed == expected


def test_concurrent_adjustments_and_sales_never_oversell(file_app):
    ids = _seed(file_app, 6)
    sale_payload = {
        "kind": "sale",
        "customerRef": ids["customer_id"],
        "lineItems": [{"productRef": ids["product_id"], "quantity": 2, "unitPrice": 5}],
    }
    counter = {"n": 0}
    counter_lock = threading.Lock()

    def mixed():
        with counter_lock:
            counter["n"] += 1
            turn = counter["n"]
        if turn % 2:
            return ("sale", transaction_service.create_transaction(ids["business_id"], sale_payload).id)
        products_service.adjust_stock(
            ids["business_id"], ids["product_id"], {"action": "decrease", "quantity": 2}
        )
        return ("adjust", None)

    successes, rejections, errors = _run_workers(file_app, mixed, 8)

    assert errors == []
    # 6 units, 2 per operation
    assert len(successes) == 3
    assert len(rejections) == 5

    final_stock, committed = _final_state(file_app, ids)
    assert final_stock == 0
    assert committed == sum(1 for kind, _ in successes if kind == "sale")
