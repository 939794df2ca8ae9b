"""
Pytest fixtures for Stockbook backend tests.

Provides test database setup, two tenants with catalogs, and auth headers.
"""

import pytest
from sqlalchemy import select

from stockbook import create_app
from stockbook.extensions import db
from stockbook.models import Business, Product, Contact
from stockbook.services.auth_service import hash_password
from stockbook.services.session_service import create_session


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
    'STORE_RETRY_BACKOFF': 0.01,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_business(db_session, username: str, business_name: str) -> Business:
    business = Business(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password("secret123"),
        business_name=business_name,
        is_active=True,
    )
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def business_a(db_session):
    """Create Business A (first tenant)."""
    return make_business(db_session, "acme", "Acme Electronics")


@pytest.fixture(scope='function')
def business_b(db_session):
    """Create Business B (second tenant)."""
    return make_business(db_session, "beta", "Beta Hardware")


def make_product(db_session, business, name="Widget", stock=10, price_cents=1000, category="Gadgets"):
    product = Product(
        business_id=business.id,
        name=name,
        description=f"{name} description",
        category=category,
        price_cents=price_cents,
        stock=stock,
    )
    db_session.add(product)
    db_session.commit()
    return product


def make_contact(db_session, business, name="Jane Doe", role="customer", phone="+15550001111"):
    contact = Contact(
        business_id=business.id,
        name=name,
        phone=phone,
        email=f"{name.split()[0].lower()}@example.com",
        role=role,
    )
    db_session.add(contact)
    db_session.commit()
    return contact


@pytest.fixture(scope='function')
def product_a(db_session, business_a):
    """Product of Business A with 10 units in stock at 10.00."""
    return make_product(db_session, business_a)


@pytest.fixture(scope='function')
def product_a2(db_session, business_a):
    """Second product of Business A with 5 units in stock at 2.50."""
    return make_product(db_session, business_a, name="Gizmo", stock=5, price_cents=250, category="Parts")


@pytest.fixture(scope='function')
def product_b(db_session, business_b):
    """Product of Business B."""
    return make_product(db_session, business_b, name="Beta Widget", stock=7)


@pytest.fixture(scope='function')
def customer_a(db_session, business_a):
    return make_contact(db_session, business_a, name="Carol Customer", role="customer")


@pytest.fixture(scope='function')
def vendor_a(db_session, business_a):
    return make_contact(db_session, business_a, name="Victor Vendor", role="vendor", phone="+15550002222")


@pytest.fixture(scope='function')
def customer_b(db_session, business_b):
    return make_contact(db_session, business_b, name="Bob Buyer", role="customer")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_a(db_session, business_a):
    _session, token = create_session(business_a.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def headers_b(db_session, business_b):
    _session, token = create_session(business_b.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def read_stock(db_session):
    """Read stock straight from the database, bypassing the identity map."""
    def _read(product_id: int) -> int:
        return db_session.execute(select(Product.stock).where(Product.id == product_id)).scalar()
    return _read
