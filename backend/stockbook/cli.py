# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (development shortcut; use `flask db upgrade` otherwise).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Create the demo business with products, contacts and sample transactions.
#
# Business (tenant) management:
# - python -m flask businesses list
# - python -m flask businesses create --username acme --email owner@acme.test --password "secret1" --name "Acme"
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired or revoked session tokens older than 30 days.

import click
from flask.cli import with_appcontext

from .errors import StockbookError
from .extensions import db
from .models import Business, Product, Contact, Transaction
from .services import auth_service
from .services import contacts_service
from .services import products_service
from .services import session_service
from .services import transaction_service


DEMO_BUSINESS = {
    "username": "demo_user",
    "email": "demo@example.com",
    "password": "demo123",
    "businessName": "Demo Electronics Store",
}

DEMO_PRODUCTS = [
    ("iPhone 15 Pro", "Latest Apple smartphone with advanced features", "999.99", 25, "Smartphones"),
    ("Samsung Galaxy S24", "Premium Android smartphone", "899.99", 30, "Smartphones"),
    ('MacBook Pro 16"', "High-performance laptop for professionals", "2499.99", 15, "Laptops"),
    ("Dell XPS 13", "Compact and powerful ultrabook", "1299.99", 20, "Laptops"),
    ("iPad Air", "Versatile tablet for work and entertainment", "599.99", 40, "Tablets"),
    ("AirPods Pro", "Wireless earbuds with noise cancellation", "249.99", 50, "Accessories"),
    ("Sony WH-1000XM5", "Premium noise-canceling headphones", "399.99", 8, "Accessories"),
    ("Apple Watch Series 9", "Advanced smartwatch with health features", "399.99", 35, "Wearables"),
    ("Gaming Mouse", "High-precision gaming mouse", "79.99", 5, "Accessories"),
    ("Wireless Keyboard", "Ergonomic wireless keyboard", "129.99", 0, "Accessories"),
]

DEMO_CONTACTS = [
    ("John Smith", "+1234567890", "john.smith@email.com", "123 Main St, New York, NY 10001", "customer"),
    ("Sarah Johnson", "+1234567891", "sarah.johnson@email.com", "456 Oak Ave, Los Angeles, CA 90210", "customer"),
    ("Mike Wilson", "+1234567892", "mike.wilson@email.com", "789 Pine St, Chicago, IL 60601", "customer"),
    ("Tech Distributors Inc", "+1234567894", "orders@techdist.com", "100 Industrial Blvd, San Jose, CA 95110", "vendor"),
    ("Global Electronics Supply", "+1234567895", "sales@globalelec.com", "200 Commerce Way, Austin, TX 78701", "vendor"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' for demo data.")


@system_group.command('seed')
@with_appcontext
def seed():
    """
    Create the demo business and its catalog.

    Sample sales and purchases are committed through the transaction
    service, so stock levels reflect them exactly as an API client would.
    """
    db.create_all()

    existing = db.session.query(Business).filter_by(username=DEMO_BUSINESS["username"]).first()
    if existing:
        click.echo(f"WARN  Demo business already exists (ID: {existing.id}), skipping...")
        return

    try:
        business = auth_service.register_business(DEMO_BUSINESS)
        click.echo(f"PASS Created business: {business.business_name} (ID: {business.id})")

        products = [
            products_service.create_product(business.id, {
                "name": name,
                "description": description,
                "price": price,
                "stock": stock,
                "category": category,
            })
            for name, description, price, stock, category in DEMO_PRODUCTS
        ]
        click.echo(f"PASS Created {len(products)} products")

        contacts = [
            contacts_service.create_contact(business.id, {
                "name": name,
                "phone": phone,
                "email": email,
                "address": address,
                "type": role,
            })
            for name, phone, email, address, role in DEMO_CONTACTS
        ]
        click.echo(f"PASS Created {len(contacts)} contacts")

        customers = [c for c in contacts if c.role == "customer"]
        vendors = [c for c in contacts if c.role == "vendor"]

        samples = [
            {
                "kind": "sale",
                "customerRef": customers[0].id,
                "lineItems": [
                    {"productRef": products[0].id, "quantity": 1, "unitPrice": "999.99"},
                    {"productRef": products[5].id, "quantity": 1, "unitPrice": "249.99"},
                ],
            },
            {
                "kind": "sale",
                "customerRef": customers[1].id,
                "lineItems": [{"productRef": products[2].id, "quantity": 1, "unitPrice": "2499.99"}],
            },
            {
                "kind": "purchase",
                "vendorRef": vendors[0].id,
                "lineItems": [
                    {"productRef": products[9].id, "quantity": 20, "unitPrice": "89.99"},
                    {"productRef": products[8].id, "quantity": 15, "unitPrice": "55.00"},
                ],
            },
            {
                "kind": "sale",
                "customerRef": customers[2].id,
                "lineItems": [{"productRef": products[4].id, "quantity": 2, "unitPrice": "599.99"}],
            },
        ]
        for payload in samples:
            transaction_service.create_transaction(business.id, payload)
        click.echo(f"PASS Created {len(samples)} transactions")

    except StockbookError as e:
        db.session.rollback()
        click.echo(f"FAIL Seeding failed: {e.message}")
        return

    click.echo("\nDemo Credentials:")
    click.echo(f"   {DEMO_BUSINESS['username']} -> {DEMO_BUSINESS['email']} / {DEMO_BUSINESS['password']}")


@click.group('businesses')
def businesses_group():
    """Business (tenant) management commands."""


@businesses_group.command('list')
@with_appcontext
def list_businesses():
    """List all businesses with catalog sizes."""
    businesses = db.session.query(Business).order_by(Business.id).all()

    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Business':<30} {'Active':<8} {'Products':<9} {'Contacts':<9} {'Txns'}")
    click.echo("="*90)

    for b in businesses:
        product_count = db.session.query(Product).filter_by(business_id=b.id).count()
        contact_count = db.session.query(Contact).filter_by(business_id=b.id).count()
        txn_count = db.session.query(Transaction).filter_by(business_id=b.id).count()
        active_str = "Yes" if b.is_active else "No"

        click.echo(
            f"{b.id:<5} {b.username:<20} {b.business_name:<30} {active_str:<8} "
            f"{product_count:<9} {contact_count:<9} {txn_count}"
        )

    click.echo("="*90 + "\n")


@businesses_group.command('create')
@click.option('--username', prompt=True, help='Login username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password (6+ characters)')
@click.option('--name', 'business_name', prompt='Business name', help='Display name of the business')
@with_appcontext
def create_business_cli(username, email, password, business_name):
    """Create a new business (tenant)."""
    try:
        business = auth_service.register_business({
            "username": username,
            "email": email,
            "password": password,
            "businessName": business_name,
        })
    except StockbookError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created business: {business.business_name} (ID: {business.id}, Username: {business.username})")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired or revoked session tokens older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session tokens")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(businesses_group)
    app.cli.add_command(maintenance_group)
