# backend/stockbook/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: Every operation takes the caller's business_id and only sees
that business's products.

STOCK: create_product() sets the initial stock. After that, stock only moves
through adjust_stock() or a committed transaction, both of which use
store.apply_stock_delta(); update_product() cannot write it.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import Conflict, InvalidRequest
from ..extensions import db
from ..models import Product, TransactionLine
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_stock_adjustment,
)
from . import store
from .concurrency import run_atomic

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "description": "description",
        "price": "price_cents",
        "stock": "stock",
        "category": "category",
    },
    required_on_create=frozenset({"name", "price", "stock", "category"}),
)

# No "stock": direct writes would bypass the conditional update
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "description": "description",
        "price": "price_cents",
        "category": "category",
    },
)


def list_products(
    business_id: int,
    *,
    search: str | None = None,
    category: str | None = None,
    page=None,
    limit=None,
) -> tuple[list[Product], dict]:
    """
    Tenant-scoped product listing with pagination.

    search: case-insensitive substring of name or description
    category: case-insensitive substring of category
    """
    page, limit = store.parse_page_args(page, limit)

    criteria = []
    if search:
        pattern = f"%{search.strip()}%"
        criteria.append(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    if category:
        criteria.append(Product.category.ilike(f"%{category.strip()}%"))

    query = store.find_many(Product, business_id, *criteria).order_by(
        Product.created_at.desc(), Product.id.desc()
    )
    return store.paginate(query, page, limit)


def get_product(business_id: int, product_id: int) -> Product:
    return store.require_one(Product, product_id, business_id, label="Product")


def create_product(business_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)

    product = Product(business_id=business_id, **patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(business_id: int, product_id: int, payload: dict) -> Product:
    if isinstance(payload, dict) and "stock" in payload:
        raise InvalidRequest("Stock can only be changed through the stock adjustment endpoint")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op():
        product = store.require_one(Product, product_id, business_id, label="Product", lock=True)
        for key, value in patch.items():
            setattr(product, key, value)
        return product

    return run_atomic(_op)


def delete_product(business_id: int, product_id: int) -> None:
    def _op():
        product = store.require_one(Product, product_id, business_id, label="Product", lock=True)
        referenced = db.session.query(TransactionLine.id).filter_by(product_id=product.id).first()
        if referenced is not None:
            raise Conflict("Product is referenced by transactions and cannot be deleted")
        db.session.delete(product)

    run_atomic(_op)


def adjust_stock(business_id: int, product_id: int, payload: dict) -> Product:
    """
    Direct stock adjustment (increase/decrease).

    Uses the same conditional update as transaction commits, so a decrease
    can never take stock below zero even when it races a sale.
    """
    action, quantity = parse_stock_adjustment(payload)
    product = get_product(business_id, product_id)
    delta = quantity if action == "increase" else -quantity

    new_stock = run_atomic(
        lambda: store.apply_stock_delta(product.id, delta, business_id, product_name=product.name)
    )
    current_app.logger.info(
        "Stock %sd by %d for product %s (business %s), now %s",
        action, quantity, product.id, business_id, new_stock,
    )
    return get_product(business_id, product_id)
