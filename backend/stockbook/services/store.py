# Overview: Tenant-scoped persistence helpers shared by every service.

"""
Tenant-scoped Store.

MULTI-TENANT: every lookup takes the caller's business_id explicitly and
filters on it; nothing here reads tenant identity from request globals.
A record owned by another business is indistinguishable from a missing one.

Stock is only ever changed through apply_stock_delta(), a conditional
UPDATE that refuses to take stock below zero. Both the transaction commit
path and the direct stock-adjustment endpoint go through it.
"""

from __future__ import annotations

import math

from sqlalchemy import select, update

from ..errors import InsufficientStock, InvalidRequest, NotFound
from ..extensions import db
from ..models import Product
from ..validation import MAX_INTEGER
from .concurrency import lock_for_update


DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def find_one(model, record_id: int, business_id: int, *, lock: bool = False):
    """Return the tenant's record with this id, or None."""
    if not 0 < record_id <= MAX_INTEGER:
        return None
    query = db.session.query(model).filter(
        model.id == record_id,
        model.business_id == business_id,
    )
    if lock:
        # Locked reads must see the committed row, not the identity map copy
        query = lock_for_update(query).populate_existing()
    return query.first()


def require_one(model, record_id: int, business_id: int, *, label: str | None = None, lock: bool = False):
    """find_one() that raises NotFound instead of returning None."""
    record = find_one(model, record_id, business_id, lock=lock)
    if record is None:
        raise NotFound(f"{label or model.__name__} not found")
    return record


def find_many(model, business_id: int, *criteria):
    """Query over the tenant's records of `model`, narrowed by `criteria`."""
    return db.session.query(model).filter(model.business_id == business_id, *criteria)


def find_by_ids(model, ids, business_id: int) -> dict:
    """Batch-fetch the tenant's records by id; ids that don't resolve are absent."""
    ids = {i for i in ids if 0 < i <= MAX_INTEGER}
    if not ids:
        return {}
    rows = find_many(model, business_id, model.id.in_(ids)).all()
    return {row.id: row for row in rows}


def insert(record):
    """Stage a new record in the current unit of work and assign its id."""
    db.session.add(record)
    db.session.flush()
    return record


def current_stock(product_id: int, business_id: int) -> int | None:
    return db.session.execute(
        select(Product.stock).where(
            Product.id == product_id,
            Product.business_id == business_id,
        )
    ).scalar()


def apply_stock_delta(product_id: int, delta: int, business_id: int, *, product_name: str | None = None) -> int:
    """
    Atomically add `delta` to a product's stock and return the new level.

    The bound is checked by the UPDATE itself (stock + delta >= 0), so two
    writers can never both pass it against the same units. Zero rows
    affected means the product is missing (NotFound) or short
    (InsufficientStock, with the stock seen at write time).

    Must run inside run_atomic(); the caller owns commit/rollback.
    """
    result = db.session.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.business_id == business_id,
            Product.stock + delta >= 0,
        )
        .values(stock=Product.stock + delta, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        available = current_stock(product_id, business_id)
        if available is None:
            raise NotFound("Product not found", details={"productId": product_id})
        raise InsufficientStock(product_id, product_name, available, -delta)

    return current_stock(product_id, business_id)


def parse_page_args(page, limit) -> tuple[int, int]:
    """Normalize page/limit query values (1-indexed page, 1..100 limit)."""
    try:
        page = int(page) if page not in (None, "") else 1
        limit = int(limit) if limit not in (None, "") else DEFAULT_PAGE_SIZE
    except (TypeError, ValueError):
        raise InvalidRequest("page and limit must be integers")
    if page < 1:
        raise InvalidRequest("Page must be a positive integer")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise InvalidRequest(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    return page, limit


def paginate(query, page: int, limit: int) -> tuple[list, dict]:
    """Apply offset/limit to `query`; returns (items, pagination block)."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        "currentPage": page,
        "totalPages": math.ceil(total / limit) if total else 0,
        "totalItems": total,
        "itemsPerPage": limit,
    }
