# Overview: Service-layer operations for reporting; read-only views over products and transactions.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..errors import InvalidRequest
from ..extensions import db
from ..models import Contact, Product, Transaction, TRANSACTION_KINDS
from ..money import from_cents
from ..time_utils import (
    REPORT_PERIODS,
    parse_iso_datetime,
    period_range,
    start_of_day,
    start_of_month,
    to_utc_z,
    utcnow,
)
from .transaction_service import with_refs


INVENTORY_SORT_FIELDS = {
    "name": Product.name,
    "stock": Product.stock,
    "price": Product.price_cents,
    "category": Product.category,
}
TOP_CONTACTS_LIMIT = 5


def _low_stock_threshold(value) -> int:
    if value in (None, ""):
        return current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    try:
        threshold = int(value)
    except (TypeError, ValueError):
        raise InvalidRequest("Low stock threshold must be a non-negative integer")
    if threshold < 0:
        raise InvalidRequest("Low stock threshold must be a non-negative integer")
    return threshold


def _stock_alert(p: Product) -> dict:
    return {"id": p.id, "name": p.name, "stock": p.stock, "category": p.category}


def inventory_report(
    business_id: int,
    *,
    low_stock=None,
    category: str | None = None,
    sort_by: str = "name",
    sort_order: str = "asc",
) -> dict:
    """Stock levels, inventory value and per-category totals for a business."""
    threshold = _low_stock_threshold(low_stock)

    if sort_by not in INVENTORY_SORT_FIELDS:
        raise InvalidRequest("Sort by must be name, stock, price, or category")
    if sort_order not in ("asc", "desc"):
        raise InvalidRequest("Sort order must be asc or desc")

    criteria = [Product.business_id == business_id]
    if category:
        criteria.append(Product.category.ilike(f"%{category.strip()}%"))

    sort_col = INVENTORY_SORT_FIELDS[sort_by]
    order = sort_col.desc() if sort_order == "desc" else sort_col.asc()
    products = db.session.query(Product).filter(*criteria).order_by(order, Product.id.asc()).all()

    category_rows = db.session.query(
        Product.category,
        func.count(Product.id).label("count"),
        func.coalesce(func.sum(Product.stock), 0).label("total_stock"),
        func.coalesce(func.sum(Product.stock * Product.price_cents), 0).label("total_value_cents"),
    ).filter(*criteria).group_by(Product.category).all()

    total_value_cents = sum(int(row.total_value_cents) for row in category_rows)
    low_stock_products = [p for p in products if p.stock <= threshold]
    out_of_stock_products = [p for p in products if p.stock == 0]

    return {
        "summary": {
            "totalProducts": len(products),
            "totalValue": from_cents(total_value_cents),
            "lowStockCount": len(low_stock_products),
            "outOfStockCount": len(out_of_stock_products),
            "lowStockThreshold": threshold,
        },
        "products": [p.to_dict() for p in products],
        "lowStockProducts": [_stock_alert(p) for p in low_stock_products],
        "outOfStockProducts": [_stock_alert(p) for p in out_of_stock_products],
        "categoryStats": {
            row.category: {
                "count": int(row.count),
                "totalStock": int(row.total_stock),
                "totalValue": from_cents(int(row.total_value_cents)),
            }
            for row in category_rows
        },
    }


def _resolve_range(
    start_date: str | None,
    end_date: str | None,
    period: str | None,
) -> tuple[datetime | None, datetime | None, bool]:
    """Returns (start, end, end_exclusive). A named period wins over explicit dates."""
    if period:
        if period not in REPORT_PERIODS:
            raise InvalidRequest("Period must be today, week, month, or year")
        start, end = period_range(period)
        return start, end, True
    try:
        return parse_iso_datetime(start_date), parse_iso_datetime(end_date), False
    except ValueError:
        raise InvalidRequest("startDate and endDate must be valid dates")


def _top_contacts(business_id: int, kind: str, ref_column, criteria: list) -> list[dict]:
    rows = db.session.query(
        Contact.id,
        Contact.name,
        func.sum(Transaction.total_amount_cents).label("total_cents"),
        func.count(Transaction.id).label("transaction_count"),
    ).select_from(Transaction).join(Contact, Contact.id == ref_column).filter(
        Transaction.business_id == business_id,
        Transaction.kind == kind,
        *criteria,
    ).group_by(Contact.id, Contact.name).order_by(
        func.sum(Transaction.total_amount_cents).desc(), Contact.id.asc()
    ).limit(TOP_CONTACTS_LIMIT).all()

    return [
        {
            "id": row.id,
            "name": row.name,
            "totalAmount": from_cents(int(row.total_cents)),
            "transactionCount": int(row.transaction_count),
        }
        for row in rows
    ]


def transaction_report(
    business_id: int,
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    kind: str | None = None,
    period: str | None = None,
) -> dict:
    """Sales vs purchases over a window, with the top customers and vendors."""
    start, end, end_exclusive = _resolve_range(start_date, end_date, period)

    criteria = []
    if start is not None:
        criteria.append(Transaction.occurred_at >= start)
    if end is not None:
        criteria.append(Transaction.occurred_at < end if end_exclusive else Transaction.occurred_at <= end)

    kind_criteria = list(criteria)
    if kind:
        if kind not in TRANSACTION_KINDS:
            raise InvalidRequest("Type must be sale or purchase")
        kind_criteria.append(Transaction.kind == kind)

    totals = {
        row.kind: (int(row.count), int(row.total_cents))
        for row in db.session.query(
            Transaction.kind,
            func.count(Transaction.id).label("count"),
            func.coalesce(func.sum(Transaction.total_amount_cents), 0).label("total_cents"),
        ).filter(Transaction.business_id == business_id, *kind_criteria).group_by(Transaction.kind)
    }
    sales_count, sales_cents = totals.get("sale", (0, 0))
    purchases_count, purchases_cents = totals.get("purchase", (0, 0))

    transactions = with_refs(
        db.session.query(Transaction).filter(Transaction.business_id == business_id, *kind_criteria)
    ).order_by(Transaction.occurred_at.desc(), Transaction.id.desc()).all()

    top_customers = [] if kind == "purchase" else _top_contacts(
        business_id, "sale", Transaction.customer_id, criteria
    )
    top_vendors = [] if kind == "sale" else _top_contacts(
        business_id, "purchase", Transaction.vendor_id, criteria
    )

    return {
        "summary": {
            "totalTransactions": sales_count + purchases_count,
            "salesCount": sales_count,
            "purchasesCount": purchases_count,
            "totalSales": from_cents(sales_cents),
            "totalPurchases": from_cents(purchases_cents),
            "netProfit": from_cents(sales_cents - purchases_cents),
            "period": period or "custom",
            "dateRange": {
                "startDate": to_utc_z(start),
                "endDate": to_utc_z(end),
            },
        },
        "transactions": [t.to_dict() for t in transactions],
        "topCustomers": top_customers,
        "topVendors": top_vendors,
    }


def _window_totals(business_id: int, since: datetime) -> dict:
    rows = db.session.query(
        Transaction.kind,
        func.count(Transaction.id).label("count"),
        func.coalesce(func.sum(Transaction.total_amount_cents), 0).label("total_cents"),
    ).filter(
        Transaction.business_id == business_id,
        Transaction.occurred_at >= since,
    ).group_by(Transaction.kind).all()

    by_kind = {row.kind: (int(row.count), int(row.total_cents)) for row in rows}
    sales = by_kind.get("sale", (0, 0))
    purchases = by_kind.get("purchase", (0, 0))
    return {
        "sales_cents": sales[1],
        "purchases_cents": purchases[1],
        "count": sales[0] + purchases[0],
    }


def dashboard_summary(business_id: int, *, now: datetime | None = None) -> dict:
    now = now or utcnow()
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)

    def _count(model, *criteria) -> int:
        return db.session.query(func.count(model.id)).filter(model.business_id == business_id, *criteria).scalar()

    low_stock = db.session.query(Product).filter(
        Product.business_id == business_id,
        Product.stock <= threshold,
    ).order_by(Product.stock.asc(), Product.name.asc()).all()

    today = _window_totals(business_id, start_of_day(now))
    month = _window_totals(business_id, start_of_month(now))

    return {
        "overview": {
            "totalProducts": _count(Product),
            "totalCustomers": _count(Contact, Contact.role == "customer"),
            "totalVendors": _count(Contact, Contact.role == "vendor"),
            "lowStockCount": len(low_stock),
        },
        "today": {
            "sales": from_cents(today["sales_cents"]),
            "purchases": from_cents(today["purchases_cents"]),
            "transactionCount": today["count"],
        },
        "thisMonth": {
            "sales": from_cents(month["sales_cents"]),
            "purchases": from_cents(month["purchases_cents"]),
            "profit": from_cents(month["sales_cents"] - month["purchases_cents"]),
            "transactionCount": month["count"],
        },
        "alerts": {
            "lowStockProducts": [_stock_alert(p) for p in low_stock],
        },
    }
