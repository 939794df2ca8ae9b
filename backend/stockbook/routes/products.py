# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockbook/routes/products.py
"""
Product management routes.

MULTI-TENANT: All product operations are scoped to the caller's business
(g.business_id, set by @require_auth).
"""
from flask import Blueprint, request, g, current_app

from ..errors import StockbookError
from ..services import products_service
from ..decorators import require_auth

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products with search and pagination.

    Query params:
    - search: substring of name or description (case-insensitive)
    - category: substring of category (case-insensitive)
    - page: int (default 1)
    - limit: int (default 10, max 100)
    """
    try:
        items, pagination = products_service.list_products(
            g.business_id,
            search=request.args.get("search"),
            category=request.args.get("category"),
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
    except StockbookError as e:
        return e.to_dict(), e.status_code

    return {"products": [p.to_dict() for p in items], "pagination": pagination}, 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(g.business_id, product_id)
    except StockbookError as e:
        return e.to_dict(), e.status_code
    return {"product": product.to_dict()}, 200


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(g.business_id, payload)
    except StockbookError as e:
        return e.to_dict(), e.status_code

    return {"message": "Product created successfully", "product": product.to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    """Update name, description, price or category. Stock is not writable here."""
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(g.business_id, product_id, payload)
    except StockbookError as e:
        return e.to_dict(), e.status_code

    return {"message": "Product updated successfully", "product": product.to_dict()}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(g.business_id, product_id)
    except StockbookError as e:
        return e.to_dict(), e.status_code

    return {"message": "Product deleted successfully"}, 200


@products_bp.patch("/<int:product_id>/stock")
@require_auth
def adjust_stock_route(product_id: int):
    """
    Increase or decrease stock directly.

    Body: {"action": "increase" | "decrease", "quantity": int >= 1}
    A decrease that would take stock below zero returns 400 with the
    available and required quantities.
    """
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.adjust_stock(g.business_id, product_id, payload)
    except StockbookError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    return {"message": f"Stock {payload.get('action')}d successfully", "product": product.to_dict()}, 200
