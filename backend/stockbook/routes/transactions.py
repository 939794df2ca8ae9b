# Overview: Flask API routes for transactions; parses input and returns JSON responses.

# backend/stockbook/routes/transactions.py
"""
Transaction API routes.

Transactions are created once and never updated or deleted. All routes are
scoped to the authenticated business (g.business_id).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import StockbookError
from ..services import transaction_service
from ..decorators import require_auth


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    """
    Create a sale or purchase and apply its stock effects atomically.

    Body: {kind, customerRef | vendorRef, lineItems: [{productRef, quantity, unitPrice}]}
    201 -> {"transaction": {...}}
    400 -> invalid request or insufficient stock (details: productId, available, required)
    404 -> contact or product not found for this business
    503 -> storage unavailable, nothing committed
    """
    try:
        payload = request.get_json(silent=True)
        transaction = transaction_service.create_transaction(g.business_id, payload)
        return jsonify({
            "message": "Transaction created successfully",
            "transaction": transaction.to_dict(),
        }), 201

    except StockbookError as e:
        current_app.logger.info("Transaction rejected for business %s: %s", g.business_id, e.message)
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    Query params: type (sale|purchase), startDate, endDate, page, limit
    """
    try:
        items, pagination = transaction_service.list_transactions(
            g.business_id,
            kind=request.args.get("type"),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
    except StockbookError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({
        "transactions": [t.to_dict() for t in items],
        "pagination": pagination,
    }), 200


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(g.business_id, transaction_id)
    except StockbookError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"transaction": transaction.to_dict()}), 200


@transactions_bp.get("/contact/<int:contact_id>")
@require_auth
def list_contact_transactions_route(contact_id: int):
    """Transactions of one customer or vendor, newest first."""
    try:
        contact, items, pagination = transaction_service.list_transactions_for_contact(
            g.business_id,
            contact_id,
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
    except StockbookError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({
        "contact": contact.to_dict(),
        "transactions": [t.to_dict() for t in items],
        "pagination": pagination,
    }), 200
