from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth
from ..errors import StockbookError
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/inventory")
@require_auth
def inventory_report():
    try:
        report = reporting_service.inventory_report(
            g.business_id,
            low_stock=request.args.get("lowStock"),
            category=request.args.get("category"),
            sort_by=request.args.get("sortBy", "name"),
            sort_order=request.args.get("sortOrder", "asc"),
        )
        return jsonify(report), 200
    except StockbookError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/transactions")
@require_auth
def transaction_report():
    try:
        report = reporting_service.transaction_report(
            g.business_id,
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
            kind=request.args.get("type"),
            period=request.args.get("period"),
        )
        return jsonify(report), 200
    except StockbookError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/dashboard")
@require_auth
def dashboard():
    return jsonify(reporting_service.dashboard_summary(g.business_id)), 200
