# Overview: Flask API routes for management reports over customers and stock.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..services import reporting_service
from ..services.queries import parse_limit
from ..validation import ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/customer-sales")
@require_auth
@require_role("admin", "manager")
def customer_sales_report():
    """Query params: start_date, end_date (YYYY-MM-DD, default last 30 days), limit."""
    try:
        raw_limit = request.args.get("limit")
        report = reporting_service.customer_sales_report(
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            limit=parse_limit(raw_limit) if raw_limit else None,
        )
        return jsonify(report), 200
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/stock-levels")
@require_auth
@require_role("admin", "manager")
def stock_level_report():
    return jsonify(reporting_service.stock_level_report()), 200


@reports_bp.get("/inventory-valuation")
@require_auth
@require_role("admin", "manager")
def inventory_valuation_report():
    return jsonify(reporting_service.inventory_valuation_report()), 200
