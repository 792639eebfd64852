# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/retailpos/routes/sales.py
"""Sales API routes: sale creation, lookups, status changes and sales reports."""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..services import reporting_service, sales_service
from ..services.inventory_service import InsufficientStockError
from ..services.queries import SaleQuery
from ..services.sales_service import SaleError
from ..validation import NotFoundError, ValidationError, parse_id


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale and decrement stock for every item, all-or-nothing.

    Body: {items: [{product_id, quantity, unit_price?, discount?}], payment_method,
           customer_id?, status?, discount?, notes?, payment_reference?,
           card_last4?, card_brand?}

    The authenticated user is recorded as the staff member.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        customer_id = data.get("customer_id")
        sale = sales_service.create_sale(
            data.get("items"),
            staff_user_id=g.current_user.id,
            payment_method=data.get("payment_method"),
            customer_id=parse_id(customer_id, "customer_id") if customer_id is not None else None,
            status=data.get("status"),
            discount=data.get("discount") or 0,
            notes=data.get("notes"),
            payment_reference=data.get("payment_reference"),
            card_last4=data.get("card_last4"),
            card_brand=data.get("card_brand"),
        )
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale), 201


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Query params: customer_id, staff_user_id, status, payment_method,
    start_date, end_date (YYYY-MM-DD or ISO datetime; a bare end date is inclusive),
    sort_by (created_at|total|transaction_number|status), sort_order, page, limit.
    """
    try:
        query = SaleQuery.from_args(request.args)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(sales_service.list_sales(query)), 200


@sales_bp.get("/daily/<date>")
@require_auth
def daily_sales_route(date: str):
    try:
        return jsonify(reporting_service.daily_sales(date)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@sales_bp.get("/summary")
@require_auth
def sales_summary_route():
    try:
        report = reporting_service.sales_summary(
            request.args.get("start_date"),
            request.args.get("end_date"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(report), 200


@sales_bp.get("/transaction/<transaction_number>")
@require_auth
def get_by_transaction_number_route(transaction_number: str):
    try:
        return jsonify(sales_service.get_sale_by_transaction_number(transaction_number)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@sales_bp.get("/<sale_id>")
@require_auth
def get_sale_route(sale_id):
    try:
        return jsonify(sales_service.get_sale(parse_id(sale_id, "sale id"))), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@sales_bp.post("/<sale_id>/status")
@require_auth
@require_role("admin", "manager")
def update_status_route(sale_id):
    """New status comes from ?status= or the JSON body {"status": ...}."""
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    status = request.args.get("status") or body.get("status")

    try:
        sale_id = parse_id(sale_id, "sale id")
        if not status:
            raise ValidationError("status is required")
        sale = sales_service.update_sale_status(sale_id, status)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update sale status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale), 200
