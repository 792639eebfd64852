# Overview: Flask API routes for invoice operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..services import invoices_service
from ..services.queries import parse_limit, parse_page
from ..validation import ConflictError, NotFoundError, ValidationError, parse_id

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Body: {sale_id, items?, customer_id?, payment_method?, due_date?, terms?, notes?}

    Items default to the sale's lines.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        customer_id = data.get("customer_id")
        invoice = invoices_service.create_invoice(
            parse_id(data.get("sale_id"), "sale_id"),
            g.current_user.id,
            data.get("items"),
            customer_id=parse_id(customer_id, "customer_id") if customer_id is not None else None,
            payment_method=data.get("payment_method"),
            due_date=data.get("due_date"),
            terms=data.get("terms"),
            notes=data.get("notes"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(invoice), 201


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """Query params: customer_id, status, payment_status, start_date, end_date, page, limit."""
    args = request.args
    try:
        customer_id = args.get("customer_id")
        result = invoices_service.list_invoices(
            customer_id=parse_id(customer_id, "customer_id") if customer_id else None,
            status=args.get("status") or None,
            payment_status=args.get("payment_status") or None,
            start_date=args.get("start_date"),
            end_date=args.get("end_date"),
            page=parse_page(args.get("page")),
            limit=parse_limit(args.get("limit")),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(result), 200


@invoices_bp.get("/stats")
@require_auth
@require_role("admin", "manager")
def invoice_stats_route():
    return jsonify(invoices_service.invoice_stats()), 200


@invoices_bp.get("/number/<invoice_number>")
@require_auth
def get_by_number_route(invoice_number: str):
    try:
        return jsonify(invoices_service.get_invoice_by_number(invoice_number)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@invoices_bp.get("/<invoice_id>")
@require_auth
def get_invoice_route(invoice_id):
    try:
        return jsonify(invoices_service.get_invoice(parse_id(invoice_id, "invoice id"))), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@invoices_bp.post("/<invoice_id>/payment-status")
@require_auth
@require_role("admin", "manager")
def update_payment_status_route(invoice_id):
    """Body: {payment_status, paid_amount?}"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        invoice_id = parse_id(invoice_id, "invoice id")
        payment_status = data.get("payment_status")
        if not payment_status:
            raise ValidationError("payment_status is required")
        invoice = invoices_service.update_payment_status(
            invoice_id, payment_status, data.get("paid_amount"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(invoice), 200
