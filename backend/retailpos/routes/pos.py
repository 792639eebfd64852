# Overview: Flask API routes for the register; quick product and customer lookups.

"""
Lookups the checkout screen makes while a sale is being rung up. Results are
short lists capped at POS_SEARCH_LIMIT; sales themselves are recorded through
POST /api/sales.
"""
from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth
from ..services import customers_service, products_service, sales_service
from ..services.queries import parse_limit
from ..validation import NotFoundError, ValidationError, parse_id

pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _search_limit() -> int:
    return int(current_app.config.get("POS_SEARCH_LIMIT", 10))


@pos_bp.get("/products/search")
@require_auth
def search_products_route():
    """Active, in-stock products. Query params: q."""
    query = (request.args.get("q") or "").strip() or None
    return jsonify({"items": products_service.search_products_for_sale(query, limit=_search_limit())})


@pos_bp.get("/products/<product_id>")
@require_auth
def get_product_route(product_id):
    try:
        return jsonify(products_service.get_product_for_sale(parse_id(product_id, "product id")))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@pos_bp.get("/customers/search")
@require_auth
def search_customers_route():
    """Active customers. Query params: q."""
    query = (request.args.get("q") or "").strip() or None
    return jsonify({"items": customers_service.search_customers_for_sale(query, limit=_search_limit())})


@pos_bp.get("/customers/<customer_id>")
@require_auth
def get_customer_route(customer_id):
    try:
        return jsonify(customers_service.get_customer_for_sale(parse_id(customer_id, "customer id")))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@pos_bp.get("/sales/recent")
@require_auth
def recent_sales_route():
    """Latest completed sales. Query params: limit (default 10)."""
    raw = request.args.get("limit")
    try:
        limit = parse_limit(raw) if raw else 10
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": sales_service.recent_sales(limit)})
