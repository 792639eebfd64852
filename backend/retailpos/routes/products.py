# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/retailpos/routes/products.py
"""
Product catalog routes.

All routes require authentication. Catalog writes and stock corrections
require the manager or admin role.
"""
from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_role
from ..models import Product
from ..services import inventory_service, products_service
from ..services.inventory_service import InsufficientStockError
from ..services.queries import ProductQuery
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    parse_id,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"sku", "name", "cost_price", "selling_price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created, 201


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query params:
    - search, category, supplier_id, min_price, max_price
    - in_stock, is_active: true/false
    - sort_by: name|sku|category|selling_price|quantity|created_at
    - sort_order: asc|desc
    - page (1-indexed), limit (default 20, max 100)
    """
    try:
        query = ProductQuery.from_args(request.args)
    except ValidationError as e:
        return {"error": str(e)}, 400

    return products_service.list_products(query)


@products_bp.get("/low-stock")
@require_auth
def low_stock_route():
    items = products_service.list_low_stock()
    return {"items": items, "count": len(items)}


@products_bp.get("/categories")
@require_auth
def categories_route():
    return {"categories": products_service.list_categories()}


@products_bp.get("/categories/<category>/subcategories")
@require_auth
def subcategories_route(category: str):
    return {"category": category, "subcategories": products_service.list_subcategories(category)}


@products_bp.get("/sku/<sku>")
@require_auth
def get_by_sku_route(sku: str):
    try:
        return products_service.get_product_by_sku(sku)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.get("/<product_id>")
@require_auth
def get_product_route(product_id):
    try:
        return products_service.get_product(parse_id(product_id, "product id"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.route("/<product_id>", methods=["PATCH", "PUT"])
@require_auth
@require_role("admin", "manager")
def update_product_route(product_id):
    payload = request.get_json(silent=True) or {}

    try:
        product_id = parse_id(product_id, "product id")
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        return products_service.update_product(product_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500


@products_bp.delete("/<product_id>")
@require_auth
@require_role("admin", "manager")
def delete_product_route(product_id):
    try:
        products_service.delete_product(parse_id(product_id, "product id"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"ok": True}, 200


@products_bp.patch("/<product_id>/stock")
@require_auth
@require_role("admin", "manager")
def adjust_stock_route(product_id):
    """
    Query params (JSON body fields are accepted as a fallback):
    - quantity: positive integer
    - operation: add|subtract (default subtract)
    """
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return {"error": "Invalid JSON payload"}, 400
    quantity = request.args.get("quantity", body.get("quantity"))
    operation = request.args.get("operation", body.get("operation", "subtract"))

    try:
        product = inventory_service.adjust_stock(
            parse_id(product_id, "product id"), quantity, operation,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except InsufficientStockError as e:
        return {"error": str(e), "details": e.details}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    return product.to_dict()
