# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_role
from ..models import LOYALTY_TIERS, Customer
from ..services import customers_service
from ..services.queries import parse_limit, parse_page
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_customer,
    parse_bool_arg,
    parse_id,
    validate_payload,
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=set(customers_service.CUSTOMER_MUTABLE_FIELDS),
    required_on_create={"first_name", "last_name", "email", "phone"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
        created = customers_service.create_customer(patch=patch, user_id=g.current_user.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500
    return created, 201


@customers_bp.get("")
@require_auth
def list_customers_route():
    """Query params: search, is_active, tier, page, limit."""
    tier = (request.args.get("tier") or "").strip() or None
    if tier is not None and tier not in LOYALTY_TIERS:
        return {"error": f"tier must be one of: {', '.join(LOYALTY_TIERS)}"}, 400
    try:
        return customers_service.list_customers(
            search=(request.args.get("search") or "").strip() or None,
            is_active=parse_bool_arg(request.args.get("is_active"), "is_active"),
            tier=tier,
            page=parse_page(request.args.get("page")),
            limit=parse_limit(request.args.get("limit")),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400


@customers_bp.get("/top")
@require_auth
def top_customers_route():
    """Active customers by lifetime spend. Query params: limit."""
    raw = request.args.get("limit")
    try:
        limit = parse_limit(raw) if raw else None
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"items": customers_service.top_customers(limit)}


@customers_bp.get("/stats")
@require_auth
def customer_stats_route():
    return customers_service.customer_counts()


@customers_bp.get("/email/<email>")
@require_auth
def get_by_email_route(email: str):
    try:
        return customers_service.get_customer_by_email(email)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.get("/phone/<phone>")
@require_auth
def get_by_phone_route(phone: str):
    try:
        return customers_service.get_customer_by_phone(phone)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.get("/<customer_id>")
@require_auth
def get_customer_route(customer_id):
    try:
        return customers_service.get_customer(parse_id(customer_id, "customer id"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.patch("/<customer_id>")
@require_auth
def update_customer_route(customer_id):
    payload = request.get_json(silent=True) or {}
    try:
        customer_id = parse_id(customer_id, "customer id")
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch)
        return customers_service.update_customer(customer_id, patch, user_id=g.current_user.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409


@customers_bp.delete("/<customer_id>")
@require_auth
@require_role("admin", "manager")
def delete_customer_route(customer_id):
    try:
        customers_service.delete_customer(parse_id(customer_id, "customer id"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"ok": True}, 200
