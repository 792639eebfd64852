# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_role
from ..models import Supplier
from ..services import suppliers_service
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    parse_bool_arg,
    parse_id,
    validate_payload,
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields=set(suppliers_service.SUPPLIER_MUTABLE_FIELDS),
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        created = suppliers_service.create_supplier(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return {"error": "Internal server error"}, 500
    return created, 201


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    try:
        include_inactive = parse_bool_arg(request.args.get("include_inactive"), "include_inactive")
    except ValidationError as e:
        return {"error": str(e)}, 400
    items = suppliers_service.list_suppliers(include_inactive=bool(include_inactive))
    return {"items": items, "count": len(items)}


@suppliers_bp.get("/<supplier_id>")
@require_auth
def get_supplier_route(supplier_id):
    try:
        return suppliers_service.get_supplier(parse_id(supplier_id, "supplier id"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404


@suppliers_bp.patch("/<supplier_id>")
@require_auth
@require_role("admin", "manager")
def update_supplier_route(supplier_id):
    payload = request.get_json(silent=True) or {}
    try:
        supplier_id = parse_id(supplier_id, "supplier id")
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        return suppliers_service.update_supplier(supplier_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
