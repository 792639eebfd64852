from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .models.customers import LOYALTY_TIERS
from .money import to_money
from .time_utils import parse_iso_datetime


# Maximum price: 9,999,999,999.99 fits Numeric(12, 2)
MAX_PRICE = Decimal("9999999999.99")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


class NotFoundError(LookupError):
    """404-level: a referenced row does not exist."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Whole floats from JSON clients (10.0) are accepted, fractional ones are not
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    # Money and measurements
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            if coltype.scale == 2:
                return to_money(value)
            amount = Decimal(str(value).strip())
        except (ValueError, ArithmeticError):
            raise ValidationError(f"{col.key} must be a number")
        if not amount.is_finite():
            raise ValidationError(f"{col.key} must be a number")
        return amount

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    # JSON columns keep structure; shape rules live in enforce_rules_*
    if isinstance(coltype, JSON):
        if not isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be an object or a list")
        return value

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def parse_id(value: Any, label: str = "id") -> int:
    """Parse a path or body identifier; malformed ids are a 400, not a 404."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label}")
    if isinstance(value, int):
        parsed = value
    else:
        text = str(value).strip() if value is not None else ""
        # isdigit() alone also accepts "²" and other non-ASCII digits
        if not (text.isascii() and text.isdigit()):
            raise ValidationError(f"Invalid {label}")
        parsed = int(text)
    if parsed <= 0:
        raise ValidationError(f"Invalid {label}")
    return parsed


def parse_positive_int(value: Any, label: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"{label} is required")
    parsed = _coerce_int(label, value)
    if parsed <= 0:
        raise ValidationError(f"{label} must be > 0")
    return parsed


def parse_bool_arg(value: str | None, label: str) -> bool | None:
    """Query-string booleans: "true"/"false" (any case); None when absent."""
    if value is None or value == "":
        return None
    lowered = value.strip().lower()
    if lowered not in ("true", "false"):
        raise ValidationError(f"{label} must be true or false")
    return lowered == "true"


def _require_non_negative(patch: dict, fields: tuple[str, ...]) -> None:
    for field in fields:
        if field in patch and patch[field] is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _require_non_negative(
        patch,
        ("cost_price", "selling_price", "quantity", "min_stock", "max_stock", "weight", "length", "width", "height"),
    )
    for field in ("cost_price", "selling_price"):
        if field in patch and patch[field] is not None and patch[field] > MAX_PRICE:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE}")

    if "currency" in patch and patch["currency"] is not None:
        currency = patch["currency"].upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError("currency must be a 3-letter ISO code")
        patch["currency"] = currency

    if "variants" in patch:
        variants = patch["variants"]
        if not isinstance(variants, list):
            raise ValidationError("variants must be a list")
        cleaned = []
        for variant in variants:
            if not isinstance(variant, dict):
                raise ValidationError("each variant must be an object")
            name = str(variant.get("name") or "").strip()
            value = str(variant.get("value") or "").strip()
            if not name or not value:
                raise ValidationError("each variant requires name and value")
            modifier = variant.get("price_modifier", 0)
            try:
                modifier = float(to_money(modifier if modifier is not None else 0))
            except ValueError:
                raise ValidationError("variant price_modifier must be a number")
            cleaned.append({"name": name, "value": value, "price_modifier": modifier})
        patch["variants"] = cleaned

    if "images" in patch:
        images = patch["images"]
        if not isinstance(images, list) or not all(isinstance(i, str) and i.strip() for i in images):
            raise ValidationError("images must be a list of URI strings")
        patch["images"] = [i.strip() for i in images]


CUSTOMER_ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")


def enforce_rules_customer(patch: dict) -> None:
    if "email" in patch and patch["email"] is not None:
        email = patch["email"].lower()
        local, _, domain = email.partition("@")
        if not local or "." not in domain:
            raise ValidationError("email must be a valid email address")
        patch["email"] = email

    if "phone" in patch and patch["phone"] is not None:
        digits = [c for c in patch["phone"] if c.isdigit()]
        if len(digits) < 7:
            raise ValidationError("phone must contain at least 7 digits")

    if "customer_type" in patch and patch["customer_type"] not in ("individual", "business"):
        raise ValidationError("customer_type must be individual or business")

    if "loyalty_tier" in patch and patch["loyalty_tier"] not in LOYALTY_TIERS:
        raise ValidationError(f"loyalty_tier must be one of: {', '.join(LOYALTY_TIERS)}")

    if "address" in patch and patch["address"] is not None:
        address = patch["address"]
        if not isinstance(address, dict):
            raise ValidationError("address must be an object")
        unknown = set(address) - set(CUSTOMER_ADDRESS_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown address fields: {', '.join(sorted(unknown))}")
        patch["address"] = {k: str(v).strip() for k, v in address.items() if v is not None}

    if "tags" in patch:
        tags = patch["tags"]
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValidationError("tags must be a list of strings")
