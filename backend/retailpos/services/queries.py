# Overview: Typed list-query objects for products and sales, validated at the HTTP boundary.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from flask import current_app

from ..models import PAYMENT_METHODS, SALE_STATUSES
from ..money import to_money
from ..time_utils import day_bounds, parse_iso_date, parse_iso_datetime
from ..validation import ValidationError, parse_bool_arg, parse_id

PRODUCT_SORT_FIELDS = ("name", "sku", "category", "selling_price", "quantity", "created_at")
SALE_SORT_FIELDS = ("created_at", "total", "transaction_number", "status")
SORT_ORDERS = ("asc", "desc")


def _page_settings() -> tuple[int, int]:
    return (
        int(current_app.config.get("DEFAULT_PAGE_SIZE", 20)),
        int(current_app.config.get("MAX_PAGE_SIZE", 100)),
    )


def parse_page(value) -> int:
    if value is None or value == "":
        return 1
    try:
        page = int(value)
    except (TypeError, ValueError):
        raise ValidationError("page must be an integer")
    if page < 1:
        raise ValidationError("page must be >= 1")
    return page


def parse_limit(value) -> int:
    default, maximum = _page_settings()
    if value is None or value == "":
        return default
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer")
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return min(limit, maximum)


def _parse_money_arg(value, label: str) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationError(f"{label} must be a number")
    if amount < 0:
        raise ValidationError(f"{label} must be >= 0")
    return amount


def _parse_choice(value, label: str, choices: tuple[str, ...], default: Optional[str] = None) -> Optional[str]:
    if value is None or value == "":
        return default
    value = value.strip().lower()
    if value not in choices:
        raise ValidationError(f"{label} must be one of: {', '.join(choices)}")
    return value


def parse_range_start(value: Optional[str], label: str = "start_date") -> Optional[datetime]:
    """A bare date starts at midnight UTC; a datetime is used as given."""
    if value is None or not value.strip():
        return None
    try:
        day = parse_iso_date(value) if len(value.strip()) == 10 else None
        if day is not None:
            return day_bounds(day)[0]
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid {label}")


def parse_range_end(value: Optional[str], label: str = "end_date") -> Optional[datetime]:
    """
    Exclusive upper bound. A bare date covers that whole day, so the bound
    is the following midnight. A datetime is used as given.
    """
    if value is None or not value.strip():
        return None
    try:
        day = parse_iso_date(value) if len(value.strip()) == 10 else None
        if day is not None:
            return day_bounds(day)[1]
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid {label}")


@dataclass
class ProductQuery:
    search: Optional[str] = None
    category: Optional[str] = None
    supplier_id: Optional[int] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    in_stock: Optional[bool] = None
    is_active: Optional[bool] = None
    sort_by: str = "name"
    sort_order: str = "asc"
    page: int = 1
    limit: int = 20

    @classmethod
    def from_args(cls, args) -> "ProductQuery":
        """Build from request.args (or any mapping); raises ValidationError."""
        supplier_id = args.get("supplier_id")
        query = cls(
            search=(args.get("search") or "").strip() or None,
            category=(args.get("category") or "").strip() or None,
            supplier_id=parse_id(supplier_id, "supplier_id") if supplier_id else None,
            min_price=_parse_money_arg(args.get("min_price"), "min_price"),
            max_price=_parse_money_arg(args.get("max_price"), "max_price"),
            in_stock=parse_bool_arg(args.get("in_stock"), "in_stock"),
            is_active=parse_bool_arg(args.get("is_active"), "is_active"),
            sort_by=_parse_choice(args.get("sort_by"), "sort_by", PRODUCT_SORT_FIELDS, "name"),
            sort_order=_parse_choice(args.get("sort_order"), "sort_order", SORT_ORDERS, "asc"),
            page=parse_page(args.get("page")),
            limit=parse_limit(args.get("limit")),
        )
        if query.min_price is not None and query.max_price is not None and query.min_price > query.max_price:
            raise ValidationError("min_price cannot exceed max_price")
        return query


@dataclass
class SaleQuery:
    customer_id: Optional[int] = None
    staff_user_id: Optional[int] = None
    status: Optional[str] = None
    payment_method: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 20

    @classmethod
    def from_args(cls, args) -> "SaleQuery":
        customer_id = args.get("customer_id")
        staff_user_id = args.get("staff_user_id")
        query = cls(
            customer_id=parse_id(customer_id, "customer_id") if customer_id else None,
            staff_user_id=parse_id(staff_user_id, "staff_user_id") if staff_user_id else None,
            status=_parse_choice(args.get("status"), "status", SALE_STATUSES),
            payment_method=_parse_choice(args.get("payment_method"), "payment_method", PAYMENT_METHODS),
            start=parse_range_start(args.get("start_date")),
            end=parse_range_end(args.get("end_date")),
            sort_by=_parse_choice(args.get("sort_by"), "sort_by", SALE_SORT_FIELDS, "created_at"),
            sort_order=_parse_choice(args.get("sort_order"), "sort_order", SORT_ORDERS, "desc"),
            page=parse_page(args.get("page")),
            limit=parse_limit(args.get("limit")),
        )
        if query.start is not None and query.end is not None and query.start >= query.end:
            raise ValidationError("start_date must be before end_date")
        return query


def paginate(base_query, page: int, limit: int, serialize) -> dict:
    """Run a sorted query and wrap one page of results the same way for every list endpoint."""
    total = base_query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    rows = base_query.offset((page - 1) * limit).limit(limit).all()
    return {
        "items": [serialize(row) for row in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
