# Overview: Service-layer operations for customers; master data and purchase statistics.

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal

from flask import current_app
from sqlalchemy import case, func, or_

from ..extensions import db
from ..models import Customer, Invoice, Sale
from ..money import to_money
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError
from .queries import paginate

CUSTOMER_MUTABLE_FIELDS = {
    "first_name", "last_name", "email", "phone", "address",
    "customer_type", "company_name", "tax_id", "notes", "tags", "is_active",
    "loyalty_tier",
}


def _get_or_404(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def _check_unique(patch: dict, customer_id: int | None = None) -> None:
    for field, label in (("email", "email"), ("phone", "phone number")):
        value = patch.get(field)
        if value is None:
            continue
        query = db.session.query(Customer.id).filter(getattr(Customer, field) == value)
        if customer_id is not None:
            query = query.filter(Customer.id != customer_id)
        if query.first():
            raise ConflictError(f"Customer with this {label} already exists.")


def _apply_patch(customer: Customer, patch: dict) -> None:
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)


def _search(q, search: str | None):
    if not search:
        return q
    pattern = f"%{search}%"
    return q.filter(or_(
        Customer.first_name.ilike(pattern),
        Customer.last_name.ilike(pattern),
        Customer.email.ilike(pattern),
        Customer.phone.ilike(pattern),
    ))


def create_customer(*, patch: dict, user_id: int | None = None) -> dict:
    _check_unique(patch)
    customer = Customer(tags=[], created_by_user_id=user_id, updated_by_user_id=user_id)
    _apply_patch(customer, patch)
    db.session.add(customer)
    db.session.commit()
    current_app.logger.info("Created customer id=%s email=%s", customer.id, customer.email)
    return customer.to_dict()


def list_customers(
    *,
    search: str | None = None,
    is_active: bool | None = None,
    tier: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """Search matches first name, last name, email or phone (case-insensitive)."""
    q = _search(db.session.query(Customer), search)
    if is_active is not None:
        q = q.filter(Customer.is_active == is_active)
    if tier:
        q = q.filter(Customer.loyalty_tier == tier)
    q = q.order_by(Customer.created_at.desc(), Customer.id.desc())
    return paginate(q, page, limit, lambda c: c.to_dict())


def get_customer(customer_id: int) -> dict:
    return _get_or_404(customer_id).to_dict()


def get_customer_by_email(email: str) -> dict:
    customer = db.session.query(Customer).filter(Customer.email == email.strip().lower()).first()
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer.to_dict()


def get_customer_by_phone(phone: str) -> dict:
    customer = db.session.query(Customer).filter(Customer.phone == phone.strip()).first()
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer.to_dict()


def update_customer(customer_id: int, patch: dict, user_id: int | None = None) -> dict:
    customer = _get_or_404(customer_id)
    _check_unique(patch, customer_id=customer_id)
    _apply_patch(customer, patch)
    customer.updated_by_user_id = user_id
    db.session.commit()
    return customer.to_dict()


def delete_customer(customer_id: int) -> None:
    customer = _get_or_404(customer_id)
    has_sales = db.session.query(Sale.id).filter(Sale.customer_id == customer.id).first()
    has_invoices = db.session.query(Invoice.id).filter(Invoice.customer_id == customer.id).first()
    if has_sales or has_invoices:
        raise ConflictError("Customer has recorded sales. Set is_active=false instead.")
    db.session.delete(customer)
    db.session.commit()
    current_app.logger.info("Deleted customer id=%s", customer_id)


def record_purchase(customer: Customer, amount) -> None:
    """
    Fold one completed sale into the customer's statistics and award
    floor(amount * LOYALTY_POINTS_RATE) loyalty points.

    Does not commit; the sale flow calls this inside its own transaction.
    """
    amount = to_money(amount)
    customer.total_spent = to_money(Decimal(customer.total_spent or 0) + amount)
    customer.total_orders = (customer.total_orders or 0) + 1
    customer.average_order_value = to_money(Decimal(customer.total_spent) / customer.total_orders)
    customer.last_purchase_at = utcnow()

    rate = Decimal(str(current_app.config.get("LOYALTY_POINTS_RATE", "0.10")))
    earned = int((amount * rate).to_integral_value(rounding=ROUND_FLOOR))
    customer.loyalty_points = (customer.loyalty_points or 0) + max(earned, 0)


def top_customers(limit: int | None = None) -> list[dict]:
    """Active customers by lifetime spend, highest first; ties by id."""
    if limit is None:
        limit = int(current_app.config.get("TOP_CUSTOMERS_LIMIT", 10))
    customers = (
        db.session.query(Customer)
        .filter(Customer.is_active.is_(True))
        .order_by(Customer.total_spent.desc(), Customer.id.asc())
        .limit(limit)
        .all()
    )
    return [c.to_dict() for c in customers]


def customer_counts() -> dict:
    total, active = db.session.query(
        func.count(Customer.id),
        func.coalesce(func.sum(case((Customer.is_active.is_(True), 1), else_=0)), 0),
    ).one()
    return {"total": total, "active": int(active), "inactive": total - int(active)}


def search_customers_for_sale(search: str | None, limit: int = 10) -> list[dict]:
    q = _search(db.session.query(Customer).filter(Customer.is_active.is_(True)), search)
    customers = q.order_by(Customer.last_name.asc(), Customer.first_name.asc(), Customer.id.asc()).limit(limit).all()
    return [c.to_pos_dict() for c in customers]


def get_customer_for_sale(customer_id: int) -> dict:
    return _get_or_404(customer_id).to_pos_dict()
