"""
Sales Service - atomic sale processing

A sale is created in one step: validate every requested item against live
stock, then write the sale, its lines, the stock decrements and the
customer statistics in a single database transaction. Either all of it
commits or none of it does.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import (
    Customer,
    PAYMENT_METHODS,
    Product,
    SALE_STATUSES,
    Sale,
    SaleLine,
    User,
)
from ..money import ZERO, to_money
from ..validation import NotFoundError, ValidationError, parse_id, parse_positive_int
from .concurrency import begin_write, run_with_retry
from .customers_service import record_purchase
from .inventory_service import InsufficientStockError, adjust_stock
from .queries import SaleQuery, paginate
from .sequence_service import next_transaction_number


class SaleError(ValidationError):
    """Raised for malformed sale requests; `details` points at the offending line."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class _RequestedLine:
    line_number: int
    product_id: int
    quantity: int
    unit_price: Decimal | None
    discount: Decimal


def _money_arg(value, label: str, line_number: int | None = None) -> Decimal:
    details = {"line": line_number} if line_number else None
    try:
        amount = to_money(value)
    except ValueError:
        raise SaleError(f"{label} must be a number", details)
    if amount < 0:
        raise SaleError(f"{label} must be >= 0", details)
    return amount


def _normalize_items(items) -> list[_RequestedLine]:
    if not isinstance(items, list) or not items:
        raise SaleError("items must be a non-empty list")

    normalized = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise SaleError("each item must be an object", {"line": index})
        try:
            product_id = parse_id(item.get("product_id"), "product_id")
            quantity = parse_positive_int(item.get("quantity"), "quantity")
        except ValidationError as e:
            raise SaleError(str(e), {"line": index})

        unit_price = item.get("unit_price")
        normalized.append(_RequestedLine(
            line_number=index,
            product_id=product_id,
            quantity=quantity,
            unit_price=_money_arg(unit_price, "unit_price", index) if unit_price is not None else None,
            discount=_money_arg(item.get("discount") or 0, "discount", index),
        ))
    return normalized


def _validate_stock(requested: list[_RequestedLine]) -> dict[int, Product]:
    """
    Check every line in request order, without writing anything.

    Quantities are accumulated per product so two lines for the same product
    are checked against their combined demand.
    """
    products: dict[int, Product] = {}
    demand: dict[int, int] = {}
    for line in requested:
        product = products.get(line.product_id)
        if product is None:
            product = db.session.get(Product, line.product_id)
            if product is None:
                raise NotFoundError(f"Product not found: {line.product_id}")
            products[line.product_id] = product

        demand[line.product_id] = demand.get(line.product_id, 0) + line.quantity
        if product.quantity < demand[line.product_id]:
            raise InsufficientStockError(product, requested=demand[line.product_id])

        if line.unit_price is None:
            line.unit_price = to_money(product.selling_price)
        if line.discount > line.unit_price * line.quantity:
            raise SaleError(
                f"Discount exceeds line amount for product {product.name}",
                {"line": line.line_number},
            )
    return products


def _tax_rate() -> Decimal:
    return Decimal(str(current_app.config.get("SALE_TAX_RATE", "0")))


def create_sale(
    items,
    staff_user_id: int,
    payment_method: str,
    customer_id: int | None = None,
    status: str | None = None,
    discount=0,
    notes: str | None = None,
    payment_reference: str | None = None,
    card_last4: str | None = None,
    card_brand: str | None = None,
) -> dict:
    """
    Record a sale and decrement stock for every line, all-or-nothing.

    Raises:
        SaleError / ValidationError: malformed request (400)
        NotFoundError: unknown product, customer or staff user (404)
        InsufficientStockError: a product cannot cover the requested quantity (400)
    """
    requested = _normalize_items(items)

    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    status = status or "completed"
    if status not in SALE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")
    sale_discount = _money_arg(discount or 0, "discount")
    if card_last4 is not None:
        card_last4 = str(card_last4).strip()
        if len(card_last4) != 4 or not card_last4.isdigit():
            raise ValidationError("card_last4 must be 4 digits")

    def _op() -> Sale:
        begin_write()
        staff = db.session.get(User, staff_user_id)
        if staff is None:
            raise NotFoundError("Staff user not found")
        customer = None
        if customer_id is not None:
            customer = db.session.get(Customer, customer_id)
            if customer is None:
                raise NotFoundError("Customer not found")

        _validate_stock(requested)

        subtotal = sum((line.unit_price * line.quantity for line in requested), ZERO)
        discount_total = sum((line.discount for line in requested), ZERO) + sale_discount
        if discount_total > subtotal:
            raise ValidationError("Discount cannot exceed the sale subtotal")
        tax = to_money((subtotal - discount_total) * _tax_rate())
        total = to_money(subtotal - discount_total + tax)

        sale = Sale(
            transaction_number=next_transaction_number(),
            customer_id=customer_id,
            staff_user_id=staff.id,
            status=status,
            subtotal=to_money(subtotal),
            discount_total=to_money(discount_total),
            tax=tax,
            total=total,
            payment_method=payment_method,
            payment_amount=total,
            payment_status="completed" if status == "completed" else "pending",
            payment_reference=payment_reference,
            card_last4=card_last4,
            card_brand=card_brand,
            notes=notes,
        )
        for line in requested:
            sale.lines.append(SaleLine(
                line_number=line.line_number,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount=line.discount,
                line_total=to_money(line.unit_price * line.quantity - line.discount),
            ))
        db.session.add(sale)
        db.session.flush()

        for line in requested:
            adjust_stock(line.product_id, line.quantity, "subtract", commit=False)

        if customer is not None and status == "completed":
            record_purchase(customer, total)

        db.session.commit()
        return sale

    sale = run_with_retry(_op)
    current_app.logger.info(
        "Sale %s committed: %d line(s), total %s, staff=%s",
        sale.transaction_number, len(requested), sale.total, staff_user_id,
    )
    return sale.to_dict()


def _get_or_404(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def get_sale(sale_id: int) -> dict:
    return _get_or_404(sale_id).to_dict()


def get_sale_by_transaction_number(transaction_number: str) -> dict:
    sale = (
        db.session.query(Sale)
        .filter(Sale.transaction_number == transaction_number)
        .first()
    )
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale.to_dict()


def list_sales(query: SaleQuery) -> dict:
    q = db.session.query(Sale)
    if query.customer_id is not None:
        q = q.filter(Sale.customer_id == query.customer_id)
    if query.staff_user_id is not None:
        q = q.filter(Sale.staff_user_id == query.staff_user_id)
    if query.status:
        q = q.filter(Sale.status == query.status)
    if query.payment_method:
        q = q.filter(Sale.payment_method == query.payment_method)
    if query.start is not None:
        q = q.filter(Sale.created_at >= query.start)
    if query.end is not None:
        q = q.filter(Sale.created_at < query.end)

    column = getattr(Sale, query.sort_by)
    if query.sort_order == "asc":
        q = q.order_by(column.asc(), Sale.id.asc())
    else:
        q = q.order_by(column.desc(), Sale.id.desc())

    return paginate(q, query.page, query.limit, lambda s: s.to_dict())


def recent_sales(limit: int = 10) -> list[dict]:
    """Latest completed sales, newest first."""
    sales = (
        db.session.query(Sale)
        .filter(Sale.status == "completed")
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )
    return [s.to_dict() for s in sales]


def update_sale_status(sale_id: int, status: str) -> dict:
    """
    Change the lifecycle status of a recorded sale.

    Only `status` is mutated; stock is not touched.
    """
    if status not in SALE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")

    def _op() -> Sale:
        sale = _get_or_404(sale_id)
        previous = sale.status
        sale.status = status
        db.session.commit()
        current_app.logger.info(
            "Sale %s status %s -> %s", sale.transaction_number, previous, status,
        )
        return sale

    return run_with_retry(_op).to_dict()
