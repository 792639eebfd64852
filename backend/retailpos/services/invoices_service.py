# Overview: Service-layer operations for invoices issued against recorded sales.

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    Customer,
    INVOICE_PAYMENT_STATUSES,
    Invoice,
    InvoiceLine,
    PAYMENT_METHODS,
    Product,
    Sale,
)
from ..money import ZERO, money_json, to_money
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, parse_id, parse_positive_int
from .concurrency import run_with_retry
from .queries import paginate, parse_range_end, parse_range_start
from .sequence_service import next_invoice_number


def _invoice_lines_from_sale(sale: Sale) -> list[dict]:
    return [
        {
            "product_id": line.product_id,
            "description": line.product.name if line.product else None,
            "quantity": line.quantity,
            "unit_price": Decimal(line.unit_price),
            "discount": Decimal(line.discount),
        }
        for line in sale.lines
    ]


def _sale_level_discount(sale: Sale) -> Decimal:
    """The part of a sale's discount that was given on the whole sale rather than a line."""
    line_discounts = sum((Decimal(line.discount) for line in sale.lines), ZERO)
    return to_money(Decimal(sale.discount_total) - line_discounts)


def _normalize_invoice_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")
    normalized = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"item {index} must be an object")
        product_id = parse_id(item.get("product_id"), "product_id")
        if db.session.get(Product, product_id) is None:
            raise NotFoundError(f"Product not found: {product_id}")
        try:
            unit_price = to_money(item.get("unit_price"))
            discount = to_money(item.get("discount") or 0)
        except ValueError:
            raise ValidationError(f"item {index} has an invalid amount")
        quantity = parse_positive_int(item.get("quantity"), "quantity")
        if unit_price < 0 or discount < 0:
            raise ValidationError(f"item {index} amounts must be >= 0")
        if discount > unit_price * quantity:
            raise ValidationError(f"item {index} discount exceeds line amount")
        description = item.get("description")
        normalized.append({
            "product_id": product_id,
            "description": str(description).strip()[:255] if description else None,
            "quantity": quantity,
            "unit_price": unit_price,
            "discount": discount,
        })
    return normalized


def create_invoice(
    sale_id: int,
    user_id: int,
    items: list | None = None,
    *,
    customer_id: int | None = None,
    payment_method: str | None = None,
    due_date: str | None = None,
    terms: str | None = None,
    notes: str | None = None,
) -> dict:
    """
    Issue the invoice for a recorded sale.

    Items default to the sale's own lines, and then a sale-level discount
    carries over too. A sale is invoiced at most once;
    the sale is stamped with the invoice number in the same transaction.

    Raises:
        NotFoundError: sale, customer or product does not exist
        ConflictError: the sale already has an invoice
        ValidationError: malformed items, payment method or due date
    """
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    due_at = None
    if due_date:
        try:
            due_at = parse_iso_datetime(due_date)
        except ValueError:
            raise ValidationError("Invalid due_date")

    def _op() -> Invoice:
        sale = db.session.get(Sale, sale_id)
        if sale is None:
            raise NotFoundError("Sale not found")
        if sale.is_invoice_generated or db.session.query(Invoice.id).filter_by(sale_id=sale.id).first():
            raise ConflictError(f"Sale {sale.transaction_number} already has an invoice")

        invoice_customer_id = customer_id if customer_id is not None else sale.customer_id
        if invoice_customer_id is not None and db.session.get(Customer, invoice_customer_id) is None:
            raise NotFoundError("Customer not found")

        if items is not None:
            lines = _normalize_invoice_items(items)
            extra_discount = ZERO
        else:
            lines = _invoice_lines_from_sale(sale)
            extra_discount = _sale_level_discount(sale)

        config = current_app.config
        tax_rate = Decimal(str(config.get("INVOICE_TAX_RATE", "0.10")))
        subtotal = sum((line["unit_price"] * line["quantity"] for line in lines), ZERO)
        discount_total = sum((line["discount"] for line in lines), ZERO) + extra_discount
        tax = to_money((subtotal - discount_total) * tax_rate)

        issued_at = utcnow()
        invoice = Invoice(
            invoice_number=next_invoice_number(issued_at),
            sale_id=sale.id,
            customer_id=invoice_customer_id,
            issued_by_user_id=user_id,
            subtotal=to_money(subtotal),
            discount_total=to_money(discount_total),
            tax_rate=tax_rate,
            tax=tax,
            total=to_money(subtotal - discount_total + tax),
            payment_method=payment_method or sale.payment_method,
            payment_status="pending",
            paid_amount=ZERO,
            issue_date=issued_at,
            due_date=due_at or issued_at + timedelta(days=int(config.get("INVOICE_DUE_DAYS", 30))),
            terms=terms or config.get("INVOICE_TERMS", "Net 30"),
            notes=notes,
            status="draft",
        )
        for line in lines:
            invoice.lines.append(InvoiceLine(
                product_id=line["product_id"],
                description=line["description"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                discount=line["discount"],
                line_total=to_money(line["unit_price"] * line["quantity"] - line["discount"]),
            ))
        db.session.add(invoice)

        sale.is_invoice_generated = True
        sale.invoice_number = invoice.invoice_number

        db.session.commit()
        return invoice

    invoice = run_with_retry(_op)
    current_app.logger.info(
        "Invoice %s issued for sale id=%s, total %s", invoice.invoice_number, sale_id, invoice.total,
    )
    return invoice.to_dict()


def list_invoices(
    *,
    customer_id: int | None = None,
    status: str | None = None,
    payment_status: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    q = db.session.query(Invoice)
    if customer_id is not None:
        q = q.filter(Invoice.customer_id == customer_id)
    if status:
        q = q.filter(Invoice.status == status)
    if payment_status:
        if payment_status not in INVOICE_PAYMENT_STATUSES:
            raise ValidationError(f"payment_status must be one of: {', '.join(INVOICE_PAYMENT_STATUSES)}")
        q = q.filter(Invoice.payment_status == payment_status)
    start = parse_range_start(start_date)
    end = parse_range_end(end_date)
    if start is not None:
        q = q.filter(Invoice.issue_date >= start)
    if end is not None:
        q = q.filter(Invoice.issue_date < end)
    q = q.order_by(Invoice.created_at.desc(), Invoice.id.desc())
    return paginate(q, page, limit, lambda i: i.to_dict())


def _get_or_404(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def get_invoice(invoice_id: int) -> dict:
    return _get_or_404(invoice_id).to_dict()


def get_invoice_by_number(invoice_number: str) -> dict:
    invoice = db.session.query(Invoice).filter(Invoice.invoice_number == invoice_number).first()
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice.to_dict()


def update_payment_status(invoice_id: int, payment_status: str, paid_amount=None) -> dict:
    """
    Move an invoice between payment states.

    `paid` stamps paid_at and records paid_amount, defaulting to the invoice total.
    """
    if payment_status not in INVOICE_PAYMENT_STATUSES:
        raise ValidationError("Invalid payment status")
    if paid_amount is not None:
        try:
            paid_amount = to_money(paid_amount)
        except ValueError:
            raise ValidationError("paid_amount must be a number")
        if paid_amount < 0:
            raise ValidationError("paid_amount must be >= 0")

    def _op() -> Invoice:
        invoice = _get_or_404(invoice_id)
        invoice.payment_status = payment_status
        if payment_status == "paid":
            invoice.paid_amount = paid_amount if paid_amount is not None else invoice.total
            invoice.paid_at = utcnow()
        db.session.commit()
        return invoice

    invoice = run_with_retry(_op)
    current_app.logger.info("Invoice %s payment status -> %s", invoice.invoice_number, payment_status)
    return invoice.to_dict()


def invoice_stats() -> dict:
    counts = dict(
        db.session.query(Invoice.payment_status, func.count(Invoice.id))
        .group_by(Invoice.payment_status)
        .all()
    )
    total = db.session.query(func.count(Invoice.id)).scalar() or 0
    draft = db.session.query(func.count(Invoice.id)).filter(Invoice.status == "draft").scalar() or 0

    total_amount = to_money(db.session.query(func.coalesce(func.sum(Invoice.total), 0)).scalar())
    paid_amount = to_money(
        db.session.query(func.coalesce(func.sum(Invoice.paid_amount), 0))
        .filter(Invoice.payment_status == "paid")
        .scalar()
    )
    return {
        "total": total,
        "draft": draft,
        "pending": counts.get("pending", 0),
        "paid": counts.get("paid", 0),
        "overdue": counts.get("overdue", 0),
        "cancelled": counts.get("cancelled", 0),
        "total_amount": money_json(total_amount),
        "paid_amount": money_json(paid_amount),
        "outstanding_amount": money_json(total_amount - paid_amount),
    }
