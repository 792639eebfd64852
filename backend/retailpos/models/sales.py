from __future__ import annotations

from ..extensions import db
from retailpos.money import money_json
from retailpos.time_utils import to_utc_z, utcnow

SALE_STATUSES = ("pending", "completed", "cancelled", "refunded")
PAYMENT_METHODS = ("cash", "card", "digital", "bank_transfer")
PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")


class Sale(db.Model):
    """
    Point-of-sale transaction.

    Created once by the sale flow together with its lines and the matching
    stock decrements, in a single database transaction. After creation only
    `status` changes.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("transaction_number", name="uq_sales_transaction_number"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable day-scoped number (e.g., "TXN202610180001")
    transaction_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    staff_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    # Totals
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Payment
    payment_method = db.Column(db.String(16), nullable=False)
    payment_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    payment_reference = db.Column(db.String(128), nullable=True)
    card_last4 = db.Column(db.String(4), nullable=True)
    card_brand = db.Column(db.String(32), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    invoice_number = db.Column(db.String(32), nullable=True)
    is_invoice_generated = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    staff = db.relationship("User")
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        order_by="SaleLine.line_number",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} transaction_number={self.transaction_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_number": self.transaction_number,
            "status": self.status,
            "customer_id": self.customer_id,
            "customer": self.customer.to_summary() if self.customer else None,
            "staff_user_id": self.staff_user_id,
            "staff": self.staff.to_summary() if self.staff else None,
            "items": [line.to_dict() for line in self.lines],
            "totals": {
                "subtotal": money_json(self.subtotal),
                "discount": money_json(self.discount_total),
                "tax": money_json(self.tax),
                "total": money_json(self.total),
            },
            "payment": {
                "method": self.payment_method,
                "amount": money_json(self.payment_amount),
                "status": self.payment_status,
                "reference": self.payment_reference,
                "card_last4": self.card_last4,
                "card_brand": self.card_brand,
            },
            "notes": self.notes,
            "invoice_number": self.invoice_number,
            "is_invoice_generated": self.is_invoice_generated,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SaleLine(db.Model):
    """Individual line items on a sale."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_lines_sale_line_number"),
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "quantity": self.quantity,
            "unit_price": money_json(self.unit_price),
            "discount": money_json(self.discount),
            "total": money_json(self.line_total),
        }


class DocumentSequence(db.Model):
    """
    Atomic per-period document counters.

    One row per (document_type, period), e.g. ("TXN", "20261018") or
    ("INV", "202610"). `next_number` is the value the next caller receives.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "period", name="uq_doc_sequences_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(16), nullable=False)
    period = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "period": self.period,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
