from __future__ import annotations

from ..extensions import db
from retailpos.money import money_json
from retailpos.time_utils import to_utc_z, utcnow

INVOICE_PAYMENT_STATUSES = ("pending", "paid", "overdue", "cancelled")


class Invoice(db.Model):
    """Invoice issued against a recorded sale (one per sale)."""
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        db.UniqueConstraint("sale_id", name="uq_invoices_sale_id"),
        db.Index("ix_invoices_payment_status", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(32), nullable=False)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    issued_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    discount_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_rate = db.Column(db.Numeric(5, 4), nullable=False)
    tax = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    payment_method = db.Column(db.String(16), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    paid_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    issue_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False)
    terms = db.Column(db.String(64), nullable=False, default="Net 30")

    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="draft", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    sale = db.relationship("Sale")
    customer = db.relationship("Customer")
    issued_by = db.relationship("User")
    lines = db.relationship(
        "InvoiceLine",
        back_populates="invoice",
        order_by="InvoiceLine.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def is_overdue(self) -> bool:
        if self.payment_status in ("paid", "cancelled"):
            return False
        return utcnow() > self.due_date

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "sale_id": self.sale_id,
            "sale": (
                {"id": self.sale.id, "transaction_number": self.sale.transaction_number, "status": self.sale.status}
                if self.sale else None
            ),
            "customer_id": self.customer_id,
            "customer": self.customer.to_summary() if self.customer else None,
            "issued_by_user_id": self.issued_by_user_id,
            "issued_by": self.issued_by.to_summary() if self.issued_by else None,
            "items": [line.to_dict() for line in self.lines],
            "totals": {
                "subtotal": money_json(self.subtotal),
                "discount": money_json(self.discount_total),
                "tax_rate": float(self.tax_rate),
                "tax": money_json(self.tax),
                "total": money_json(self.total),
            },
            "payment": {
                "method": self.payment_method,
                "status": self.payment_status,
                "paid_amount": money_json(self.paid_amount),
                "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            },
            "dates": {
                "issue_date": to_utc_z(self.issue_date),
                "due_date": to_utc_z(self.due_date),
                "terms": self.terms,
            },
            "is_overdue": self.is_overdue,
            "notes": self.notes,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InvoiceLine(db.Model):
    """Line item printed on an invoice."""
    __tablename__ = "invoice_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    description = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    invoice = db.relationship("Invoice", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price": money_json(self.unit_price),
            "discount": money_json(self.discount),
            "total": money_json(self.line_total),
        }
