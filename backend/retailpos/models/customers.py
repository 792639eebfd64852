from __future__ import annotations

from ..extensions import db
from retailpos.money import money_json
from retailpos.time_utils import to_utc_z, utcnow

LOYALTY_TIERS = ("bronze", "silver", "gold", "platinum")


class Customer(db.Model):
    """
    Customer master data for tracking purchases.

    Email and phone are each globally unique. Purchase statistics are
    denormalized aggregates updated inside the sale transaction.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_customers_email"),
        db.UniqueConstraint("phone", name="uq_customers_phone"),
        db.Index("ix_customers_name", "last_name", "first_name"),
        db.Index("ix_customers_loyalty_tier", "loyalty_tier"),
        db.Index("ix_customers_total_spent", "total_spent"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)

    # {"street", "city", "state", "zip_code", "country"}
    address = db.Column(db.JSON, nullable=True)

    customer_type = db.Column(db.String(16), nullable=False, default="individual")
    company_name = db.Column(db.String(255), nullable=True)
    tax_id = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    total_spent = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_orders = db.Column(db.Integer, nullable=False, default=0)
    average_order_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    last_purchase_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Points accrue on completed sales; the tier is assigned by staff.
    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    loyalty_tier = db.Column(db.String(16), nullable=False, default="bronze")
    member_since = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.full_name,
            "email": self.email,
            "phone": self.phone,
        }

    def to_pos_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "loyalty_tier": self.loyalty_tier or "bronze",
            "loyalty_points": self.loyalty_points or 0,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "customer_type": self.customer_type,
            "company_name": self.company_name,
            "tax_id": self.tax_id,
            "notes": self.notes,
            "tags": list(self.tags or []),
            "is_active": self.is_active,
            "statistics": {
                "total_spent": money_json(self.total_spent),
                "total_orders": self.total_orders,
                "average_order_value": money_json(self.average_order_value),
                "last_purchase_at": to_utc_z(self.last_purchase_at) if self.last_purchase_at else None,
            },
            "loyalty": {
                "points": self.loyalty_points or 0,
                "tier": self.loyalty_tier or "bronze",
                "member_since": to_utc_z(self.member_since),
            },
            "created_by_user_id": self.created_by_user_id,
            "updated_by_user_id": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
