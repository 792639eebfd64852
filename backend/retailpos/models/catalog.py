from __future__ import annotations

from ..extensions import db
from retailpos.money import money_json
from retailpos.time_utils import to_utc_z, utcnow


class Supplier(db.Model):
    """Vendor a product is sourced from."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_suppliers_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data.

    SKU and name are both globally unique. The quantity column is the live
    on-hand count; the sale flow and the stock adjustment primitive are the
    only writers besides an explicit product update.

    The check constraint is the last line of defense for the no-negative-stock
    rule. Stock decrements are issued as conditional UPDATEs (see
    services/inventory_service.py) so it should never actually fire.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.UniqueConstraint("name", name="uq_products_name"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("min_stock >= 0", name="ck_products_min_stock_non_negative"),
        db.CheckConstraint("max_stock IS NULL OR max_stock >= 0", name="ck_products_max_stock_non_negative"),
        db.Index("ix_products_category", "category"),
        db.Index("ix_products_quantity", "quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)
    subcategory = db.Column(db.String(128), nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    # Pricing
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")

    # Inventory
    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=10)
    max_stock = db.Column(db.Integer, nullable=True)
    location = db.Column(db.String(128), nullable=False, default="Main Store")

    # [{"name": "Color", "value": "Red", "price_modifier": 1.5}, ...]
    variants = db.Column(db.JSON, nullable=False, default=list)
    images = db.Column(db.JSON, nullable=False, default=list)

    weight = db.Column(db.Numeric(10, 3), nullable=True)
    length = db.Column(db.Numeric(10, 2), nullable=True)
    width = db.Column(db.Numeric(10, 2), nullable=True)
    height = db.Column(db.Numeric(10, 2), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} quantity={self.quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "sku": self.sku}

    def to_pos_dict(self) -> dict:
        """What the register needs to ring the product up."""
        images = self.images or []
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "price": money_json(self.selling_price),
            "available_quantity": self.quantity,
            "category": self.category,
            "image": images[0] if images else None,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "subcategory": self.subcategory,
            "supplier_id": self.supplier_id,
            "supplier": self.supplier.to_summary() if self.supplier else None,
            "cost_price": money_json(self.cost_price),
            "selling_price": money_json(self.selling_price),
            "currency": self.currency,
            "quantity": self.quantity,
            "min_stock": self.min_stock,
            "max_stock": self.max_stock,
            "location": self.location,
            "is_low_stock": self.is_low_stock,
            "variants": list(self.variants or []),
            "images": list(self.images or []),
            "weight": float(self.weight) if self.weight is not None else None,
            "length": float(self.length) if self.length is not None else None,
            "width": float(self.width) if self.width is not None else None,
            "height": float(self.height) if self.height is not None else None,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
