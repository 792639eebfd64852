# backend/retailpos/services/products_service.py
"""
Products Service

All catalog reads and writes. Routes validate payloads with
ModelValidationPolicy first; these functions enforce the cross-row rules
(unique SKU and name, existing supplier, no deletes of sold products).
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import InvoiceLine, Product, SaleLine, Supplier
from ..validation import ConflictError, NotFoundError, ValidationError
from .queries import ProductQuery, paginate

PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "description", "category", "subcategory", "supplier_id",
    "cost_price", "selling_price", "currency",
    "quantity", "min_stock", "max_stock", "location",
    "variants", "images",
    "weight", "length", "width", "height",
    "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _get_or_404(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _check_unique(patch: dict, product_id: int | None = None) -> None:
    for field, label in (("sku", "SKU"), ("name", "Product name")):
        value = patch.get(field)
        if value is None:
            continue
        query = db.session.query(Product.id).filter(getattr(Product, field) == value)
        if product_id is not None:
            query = query.filter(Product.id != product_id)
        if query.first():
            raise ConflictError(f"{label} already exists.")


def _check_supplier(patch: dict) -> None:
    supplier_id = patch.get("supplier_id")
    if supplier_id is not None and db.session.get(Supplier, supplier_id) is None:
        raise NotFoundError("Supplier not found")


def _check_stock_bounds(min_stock: int, max_stock: int | None) -> None:
    if max_stock is not None and max_stock < min_stock:
        raise ValidationError("max_stock cannot be below min_stock")


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: SKU or name already used by another product
        NotFoundError: supplier_id does not exist
    """
    _check_unique(patch)
    _check_supplier(patch)

    config = current_app.config
    p = Product(
        currency=config.get("DEFAULT_CURRENCY", "USD"),
        min_stock=config.get("DEFAULT_MIN_STOCK", 10),
        location=config.get("DEFAULT_LOCATION", "Main Store"),
        quantity=0,
        variants=[],
        images=[],
    )
    apply_product_patch(p, patch)
    _check_stock_bounds(p.min_stock, p.max_stock)

    db.session.add(p)
    db.session.commit()
    current_app.logger.info("Created product sku=%s name=%s", p.sku, p.name)
    return p.to_dict()


def get_product(product_id: int) -> dict:
    return _get_or_404(product_id).to_dict()


def get_product_by_sku(sku: str) -> dict:
    product = db.session.query(Product).filter(Product.sku == sku).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product.to_dict()


def list_products(query: ProductQuery) -> dict:
    """
    Filtered, sorted, paginated product listing.

    Returns:
        Dict with 'items', 'count' and 'pagination' metadata.
    """
    q = db.session.query(Product)

    if query.search:
        pattern = f"%{query.search}%"
        q = q.filter(or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.sku.ilike(pattern),
        ))
    if query.category:
        q = q.filter(Product.category == query.category)
    if query.supplier_id is not None:
        q = q.filter(Product.supplier_id == query.supplier_id)
    if query.min_price is not None:
        q = q.filter(Product.selling_price >= query.min_price)
    if query.max_price is not None:
        q = q.filter(Product.selling_price <= query.max_price)
    if query.in_stock is True:
        q = q.filter(Product.quantity > 0)
    elif query.in_stock is False:
        q = q.filter(Product.quantity <= 0)
    if query.is_active is not None:
        q = q.filter(Product.is_active == query.is_active)

    column = getattr(Product, query.sort_by)
    if query.sort_order == "desc":
        q = q.order_by(column.desc(), Product.id.desc())
    else:
        q = q.order_by(column.asc(), Product.id.asc())

    return paginate(q, query.page, query.limit, lambda p: p.to_dict())


def update_product(product_id: int, patch: dict) -> dict:
    """
    Apply a validated patch. `quantity` is accepted here as an administrative
    correction; day-to-day stock movement goes through adjust_stock.
    """
    p = _get_or_404(product_id)
    _check_unique(patch, product_id=product_id)
    _check_supplier(patch)
    _check_stock_bounds(patch.get("min_stock", p.min_stock), patch.get("max_stock", p.max_stock))

    apply_product_patch(p, patch)
    db.session.commit()
    current_app.logger.info("Updated product id=%s fields=%s", p.id, sorted(patch))
    return p.to_dict()


def delete_product(product_id: int) -> None:
    """
    Hard delete. Products that appear on recorded sales or invoices are
    history and cannot be removed; deactivate them instead.
    """
    p = _get_or_404(product_id)

    sold = db.session.query(SaleLine.id).filter(SaleLine.product_id == p.id).first()
    invoiced = db.session.query(InvoiceLine.id).filter(InvoiceLine.product_id == p.id).first()
    if sold or invoiced:
        raise ConflictError(
            "Product is referenced by recorded sales or invoices. Set is_active=false instead."
        )

    db.session.delete(p)
    db.session.commit()
    current_app.logger.info("Deleted product id=%s sku=%s", product_id, p.sku)


def list_low_stock() -> list[dict]:
    """Products at or below their reorder threshold, ordered by name then id."""
    products = (
        db.session.query(Product)
        .filter(Product.quantity <= Product.min_stock)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    return [p.to_dict() for p in products]


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.category.isnot(None), func.trim(Product.category) != "")
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [row[0] for row in rows]


def list_subcategories(category: str) -> list[str]:
    rows = (
        db.session.query(Product.subcategory)
        .filter(
            Product.category == category,
            Product.subcategory.isnot(None),
            func.trim(Product.subcategory) != "",
        )
        .distinct()
        .order_by(Product.subcategory.asc())
        .all()
    )
    return [row[0] for row in rows]


def search_products_for_sale(search: str | None, limit: int = 10) -> list[dict]:
    """Active, in-stock products matching name, SKU or description; the register's lookup."""
    q = db.session.query(Product).filter(Product.is_active.is_(True), Product.quantity > 0)
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(
            Product.name.ilike(pattern),
            Product.sku.ilike(pattern),
            Product.description.ilike(pattern),
        ))
    products = q.order_by(Product.name.asc(), Product.id.asc()).limit(limit).all()
    return [p.to_pos_dict() for p in products]


def get_product_for_sale(product_id: int) -> dict:
    """
    Raises:
        NotFoundError: product does not exist
        ValidationError: product is inactive or out of stock
    """
    p = _get_or_404(product_id)
    if not p.is_active:
        raise ValidationError("Product is not active")
    if p.quantity <= 0:
        raise ValidationError("Product is out of stock")
    return p.to_pos_dict()
