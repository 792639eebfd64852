# Overview: Service-layer operations for inventory; the stock adjustment primitive.

"""
Stock adjustment primitive.

Every quantity change is ONE conditional UPDATE statement:

    UPDATE products
       SET quantity = quantity - :amount, version_id = version_id + 1
     WHERE id = :id AND quantity >= :amount

The floor check and the write happen atomically in the database, so two
concurrent sales can never both pass the check and oversell. There is no
read-then-write window to protect with locks.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, ValidationError, parse_positive_int
from .concurrency import run_with_retry

STOCK_OPERATIONS = ("add", "subtract")


class InsufficientStockError(Exception):
    """Raised when a subtraction would drive a product's quantity below zero."""
    def __init__(self, product: Product, requested: int, available: int | None = None):
        self.product_id = product.id
        self.sku = product.sku
        self.name = product.name
        self.requested = requested
        self.available = product.quantity if available is None else available
        super().__init__(
            f"Insufficient stock for product {self.name}. "
            f"Available: {self.available}, Requested: {self.requested}"
        )

    @property
    def details(self) -> dict:
        return {
            "product_id": self.product_id,
            "sku": self.sku,
            "name": self.name,
            "available": self.available,
            "requested": self.requested,
        }


def _apply_stock_delta(product_id: int, quantity: int, operation: str) -> Product:
    table = Product.__table__
    delta = quantity if operation == "add" else -quantity

    stmt = (
        update(table)
        .where(table.c.id == product_id)
        .values(
            quantity=table.c.quantity + delta,
            version_id=table.c.version_id + 1,
        )
    )
    if operation == "subtract":
        stmt = stmt.where(table.c.quantity >= quantity)

    result = db.session.execute(stmt)

    # Re-read so identity-mapped instances see the new quantity and version
    product = db.session.get(Product, product_id, populate_existing=True)
    if product is None:
        raise NotFoundError("Product not found")
    if result.rowcount == 0:
        current_app.logger.warning(
            "Rejected stock %s of %d for product %s (available %d)",
            operation, quantity, product.sku, product.quantity,
        )
        raise InsufficientStockError(product, requested=quantity)
    return product


def adjust_stock(
    product_id: int,
    quantity,
    operation: str = "subtract",
    *,
    commit: bool = True,
) -> Product:
    """
    Add to or subtract from a product's on-hand quantity.

    commit=False enlists the change in the caller's transaction (used by the
    sale flow); the caller owns retry and rollback in that case.

    Raises:
        ValidationError: quantity is not a positive integer or operation is unknown
        NotFoundError: product does not exist
        InsufficientStockError: subtract would make quantity negative (nothing changes)
    """
    quantity = parse_positive_int(quantity, "quantity")
    if operation not in STOCK_OPERATIONS:
        raise ValidationError("operation must be add or subtract")

    if not commit:
        return _apply_stock_delta(product_id, quantity, operation)

    def _op():
        product = _apply_stock_delta(product_id, quantity, operation)
        db.session.commit()
        current_app.logger.info(
            "Stock %s %d for product %s, now %d",
            operation, quantity, product.sku, product.quantity,
        )
        return product

    return run_with_retry(_op)
