# Overview: Service-layer operations for suppliers.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Supplier
from ..validation import ConflictError, NotFoundError

SUPPLIER_MUTABLE_FIELDS = {"name", "contact_name", "email", "phone", "is_active"}


def _get_or_404(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier not found")
    return supplier


def _check_name(name: str | None, supplier_id: int | None = None) -> None:
    if name is None:
        return
    query = db.session.query(Supplier.id).filter(Supplier.name == name)
    if supplier_id is not None:
        query = query.filter(Supplier.id != supplier_id)
    if query.first():
        raise ConflictError("Supplier name already exists.")


def create_supplier(*, patch: dict) -> dict:
    _check_name(patch.get("name"))
    supplier = Supplier()
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)
    db.session.add(supplier)
    db.session.commit()
    current_app.logger.info("Created supplier id=%s name=%s", supplier.id, supplier.name)
    return supplier.to_dict()


def list_suppliers(include_inactive: bool = False) -> list[dict]:
    query = db.session.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.is_active.is_(True))
    return [s.to_dict() for s in query.order_by(Supplier.name.asc(), Supplier.id.asc()).all()]


def get_supplier(supplier_id: int) -> dict:
    return _get_or_404(supplier_id).to_dict()


def update_supplier(supplier_id: int, patch: dict) -> dict:
    supplier = _get_or_404(supplier_id)
    _check_name(patch.get("name"), supplier_id=supplier_id)
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)
    db.session.commit()
    return supplier.to_dict()
