# Overview: Supplier directory.

from __future__ import annotations

from ..extensions import db
from ..models import Supplier

SUPPLIER_MUTABLE_FIELDS = {"name", "email", "phone", "address", "category", "products", "notes", "is_active"}


class SupplierError(Exception):
    """Raised for supplier operation errors."""
    pass


def add_supplier(patch: dict, added_by: int | None) -> Supplier:
    supplier = Supplier(user_id=added_by, products=[], is_active=True)
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)
    db.session.add(supplier)
    db.session.commit()
    return supplier


def get_suppliers() -> list[Supplier]:
    return db.session.query(Supplier).order_by(Supplier.name.asc(), Supplier.id.asc()).all()


def get_active_suppliers() -> list[Supplier]:
    return (
        db.session.query(Supplier)
        .filter(Supplier.is_active.is_(True))
        .order_by(Supplier.name.asc(), Supplier.id.asc())
        .all()
    )


def get_supplier(supplier_id: int) -> Supplier | None:
    return db.session.get(Supplier, supplier_id)


def update_supplier(supplier_id: int, patch: dict) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise SupplierError("Supplier not found")
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)
    db.session.commit()
    return supplier


def delete_supplier(supplier_id: int) -> None:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise SupplierError("Supplier not found")
    db.session.delete(supplier)
    db.session.commit()


def deactivate_supplier(supplier_id: int) -> Supplier:
    return update_supplier(supplier_id, {"is_active": False})
