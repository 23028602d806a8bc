# backend/shopdesk/services/product_service.py
"""
Product catalog service.

Routes validate payloads (validation.validate_payload) and hand a patch
dict to these functions. Supplier links are passed separately as ids.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, Supplier, StockMovement, SaleLine
from ..validation import ConflictError, ValidationError

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "barcode",
    "purchase_price_cents",
    "sale_price_cents",
    "min_sale_quantity",
    "category_name",
}


class ProductError(Exception):
    """Raised for product operation errors."""
    pass


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _resolve_suppliers(supplier_ids) -> list[Supplier]:
    if not isinstance(supplier_ids, list) or not all(isinstance(i, int) and not isinstance(i, bool) for i in supplier_ids):
        raise ValidationError("supplier_ids must be a list of integers")
    if not supplier_ids:
        return []
    suppliers = db.session.query(Supplier).filter(Supplier.id.in_(supplier_ids)).all()
    found = {s.id for s in suppliers}
    missing = [i for i in supplier_ids if i not in found]
    if missing:
        raise ValidationError(f"Unknown supplier ids: {', '.join(str(i) for i in missing)}")
    return suppliers


def _ensure_barcode_free(barcode: str | None, *, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    q = db.session.query(Product).filter(Product.barcode == barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Barcode already in use: {barcode}")


def list_products(page: int | None = None, per_page: int | None = None) -> dict:
    """All products by name; paginated when page is given."""
    base_query = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = base_query.all()
        return {"items": [p.to_dict() for p in products], "count": len(products)}

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def find_product_by_barcode(barcode: str) -> Product | None:
    barcode = (barcode or "").strip()
    if not barcode:
        return None
    return db.session.query(Product).filter(Product.barcode == barcode).first()


def add_product(*, patch: dict, supplier_ids: list[int] | None = None) -> Product:
    _ensure_barcode_free(patch.get("barcode"))

    product = Product()
    apply_product_patch(product, patch)
    if supplier_ids is not None:
        product.suppliers = _resolve_suppliers(supplier_ids)

    db.session.add(product)
    db.session.commit()
    return product


def update_product(*, product_id: int, patch: dict, supplier_ids: list[int] | None = None) -> Product | None:
    """Returns None when the product does not exist."""
    product = db.session.get(Product, product_id)
    if product is None:
        return None

    if "barcode" in patch:
        _ensure_barcode_free(patch["barcode"], exclude_id=product_id)

    apply_product_patch(product, patch)
    if supplier_ids is not None:
        product.suppliers = _resolve_suppliers(supplier_ids)

    db.session.commit()
    return product


def delete_product(*, product_id: int) -> bool:
    """
    Delete a product that never moved through the ledger or a sale.

    Returns False when the product does not exist.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        return False

    has_movements = db.session.query(StockMovement.id).filter_by(product_id=product_id).first() is not None
    has_sales = db.session.query(SaleLine.id).filter_by(product_id=product_id).first() is not None
    if has_movements or has_sales:
        raise ConflictError("Product has stock movements or sales and cannot be deleted")

    db.session.delete(product)
    db.session.commit()
    return True
