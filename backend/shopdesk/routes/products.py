# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/shopdesk/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS permission
- Write operations require MANAGE_PRODUCTS permission
"""
from flask import Blueprint, request, current_app

from ..services import product_service
from ..services.pdf_service import render_barcode_label_pdf
from ..services.stock_service import get_product_stock
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_permission
from .pos import pdf_response

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "barcode",
        "purchase_price_cents",
        "sale_price_cents",
        "min_sale_quantity",
        "category_name",
    },
    required_on_create={"name", "sale_price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _split_payload(payload: dict) -> tuple[dict, list | None]:
    payload = dict(payload)
    supplier_ids = payload.pop("supplier_ids", None)
    return payload, supplier_ids


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)
    return product_service.list_products(page=page, per_page=per_page)


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product_route(product_id: int):
    product = product_service.get_product(product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    data = product.to_dict()
    data["stock"] = get_product_stock(product.id)
    return data


@products_bp.get("/barcode/<string:barcode>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def find_by_barcode_route(barcode: str):
    """POS scanner lookup; includes current stock."""
    product = product_service.find_product_by_barcode(barcode)
    if product is None:
        return {"error": "Product not found"}, 404
    data = product.to_dict()
    data["stock"] = get_product_stock(product.id)
    return data


@products_bp.get("/<int:product_id>/barcode.pdf")
@require_auth
@require_permission("VIEW_PRODUCTS")
def barcode_label_route(product_id: int):
    product = product_service.get_product(product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    try:
        data = render_barcode_label_pdf(product)
    except ValueError as e:
        return {"error": str(e)}, 400
    return pdf_response(data, f"barcode-{product.barcode}.pdf")


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    payload, supplier_ids = _split_payload(request.get_json(silent=True) or {})

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = product_service.add_product(patch=patch, supplier_ids=supplier_ids)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload, supplier_ids = _split_payload(request.get_json(silent=True) or {})

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = product_service.update_product(product_id=product_id, patch=patch, supplier_ids=supplier_ids)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    if updated is None:
        return {"error": "Product not found"}, 404
    return updated.to_dict()


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    try:
        deleted = product_service.delete_product(product_id=product_id)
    except ConflictError as e:
        return {"error": str(e)}, 409

    if not deleted:
        return {"error": "Product not found"}, 404
    return {"ok": True}, 200
