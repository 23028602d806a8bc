# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

"""
Supplier Routes

SECURITY: All routes require authentication.
- View operations require VIEW_SUPPLIERS permission
- Create/update/deactivate/delete require MANAGE_SUPPLIERS permission
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..models import Supplier
from ..services import supplier_service
from ..services.supplier_service import SupplierError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_supplier,
    ValidationError,
)


SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "category", "products", "notes", "is_active"},
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_permission("VIEW_SUPPLIERS")
def list_suppliers_route():
    """
    Query parameters:
    - active: only active suppliers when "true"
    """
    active_only = request.args.get("active", "false").lower() == "true"
    suppliers = supplier_service.get_active_suppliers() if active_only else supplier_service.get_suppliers()
    return jsonify({"items": [s.to_dict() for s in suppliers], "count": len(suppliers)})


@suppliers_bp.post("")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        enforce_rules_supplier(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    supplier = supplier_service.add_supplier(patch, added_by=g.current_user.id)
    return jsonify(supplier.to_dict()), 201


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_permission("VIEW_SUPPLIERS")
def get_supplier_route(supplier_id: int):
    supplier = supplier_service.get_supplier(supplier_id)
    if supplier is None:
        return jsonify({"error": "Supplier not found"}), 404
    return jsonify(supplier.to_dict())


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        enforce_rules_supplier(patch)
        supplier = supplier_service.update_supplier(supplier_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SupplierError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(supplier.to_dict())


@suppliers_bp.post("/<int:supplier_id>/deactivate")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def deactivate_supplier_route(supplier_id: int):
    try:
        supplier = supplier_service.deactivate_supplier(supplier_id)
    except SupplierError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(supplier.to_dict())


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def delete_supplier_route(supplier_id: int):
    try:
        supplier_service.delete_supplier(supplier_id)
    except SupplierError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True})
