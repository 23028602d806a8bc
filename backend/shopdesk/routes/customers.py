# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_permission
from ..models import Customer
from ..services import customer_service
from ..services.customer_service import CustomerError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_customer,
    ValidationError,
    ConflictError,
)


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email", "address", "discount_pct", "notes"},
    required_on_create={"name", "phone"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_customers_route():
    """
    Query parameters:
    - phone: exact phone lookup (0 or 1 items)
    - q: name/phone substring search
    """
    phone = request.args.get("phone")
    term = request.args.get("q")
    if phone:
        found = customer_service.find_customer_by_phone(phone)
        customers = [found] if found else []
    elif term:
        customers = customer_service.search_customers(term)
    else:
        customers = customer_service.get_customers()
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)})


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
        customer = customer_service.add_customer(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify(customer.to_dict()), 201


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer_route(customer_id: int):
    customer = customer_service.get_customer(customer_id)
    if customer is None:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify(customer.to_dict())


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch)
        customer = customer_service.update_customer(customer_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except CustomerError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(customer.to_dict())


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(customer_id)
    except CustomerError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True})


@customers_bp.get("/<int:customer_id>/purchases")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def customer_purchases_route(customer_id: int):
    if customer_service.get_customer(customer_id) is None:
        return jsonify({"error": "Customer not found"}), 404
    purchases = customer_service.get_customer_purchases(customer_id)
    return jsonify({"items": purchases, "count": len(purchases)})
