# Overview: Flask API routes for the stock ledger.

"""
Stock routes

Stock on hand is always derived from movements; there is no endpoint
that sets a quantity directly.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..models import Product, StockMovement
from ..extensions import db
from ..services import stock_service
from ..services.stock_service import StockError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_stock_movement,
    ValidationError,
)


MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "type", "quantity", "date", "note", "reason"},
    required_on_create={"product_id", "type", "quantity"},
)

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
@require_auth
@require_permission("VIEW_STOCK")
def stock_levels_route():
    """
    Derived stock for every product.

    Query parameters:
    - low: only rows flagged low_stock when "true"
    """
    rows = stock_service.get_stock_levels()
    if request.args.get("low", "false").lower() == "true":
        rows = [r for r in rows if r["low_stock"]]
    return jsonify({
        "items": rows,
        "count": len(rows),
        "total_value_cents": sum(r["stock_value_cents"] for r in rows),
    })


@stock_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_STOCK")
def product_stock_route(product_id: int):
    if db.session.get(Product, product_id) is None:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product_id": product_id, "stock": stock_service.get_product_stock(product_id)})


@stock_bp.get("/movements")
@require_auth
@require_permission("VIEW_STOCK")
def list_movements_route():
    product_id = request.args.get("product_id", type=int)
    movements = stock_service.get_stock_movements(product_id)
    return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)})


@stock_bp.post("/movements")
@require_auth
@require_permission("MANAGE_STOCK")
def add_movement_route():
    """
    Request body: {"product_id", "type": "in"|"out", "quantity" > 0, "date"?, "note"?, "reason"?}
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=StockMovement, payload=payload, policy=MOVEMENT_POLICY, partial=False)
        enforce_rules_stock_movement(patch)
        movement_id = stock_service.add_stock_movement(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        status = 404 if str(e) == "Product not found" else 400
        return jsonify({"error": str(e)}), status
    except Exception:
        current_app.logger.exception("Failed to add stock movement")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "id": movement_id,
        "stock": stock_service.get_product_stock(patch["product_id"]),
    }), 201


@stock_bp.delete("/movements/<int:movement_id>")
@require_auth
@require_permission("DELETE_STOCK_MOVEMENT")
def delete_movement_route(movement_id: int):
    try:
        stock_service.delete_stock_movement(movement_id)
    except StockError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True})
