# Overview: Flask API routes for bookkeeping transactions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..models import Transaction
from ..services import transaction_service
from ..services.pdf_service import render_transaction_pdf
from ..services.transaction_service import TransactionError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_transaction,
    ValidationError,
)
from shopdesk.time_utils import parse_range
from .pos import pdf_response


TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={"type", "amount_cents", "currency", "category", "description", "date", "supplier_id"},
    required_on_create={"type", "amount_cents", "category"},
)

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def read_filters(args) -> dict:
    """start/end/type/category query params; raises ValidationError."""
    try:
        start, end = parse_range(args.get("start"), args.get("end"))
    except ValueError:
        raise ValidationError("start/end must be ISO dates")
    return {
        "start": start,
        "end": end,
        "type": args.get("type") or None,
        "category": args.get("category") or None,
    }


@transactions_bp.get("")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def list_transactions_route():
    try:
        filters = read_filters(request.args)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    txs = transaction_service.get_transactions(**filters)
    return jsonify({"items": [t.to_dict() for t in txs], "count": len(txs)})


@transactions_bp.get("/feed")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def transactions_feed_route():
    """Poll with ?cursor=<last cursor>; returns new entries and the next cursor."""
    cursor = request.args.get("cursor", 0, type=int)
    feed = transaction_service.get_transactions_since(cursor)
    return jsonify({
        "items": [t.to_dict() for t in feed["items"]],
        "cursor": feed["cursor"],
    })


@transactions_bp.get("/categories")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def categories_route():
    return jsonify({"items": transaction_service.get_categories(request.args.get("type"))})


@transactions_bp.post("")
@require_auth
@require_permission("MANAGE_TRANSACTIONS")
def create_transaction_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Transaction, payload=payload, policy=TRANSACTION_POLICY, partial=False)
        enforce_rules_transaction(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    tx = transaction_service.add_transaction(patch, added_by=g.current_user.id)
    return jsonify(tx.to_dict()), 201


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def get_transaction_route(transaction_id: int):
    tx = transaction_service.get_transaction(transaction_id)
    if tx is None:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify(tx.to_dict())


@transactions_bp.put("/<int:transaction_id>")
@require_auth
@require_permission("MANAGE_TRANSACTIONS")
def update_transaction_route(transaction_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Transaction, payload=payload, policy=TRANSACTION_POLICY, partial=True)
        enforce_rules_transaction(patch)
        tx = transaction_service.update_transaction(transaction_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TransactionError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(tx.to_dict())


@transactions_bp.delete("/<int:transaction_id>")
@require_auth
@require_permission("MANAGE_TRANSACTIONS")
def delete_transaction_route(transaction_id: int):
    try:
        transaction_service.delete_transaction(transaction_id)
    except TransactionError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True})


@transactions_bp.get("/<int:transaction_id>/pdf")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def transaction_pdf_route(transaction_id: int):
    tx = transaction_service.get_transaction(transaction_id)
    if tx is None:
        return jsonify({"error": "Transaction not found"}), 404
    return pdf_response(render_transaction_pdf(tx), f"transaction-{tx.id}.pdf")
