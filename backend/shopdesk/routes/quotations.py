# Overview: Flask API routes for quotations.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..services import quotation_service
from ..services.pdf_service import render_quotation_pdf
from ..services.quotation_service import QuotationError
from ..validation import ValidationError
from .pos import pdf_response


quotations_bp = Blueprint("quotations", __name__, url_prefix="/api/quotations")


@quotations_bp.get("")
@require_auth
@require_permission("MANAGE_QUOTATIONS")
def list_quotations_route():
    quotations = quotation_service.get_quotations()
    return jsonify({"items": [q.to_dict() for q in quotations], "count": len(quotations)})


@quotations_bp.post("")
@require_auth
@require_permission("MANAGE_QUOTATIONS")
def create_quotation_route():
    """
    Request body:
    {
        "company": "Acme",
        "lines": [{"name": "...", "quantity": 2, "price_cents": 1500}],
        "tax_rate_pct": 14,          // optional
        "payment_terms": "...",      // optional
        "delivery_date": "..."       // optional
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        quotation = quotation_service.add_quotation(data, user_id=g.current_user.id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(quotation.to_dict()), 201


@quotations_bp.get("/<int:quotation_id>")
@require_auth
@require_permission("MANAGE_QUOTATIONS")
def get_quotation_route(quotation_id: int):
    quotation = quotation_service.get_quotation(quotation_id)
    if quotation is None:
        return jsonify({"error": "Quotation not found"}), 404
    return jsonify(quotation.to_dict())


@quotations_bp.delete("/<int:quotation_id>")
@require_auth
@require_permission("MANAGE_QUOTATIONS")
def delete_quotation_route(quotation_id: int):
    try:
        quotation_service.delete_quotation(quotation_id)
    except QuotationError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True})


@quotations_bp.get("/<int:quotation_id>/pdf")
@require_auth
@require_permission("MANAGE_QUOTATIONS")
def quotation_pdf_route(quotation_id: int):
    quotation = quotation_service.get_quotation(quotation_id)
    if quotation is None:
        return jsonify({"error": "Quotation not found"}), 404
    return pdf_response(render_quotation_pdf(quotation), f"quotation-{quotation.id}.pdf")
