# Overview: Flask API routes for sale returns; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..services import return_service
from ..services.pdf_service import render_return_pdf
from ..services.return_service import ReturnError
from shopdesk.time_utils import parse_range
from .pos import pdf_response


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


def _return_error(e: ReturnError):
    status = 404 if str(e) == "Sale not found" else 400
    return jsonify({"error": str(e), "details": e.details}), status


@returns_bp.post("/full")
@require_auth
@require_permission("PROCESS_RETURNS")
def full_return_route():
    """Request body: {"sale_id": int, "reason"?: str}"""
    data = request.get_json(silent=True) or {}
    sale_id = data.get("sale_id")
    if not isinstance(sale_id, int) or isinstance(sale_id, bool):
        return jsonify({"error": "sale_id is required"}), 400

    try:
        doc = return_service.process_full_return(sale_id, data.get("reason"), user_id=g.current_user.id)
    except ReturnError as e:
        return _return_error(e)
    except Exception:
        current_app.logger.exception("Failed to process full return")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(doc.to_dict()), 201


@returns_bp.post("/partial")
@require_auth
@require_permission("PROCESS_RETURNS")
def partial_return_route():
    """
    Request body:
    {"sale_id": int, "items": [{"product_id": 1, "quantity": 1}, ...], "reason"?: str}
    """
    data = request.get_json(silent=True) or {}
    sale_id = data.get("sale_id")
    items = data.get("items")
    if not isinstance(sale_id, int) or isinstance(sale_id, bool):
        return jsonify({"error": "sale_id is required"}), 400
    if not isinstance(items, list):
        return jsonify({"error": "items must be a list"}), 400

    quantities: dict[int, int] = {}
    for item in items:
        if not isinstance(item, dict) or "product_id" not in item or "quantity" not in item:
            return jsonify({"error": "Each item needs product_id and quantity"}), 400
        product_id, qty = item["product_id"], item["quantity"]
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            return jsonify({"error": "product_id must be an integer"}), 400
        if not isinstance(qty, int) or isinstance(qty, bool):
            return jsonify({"error": "quantity must be an integer"}), 400
        quantities[product_id] = quantities.get(product_id, 0) + qty

    try:
        doc = return_service.process_partial_return(sale_id, quantities, data.get("reason"), user_id=g.current_user.id)
    except ReturnError as e:
        return _return_error(e)
    except Exception:
        current_app.logger.exception("Failed to process partial return")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(doc.to_dict()), 201


@returns_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_returns_route():
    try:
        start, end = parse_range(request.args.get("start"), request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start/end must be ISO dates"}), 400
    docs = return_service.list_returns(start=start, end=end, return_type=request.args.get("type"))
    return jsonify({"items": [d.to_dict() for d in docs], "count": len(docs)})


@returns_bp.get("/report")
@require_auth
@require_permission("VIEW_REPORTS")
def returns_report_route():
    try:
        start, end = parse_range(request.args.get("start"), request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start/end must be ISO dates"}), 400
    return jsonify(return_service.returns_report(start, end))


@returns_bp.get("/sales/<int:sale_id>/returnable")
@require_auth
@require_permission("PROCESS_RETURNS")
def returnable_lines_route(sale_id: int):
    try:
        rows = return_service.get_returnable_lines(sale_id)
    except ReturnError as e:
        return _return_error(e)
    return jsonify({"items": rows})


@returns_bp.get("/<int:return_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_return_route(return_id: int):
    doc = return_service.get_return(return_id)
    if doc is None:
        return jsonify({"error": "Return not found"}), 404
    return jsonify(doc.to_dict())


@returns_bp.get("/<int:return_id>/pdf")
@require_auth
@require_permission("VIEW_SALES")
def return_pdf_route(return_id: int):
    doc = return_service.get_return(return_id)
    if doc is None:
        return jsonify({"error": "Return not found"}), 404
    return pdf_response(render_return_pdf(doc), f"return-{doc.id}.pdf")
