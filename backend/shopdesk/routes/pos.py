# Overview: Flask API routes for POS shifts, checkout and sales; parses input and returns JSON responses.

# backend/shopdesk/routes/pos.py
"""
POS Routes

Shifts:
- POST /api/pos/shifts/open
- GET  /api/pos/shifts/current
- POST /api/pos/shifts/<id>/close
- GET  /api/pos/shifts/<id>/summary
- GET  /api/pos/shifts

Sales:
- POST /api/pos/checkout
- GET  /api/pos/sales
- GET  /api/pos/sales/search?q=
- GET  /api/pos/sales/<id>
- GET  /api/pos/sales/<id>/invoice.pdf
- GET  /api/pos/sales/<id>/receipt.pdf
- GET  /api/pos/invoices/<number>
"""

import math
from io import BytesIO

from flask import Blueprint, request, jsonify, g, current_app, send_file

from ..decorators import require_auth, require_permission
from ..permissions import role_has_permission
from ..services import pos_service
from ..services.invoice_service import parse_invoice_number
from ..services.pdf_service import render_sale_invoice_pdf, render_thermal_receipt_pdf
from ..services.pos_service import SaleError, ShiftError, ShiftForbiddenError


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def pdf_response(data: bytes, filename: str):
    return send_file(
        BytesIO(data),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=filename,
    )


# =============================================================================
# SHIFTS
# =============================================================================

@pos_bp.post("/shifts/open")
@require_auth
@require_permission("OPERATE_POS")
def open_shift_route():
    try:
        shift = pos_service.open_shift(g.current_user.id)
    except ShiftError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify(shift.to_dict()), 201


@pos_bp.get("/shifts/current")
@require_auth
@require_permission("OPERATE_POS")
def current_shift_route():
    shift = pos_service.get_open_shift(g.current_user.id)
    return jsonify({"shift": shift.to_dict() if shift else None})


@pos_bp.post("/shifts/<int:shift_id>/close")
@require_auth
@require_permission("OPERATE_POS")
def close_shift_route(shift_id: int):
    try:
        closed = pos_service.close_shift(
            shift_id,
            user_id=g.current_user.id,
            owner_only=not role_has_permission(g.current_user.role, "CLOSE_ANY_SHIFT"),
        )
    except ShiftForbiddenError as e:
        return jsonify({"error": str(e)}), 403
    except ShiftError as e:
        status = 404 if str(e) == "Shift not found" else 409
        return jsonify({"error": str(e)}), status
    return jsonify({"shift": closed.to_dict(), "summary": pos_service.get_shift_summary(shift_id)})


@pos_bp.get("/shifts/<int:shift_id>/summary")
@require_auth
@require_permission("OPERATE_POS")
def shift_summary_route(shift_id: int):
    return jsonify(pos_service.get_shift_summary(shift_id))


@pos_bp.get("/shifts")
@require_auth
@require_permission("VIEW_SHIFTS")
def list_shifts_route():
    user_id = request.args.get("user_id", type=int)
    shifts = pos_service.list_shifts(user_id=user_id)
    return jsonify({"items": [s.to_dict() for s in shifts], "count": len(shifts)})


# =============================================================================
# CHECKOUT & SALES
# =============================================================================

@pos_bp.post("/checkout")
@require_auth
@require_permission("OPERATE_POS")
def checkout_route():
    """
    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}, ...],
        "customer": {"id": 3} | {"name": "...", "phone": "..."},   // optional
        "tax_rate_pct": 14,                                       // optional
        "payment_type": "cash" | "card"
    }
    """
    data = request.get_json(silent=True) or {}
    items = data.get("items")
    if not isinstance(items, list):
        return jsonify({"error": "items must be a list"}), 400

    tax_rate_pct = data.get("tax_rate_pct")
    if tax_rate_pct is not None:
        try:
            tax_rate_pct = float(tax_rate_pct)
        except (TypeError, ValueError):
            return jsonify({"error": "tax_rate_pct must be a number"}), 400
        if not math.isfinite(tax_rate_pct):
            return jsonify({"error": "tax_rate_pct must be a finite number"}), 400

    customer = data.get("customer")
    if customer is not None and not isinstance(customer, dict):
        return jsonify({"error": "customer must be an object"}), 400

    try:
        sale = pos_service.checkout(
            user_id=g.current_user.id,
            items=items,
            customer=customer,
            tax_rate_pct=tax_rate_pct,
            payment_type=data.get("payment_type") or "cash",
        )
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to complete checkout")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale.to_dict()), 201


@pos_bp.get("/sales")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    sales = pos_service.list_sales(
        shift_id=request.args.get("shift_id", type=int),
        customer_id=request.args.get("customer_id", type=int),
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"items": [s.to_dict(include_lines=False) for s in sales], "count": len(sales)})


@pos_bp.get("/sales/search")
@require_auth
@require_permission("VIEW_SALES")
def search_sales_route():
    sales = pos_service.search_sales_by_invoice_partial(request.args.get("q", ""))
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@pos_bp.get("/sales/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    sale = pos_service.get_sale(sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify(sale.to_dict())


@pos_bp.get("/sales/<int:sale_id>/invoice.pdf")
@require_auth
@require_permission("VIEW_SALES")
def sale_invoice_pdf_route(sale_id: int):
    sale = pos_service.get_sale(sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return pdf_response(render_sale_invoice_pdf(sale), f"{sale.invoice_number}.pdf")


@pos_bp.get("/sales/<int:sale_id>/receipt.pdf")
@require_auth
@require_permission("VIEW_SALES")
def sale_receipt_pdf_route(sale_id: int):
    sale = pos_service.get_sale(sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return pdf_response(render_thermal_receipt_pdf(sale), f"receipt-{sale.invoice_number}.pdf")


@pos_bp.get("/invoices/<string:invoice_number>")
@require_auth
@require_permission("VIEW_SALES")
def invoice_lookup_route(invoice_number: str):
    """Parsed invoice number plus the matching sale, if any."""
    sale = pos_service.get_sale_by_invoice(invoice_number)
    return jsonify({
        "invoice": parse_invoice_number(invoice_number),
        "sale": sale.to_dict() if sale else None,
    })
