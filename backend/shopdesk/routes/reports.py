# Overview: Flask API routes for financial reports; parses input and returns JSON responses.

"""
Reporting Routes

Every report takes the same filters as the transaction list:
start, end (ISO dates, end inclusive for bare dates), type, category,
plus currency (target currency, default from config) and live=true to
convert with fetched rates instead of the fallback table.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..models import CURRENCIES
from ..services import report_service, transaction_service
from ..services.currency_service import fetch_currency_rates, fallback_rates
from ..services.pdf_service import render_financial_report_pdf
from ..validation import ValidationError
from .pos import pdf_response
from .transactions import read_filters


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _report_inputs():
    filters = read_filters(request.args)
    currency = (request.args.get("currency") or current_app.config["DEFAULT_CURRENCY"]).upper()
    if currency not in CURRENCIES:
        raise ValidationError(f"currency must be one of: {', '.join(CURRENCIES)}")
    live = request.args.get("live", "false").lower() == "true"
    rates = fetch_currency_rates() if live else fallback_rates()
    return transaction_service.get_transactions(**filters), currency, rates


@reports_bp.get("/financial")
@require_auth
@require_permission("VIEW_REPORTS")
def financial_report_route():
    try:
        txs, currency, rates = _report_inputs()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "summary": report_service.financial_summary(txs, currency, rates),
        "income_categories": report_service.category_summary(txs, "income", currency, rates),
        "expense_categories": report_service.category_summary(txs, "expense", currency, rates),
        "monthly": report_service.monthly_data(txs, currency, rates),
    })


@reports_bp.get("/financial/pdf")
@require_auth
@require_permission("VIEW_REPORTS")
def financial_report_pdf_route():
    try:
        txs, currency, rates = _report_inputs()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    summary = report_service.financial_summary(txs, currency, rates)
    return pdf_response(render_financial_report_pdf(txs, summary), "financial-report.pdf")
