# Overview: Flask API routes for exchange rates and conversion.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth
from ..models import CURRENCIES
from ..services.currency_service import (
    CURRENCY_NAMES,
    CURRENCY_SYMBOLS,
    convert_currency,
    fetch_currency_rates,
    format_currency,
    get_exchange_rates,
)


currency_bp = Blueprint("currency", __name__, url_prefix="/api/currency")


@currency_bp.get("")
@require_auth
def currencies_route():
    return jsonify({
        "items": [
            {"code": code, "name": CURRENCY_NAMES[code], "symbol": CURRENCY_SYMBOLS[code]}
            for code in CURRENCIES
        ],
        "static_rates": get_exchange_rates(),
    })


@currency_bp.get("/rates")
@require_auth
def rates_route():
    base = (request.args.get("base") or "USD").upper()
    rates = fetch_currency_rates(base=base, symbols=[c for c in CURRENCIES if c != base])
    return jsonify({"items": [r.to_dict() for r in rates]})


@currency_bp.post("/convert")
@require_auth
def convert_route():
    """Request body: {"amount": 10, "from": "USD", "to": "EGP"}"""
    data = request.get_json(silent=True) or {}
    try:
        amount = float(data.get("amount"))
    except (TypeError, ValueError):
        return jsonify({"error": "amount must be a number"}), 400
    from_currency = str(data.get("from") or "").upper()
    to_currency = str(data.get("to") or "").upper()
    if from_currency not in CURRENCIES or to_currency not in CURRENCIES:
        return jsonify({"error": f"currencies must be one of: {', '.join(CURRENCIES)}"}), 400

    converted = convert_currency(amount, from_currency, to_currency, fetch_currency_rates())
    return jsonify({
        "amount": converted,
        "currency": to_currency,
        "formatted": format_currency(converted, to_currency),
    })
