from __future__ import annotations
from datetime import datetime
from shopdesk.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Float, Integer, JSON, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum single amount: 9,999,999.99 in any currency
MAX_AMOUNT_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate phone number)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ValidationError(f"{col.key} must be a number")
        raise ValidationError(f"{col.key} must be a number")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, JSON):
        if not isinstance(value, (list, dict)):
            raise ValidationError(f"{col.key} must be a list or object")
        return value

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)

    Returns a patch dict that can be applied with setattr().
    """
    if not isinstance(payload, dict):
        raise ValidationError("JSON object body required")

    if not partial:
        required = policy.required_on_create or set()
        missing = [f for f in sorted(required) if f not in payload]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_amount(patch: dict, key: str, *, allow_zero: bool = True) -> None:
    if key not in patch or patch[key] is None:
        return
    value = patch[key]
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{key} must be {'>= 0' if allow_zero else '> 0'}")
    if value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT_CENTS}")


def enforce_rules_product(patch: dict) -> None:
    _check_amount(patch, "purchase_price_cents")
    _check_amount(patch, "sale_price_cents")
    if "min_sale_quantity" in patch and patch["min_sale_quantity"] is not None:
        if patch["min_sale_quantity"] < 1:
            raise ValidationError("min_sale_quantity must be >= 1")


def enforce_rules_transaction(patch: dict) -> None:
    from shopdesk.models import TRANSACTION_TYPES, CURRENCIES

    if "type" in patch and patch["type"] not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(TRANSACTION_TYPES)}")
    if "currency" in patch and patch["currency"] not in CURRENCIES:
        raise ValidationError(f"currency must be one of: {', '.join(CURRENCIES)}")
    _check_amount(patch, "amount_cents", allow_zero=False)


def enforce_rules_customer(patch: dict) -> None:
    if "discount_pct" in patch and patch["discount_pct"] is not None:
        if not 0 <= patch["discount_pct"] <= 100:
            raise ValidationError("discount_pct must be between 0 and 100")


def enforce_rules_supplier(patch: dict) -> None:
    from shopdesk.models import SUPPLIER_CATEGORIES

    if "category" in patch and patch["category"] not in SUPPLIER_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(SUPPLIER_CATEGORIES)}")
    if "products" in patch:
        products = patch["products"]
        if not isinstance(products, list) or not all(isinstance(p, str) for p in products):
            raise ValidationError("products must be a list of names")


def enforce_rules_stock_movement(patch: dict) -> None:
    from shopdesk.models import MOVEMENT_TYPES

    if patch.get("type") not in MOVEMENT_TYPES:
        raise ValidationError("type must be 'in' or 'out'")
    if patch.get("quantity") is None or patch["quantity"] <= 0:
        raise ValidationError("quantity must be > 0")
