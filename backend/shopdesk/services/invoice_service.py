# Overview: Human-readable invoice numbers for sales.

"""
Invoice number format: INV-YYYYMMDD-SSSS-CCCC

- SSSS is a per-month sequence. The next value is read from the highest
  invoice number already stored for the month and incremented here, so two
  checkouts that read the same state get the same sequence. Checkout runs
  inside a write-locked transaction (see pos_service.checkout), which is
  what serializes allocation in practice.
- CCCC is a format tag: the low 16 bits (hex) of a weighted char-code sum
  over date + sequence + a random salt. The salt is not stored, so the
  checksum can never be recomputed; validation only checks its shape.
- Any failure falls back to INV-FALLBACK-<epoch ms tail>-<random 4 digits>.
"""

from __future__ import annotations

import logging
import random
import re
import time
from datetime import datetime

from ..extensions import db
from ..models import Sale
from shopdesk.time_utils import utcnow


logger = logging.getLogger(__name__)

INVOICE_RE = re.compile(r"^INV-(\d{8})-(\d{4})-([0-9A-F]{4})$")
SEQUENCE_RE = re.compile(r"-(\d{4})-\w{4}$")
LEGACY_VALIDATE_RE = re.compile(r"^\d{10}$")
LEGACY_PARSE_RE = re.compile(r"^(\d{4})(\d{2})(\d{4})$")
FALLBACK_PREFIX = "INV-FALLBACK-"


def calculate_checksum(data: str) -> str:
    total = 0
    for i, ch in enumerate(data):
        total += ord(ch) * (i + 1)
    return format(total, "X")[-4:].rjust(4, "0")


def _next_sequence(now: datetime) -> int:
    ym = now.strftime("%Y%m")
    last = (
        db.session.query(Sale.invoice_number)
        .filter(
            Sale.invoice_number >= f"INV-{ym}01-0001",
            Sale.invoice_number < f"INV-{ym}32-0000",
        )
        .order_by(Sale.invoice_number.desc())
        .limit(1)
        .scalar()
    )
    if not last:
        return 1
    match = SEQUENCE_RE.search(last)
    if not match:
        return 1
    return int(match.group(1)) + 1


def fallback_invoice_number() -> str:
    stamp = str(int(time.time() * 1000))[-8:]
    salt = str(random.randint(0, 9998)).zfill(4)
    return f"{FALLBACK_PREFIX}{stamp}-{salt}"


def generate_invoice_number(now: datetime | None = None) -> str:
    try:
        now = now or utcnow()
        date_part = now.strftime("%Y%m%d")
        salt = str(random.randint(0, 9998)).zfill(4)

        sequence = str(_next_sequence(now)).zfill(4)
        checksum = calculate_checksum(f"{date_part}{sequence}{salt}")

        return f"INV-{date_part}-{sequence}-{checksum}"
    except Exception:
        logger.exception("Invoice number generation failed; using fallback")
        return fallback_invoice_number()


def validate_invoice_number(invoice_number: str) -> bool:
    """Shape check only; legacy 10-digit numbers are also accepted."""
    if not isinstance(invoice_number, str):
        return False
    match = INVOICE_RE.match(invoice_number)
    if not match:
        return bool(LEGACY_VALIDATE_RE.match(invoice_number))
    return bool(re.fullmatch(r"[0-9A-F]{4}", match.group(3)))


def parse_invoice_number(invoice_number: str) -> dict:
    """
    Returns {"date", "sequence", "is_valid", "format"} where format is one of
    'new', 'fallback', 'old', 'invalid'.
    """
    invalid = {"date": None, "sequence": None, "is_valid": False, "format": "invalid"}
    if not isinstance(invoice_number, str):
        return invalid

    match = INVOICE_RE.match(invoice_number)
    if match:
        date_str, seq = match.group(1), match.group(2)
        try:
            parsed = datetime.strptime(date_str, "%Y%m%d")
        except ValueError:
            return invalid
        return {"date": parsed, "sequence": int(seq), "is_valid": True, "format": "new"}

    if invoice_number.startswith(FALLBACK_PREFIX):
        return {"date": None, "sequence": None, "is_valid": True, "format": "fallback"}

    match = LEGACY_PARSE_RE.match(invoice_number)
    if match:
        year, month, seq = (int(g) for g in match.groups())
        if not 1 <= month <= 12:
            return invalid
        return {"date": datetime(year, month, 1), "sequence": seq, "is_valid": True, "format": "old"}

    return invalid
