# Overview: QR code rendering for printed documents.

from __future__ import annotations

import base64
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M


def generate_qr_code(data: str, *, box_size: int = 6, border: int = 2) -> bytes:
    """Encode data as a PNG QR code and return the image bytes."""
    if not data:
        raise ValueError("QR data must not be empty")
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=box_size, border=border)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def generate_qr_data_url(data: str) -> str:
    png = generate_qr_code(data)
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
