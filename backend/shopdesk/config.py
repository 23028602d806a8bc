# backend/shopdesk/config.py
from __future__ import annotations
import os


def _split_csv(value: str) -> set[str]:
    return {item.strip() for item in value.split(",") if item.strip()}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file next to the instance folder unless DATABASE_URL points elsewhere
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///shopdesk.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Business defaults
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "EGP")
    DEFAULT_TAX_RATE_PCT = float(os.environ.get("DEFAULT_TAX_RATE_PCT", "14"))
    COMPANY_NAME = os.environ.get("COMPANY_NAME", "ShopDesk Trading")

    # Public exchange-rate API (no key required)
    CURRENCY_API_URL = os.environ.get("CURRENCY_API_URL", "https://api.exchangerate.host/latest")
    CURRENCY_API_TIMEOUT = float(os.environ.get("CURRENCY_API_TIMEOUT", "5"))

    # Optional assets embedded into generated PDFs
    PDF_FONT_PATH = os.environ.get("PDF_FONT_PATH")
    PDF_LOGO_PATH = os.environ.get("PDF_LOGO_PATH")

    CORS_ALLOWED_ORIGINS = _split_csv(
        os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        )
    )

    # bcrypt work factor; tests lower it
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
