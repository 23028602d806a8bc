# backend/shopdesk/routes/system.py
"""
System health and version endpoints.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import User, Product, Sale
from shopdesk.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

APP_VERSION = "1.0.0"


def check_database_health() -> dict:
    """Count a few core tables; any failure marks the database unhealthy."""
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "products": db.session.query(Product).count(),
            "sales": db.session.query(Sale).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status = 200 if database["status"] == "healthy" else 503
    return {
        "status": database["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }, status


@system_bp.get("/api/version")
def version():
    return {
        "name": "shopdesk",
        "version": APP_VERSION,
        "company": current_app.config["COMPANY_NAME"],
        "default_currency": current_app.config["DEFAULT_CURRENCY"],
    }
