# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/shopdesk/routes/auth.py
"""
Authentication API routes.

Login exchanges username/email + password for a bearer token; the token
goes in the Authorization header of every other call.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, bearer_token
from ..permissions import permissions_for_role
from ..services import auth_service
from ..services import session_service
from ..services.audit_service import add_audit_log
from ..extensions import db
from shopdesk.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Returns user info and session token on success.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        add_audit_log(action="auth.login", user_id=user.id, entity="user", entity_id=user.id)
        db.session.commit()

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
            "permissions": permissions_for_role(user.role),
        }), 200
    except Exception:
        current_app.logger.exception("Failed to log in")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token())
    return jsonify({"ok": True}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": permissions_for_role(user.role),
    }), 200
