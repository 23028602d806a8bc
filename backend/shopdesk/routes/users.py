# Overview: Flask API routes for user administration.

"""
User admin routes.

SECURITY: every route requires MANAGE_USERS (admin only).
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..services import user_service
from ..services.auth_service import PasswordValidationError
from ..services.user_service import UserError


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    users = user_service.get_all_users()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)})


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """
    Request body:
    {"username", "email", "password", "role", "display_name"?, "default_currency"?}
    """
    data = request.get_json(silent=True) or {}
    missing = [k for k in ("username", "email", "password", "role") if not data.get(k)]
    if missing:
        return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400

    try:
        user = user_service.add_user(
            username=str(data["username"]).strip(),
            email=str(data["email"]).strip(),
            password=data["password"],
            role=data["role"],
            display_name=data.get("display_name"),
            default_currency=data.get("default_currency") or "EGP",
        )
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(user.to_dict()), 201


@users_bp.patch("/<int:user_id>/role")
@require_auth
@require_permission("MANAGE_USERS")
def update_role_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.update_user_role(user_id, data.get("role"))
    except UserError as e:
        status = 404 if str(e) == "User not found" else 400
        return jsonify({"error": str(e)}), status
    return jsonify(user.to_dict())


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def delete_user_route(user_id: int):
    try:
        user_service.delete_user(user_id, acting_user_id=g.current_user.id)
    except UserError as e:
        status = 404 if str(e) == "User not found" else 400
        return jsonify({"error": str(e)}), status
    return jsonify({"ok": True})
