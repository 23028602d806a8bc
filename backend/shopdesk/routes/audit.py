# Overview: Flask API route for the audit log.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_permission
from ..services.audit_service import list_audit_logs


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def list_audit_route():
    limit = request.args.get("limit", 100, type=int)
    limit = max(1, min(limit, 500))
    logs = list_audit_logs(
        action=request.args.get("action"),
        user_id=request.args.get("user_id", type=int),
        limit=limit,
    )
    return jsonify({"items": [entry.to_dict() for entry in logs], "count": len(logs)})
