# Overview: Flask API routes for the shared audit trail.

from flask import Blueprint, request, jsonify, current_app

from ..services import audit_service
from ..services.record_store import get_record_store


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("")
def list_audit_entries_route():
    """
    List audit entries, newest first.

    Query params:
    - module: Filter by module (e.g. Billing)
    - limit: Max entries (default: 100, max: 500)
    """
    module = request.args.get("module")
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    try:
        entries = audit_service.get_audit_entries(get_record_store(), module=module, limit=limit)
        return jsonify({"entries": [e.to_dict() for e in entries], "limit": limit}), 200
    except Exception:
        current_app.logger.exception("Failed to list audit entries")
        return jsonify({"error": "Internal server error"}), 500
