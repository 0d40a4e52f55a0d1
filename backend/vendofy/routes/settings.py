from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_roles, require_staff, require_super_admin
from ..errors import ServiceError
from ..models.users import ROLE_ADMIN
from ..services import settings_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/system-settings")


def _json_error(exc: Exception, action: str):
    if isinstance(exc, ServiceError):
        return exc.to_response()
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


@settings_bp.get("")
@require_auth
@require_staff
def get_system_settings():
    # Non-super callers get the read-only subset
    try:
        return jsonify({"settings": settings_service.settings_view(g.auth.is_super_admin)}), 200
    except Exception as e:
        return _json_error(e, "load system settings")


@settings_bp.put("")
@require_auth
@require_super_admin
def update_system_settings():
    try:
        settings = settings_service.update_settings(request.get_json(silent=True) or {})
        return jsonify({"message": "Settings updated successfully.", "settings": settings.to_dict()}), 200
    except Exception as e:
        return _json_error(e, "update system settings")


@settings_bp.post("/pending")
@require_auth
@require_roles(ROLE_ADMIN)
def submit_pending_change():
    if g.auth.is_super_admin:
        return jsonify({"error": "Super admin can update settings directly."}), 403
    try:
        data = request.get_json(silent=True) or {}
        change, created = settings_service.submit_pending_change(g.auth.user_id, data.get("field_requirements"))
        message = (
            "Change request submitted for approval." if created else "Pending change request updated."
        )
        return jsonify({"message": message, "change": change.to_dict()}), 201 if created else 200
    except Exception as e:
        return _json_error(e, "submit settings change")


@settings_bp.get("/pending")
@require_auth
@require_super_admin
def list_pending_changes():
    try:
        changes = settings_service.list_pending_changes()
        return jsonify({"changes": [c.to_dict() for c in changes], "count": len(changes)}), 200
    except Exception as e:
        return _json_error(e, "list pending settings changes")


@settings_bp.get("/pending/my")
@require_auth
@require_roles(ROLE_ADMIN)
def my_pending_change():
    try:
        change = settings_service.latest_change_for(g.auth.user_id)
        return jsonify({"change": change.to_dict() if change else None}), 200
    except Exception as e:
        return _json_error(e, "load own settings change")


@settings_bp.post("/pending/<int:change_id>/approve")
@require_auth
@require_super_admin
def approve_pending_change(change_id: int):
    try:
        change, settings = settings_service.approve_change(change_id, g.auth.user_id)
        return jsonify({
            "message": "Change approved and applied.",
            "change": change.to_dict(),
            "settings": settings.to_dict(),
        }), 200
    except Exception as e:
        return _json_error(e, "approve settings change")


@settings_bp.post("/pending/<int:change_id>/reject")
@require_auth
@require_super_admin
def reject_pending_change(change_id: int):
    try:
        data = request.get_json(silent=True) or {}
        change = settings_service.reject_change(change_id, g.auth.user_id, data.get("reason"))
        return jsonify({"message": "Change rejected.", "change": change.to_dict()}), 200
    except Exception as e:
        return _json_error(e, "reject settings change")
