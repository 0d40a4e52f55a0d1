# Overview: Flask API routes for the signed-in user's own profile.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import user_service

profile_bp = Blueprint("profile", __name__, url_prefix="/api/user")


@profile_bp.put("/name")
@require_auth
def update_name_route():
    try:
        data = request.get_json(silent=True) or {}
        user = user_service.update_own_name(g.auth, data.get("name"))
        return jsonify({"message": "Name updated successfully.", "user": user.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to update name")
        return jsonify({"error": "Internal server error"}), 500


@profile_bp.post("/profile-photo")
@require_auth
def set_avatar_route():
    """Body: {"avatar_url": "<url or data URI>"}."""
    try:
        data = request.get_json(silent=True) or {}
        user = user_service.set_avatar(g.current_user, data.get("avatar_url"))
        return jsonify({"message": "Profile photo updated.", "avatar_url": user.avatar_url}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to update profile photo")
        return jsonify({"error": "Internal server error"}), 500


@profile_bp.post("/profile-photo/remove")
@require_auth
def remove_avatar_route():
    try:
        user_service.remove_avatar(g.current_user)
        return jsonify({"message": "Profile photo removed.", "avatar_url": None}), 200
    except Exception:
        current_app.logger.exception("Failed to remove profile photo")
        return jsonify({"error": "Internal server error"}), 500
