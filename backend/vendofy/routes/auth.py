# Overview: Flask API routes for authentication; parses input and returns JSON responses.

# backend/vendofy/routes/auth.py
"""
Authentication API routes

- Login with an explicit role; the super-admin signs in as "admin"
- Logout revokes the presented token
- Email verification issues a temporary password
- Forgot-password flow with a 6-digit code
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import auth_service, session_service
from ..time_utils import to_utc_z

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue a bearer token.

    Body: {"email", "password", "role"} with role in admin/distributor/customer.
    """
    try:
        data = request.get_json(silent=True) or {}
        result = auth_service.login(data.get("email"), data.get("password"), data.get("role"))
        result["expires_at"] = to_utc_z(result["expires_at"])
        return jsonify({"message": "Login successful", "user": result, "token": result["token"]}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_token(g.auth.token, g.auth.expires_at)
        return jsonify({"message": "Logged out successfully"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    data = g.current_user.to_dict()
    data["session_role"] = g.auth.role
    data["is_super_admin"] = g.auth.is_super_admin
    data["expires_at"] = to_utc_z(g.auth.expires_at)
    return jsonify({"user": data}), 200


@auth_bp.get("/verify-email")
def verify_email_route():
    try:
        user = auth_service.verify_email(request.args.get("token"))
        return jsonify({
            "message": "Email verified successfully. A temporary password has been sent to your email.",
            "email": user.email,
        }), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to verify email")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/forgot-password/request")
def forgot_password_request_route():
    """Always answers the same way so the endpoint cannot be used to probe accounts."""
    try:
        data = request.get_json(silent=True) or {}
        if not data.get("email"):
            return jsonify({"error": "Email is required."}), 400
        auth_service.request_password_reset(data.get("email"))
        return jsonify({"message": "If the email exists, a reset code has been sent."}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to request password reset")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/forgot-password/reset")
def forgot_password_reset_route():
    try:
        data = request.get_json(silent=True) or {}
        auth_service.reset_password(data.get("email"), data.get("code"), data.get("new_password"))
        return jsonify({"message": "Password reset successfully."}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    try:
        data = request.get_json(silent=True) or {}
        auth_service.change_password(g.current_user, data.get("current_password"), data.get("new_password"))
        return jsonify({"message": "Password changed successfully."}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500
