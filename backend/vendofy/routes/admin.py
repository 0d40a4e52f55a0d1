# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/vendofy/routes/admin.py
"""
Admin routes for account management and reporting.

Provides endpoints for:
- User management within the caller's hierarchy (list, create, update,
  delete, role, status, forced password reset)
- UID suggestions and availability checks
- The admin's own distributors
- Revenue and order statistics

Distributors reach the user endpoints too: they manage their customers.
"""

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError

from ..decorators import require_auth, require_roles, require_staff
from ..errors import ServiceError, integrity_response
from ..models.users import ROLE_ADMIN
from ..services import stats_service, user_service

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_staff
def list_users():
    """
    List users visible to the caller.

    Query params:
    - search: matches name, email, business name, UID or mobile number
    - role: admin | distributor | customer | all
    - status: active | inactive | all
    """
    try:
        users = user_service.list_users(
            g.auth,
            search=request.args.get("search"),
            role=request.args.get("role"),
            status=request.args.get("status"),
        )
        return jsonify({"users": [u.to_dict() for u in users], "count": len(users)}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/users/stats")
@require_auth
@require_staff
def user_stats():
    try:
        return jsonify(user_service.user_stats(g.auth)), 200
    except Exception:
        current_app.logger.exception("Failed to load user stats")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/users/suggest-uid")
@require_auth
@require_staff
def suggest_uid():
    try:
        uid = user_service.suggest_uid(
            request.args.get("role"),
            request.args.get("business_name"),
            request.args.get("name"),
        )
        return jsonify({"uid": uid}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to suggest UID")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/users/check-uid/<string:uid>")
@require_auth
@require_staff
def check_uid(uid: str):
    try:
        exists = user_service.uid_exists(uid)
        return jsonify({"uid": uid, "exists": exists, "available": not exists}), 200
    except Exception:
        current_app.logger.exception("Failed to check UID")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/users")
@require_auth
@require_staff
def create_user():
    """
    Create an account below the caller.

    Required: name, email, role. Optional: password, uid, mobile_no,
    business_name, address{}, registration_no, registration_copy_url, is_active.
    """
    try:
        data = request.get_json(silent=True) or {}
        user = user_service.create_user(g.auth, data)
        return jsonify({
            "message": "User created successfully. A verification email has been sent.",
            "user": user.to_dict(),
        }), 201
    except ServiceError as e:
        return e.to_response()
    except IntegrityError as e:
        return integrity_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/users/<int:user_id>")
@require_auth
@require_staff
def update_user(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        user = user_service.update_user(g.auth, user_id, data)
        return jsonify({"message": "User updated successfully.", "user": user.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except IntegrityError as e:
        return integrity_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_staff
def delete_user(user_id: int):
    try:
        user_service.delete_user(g.auth, user_id)
        return jsonify({"message": "User deleted successfully."}), 200
    except ServiceError as e:
        return e.to_response()
    except IntegrityError as e:
        return integrity_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/users/<int:user_id>/role")
@require_auth
@require_staff
def change_user_role(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        user = user_service.change_role(g.auth, user_id, data.get("role"))
        return jsonify({"message": "User role updated successfully.", "user": user.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to change user role")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/users/<int:user_id>/status")
@require_auth
@require_staff
def change_user_status(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        user = user_service.set_status(g.auth, user_id, data.get("is_active"))
        state = "activated" if user.is_active else "deactivated"
        return jsonify({"message": f"User {state} successfully.", "user": user.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to change user status")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/users/<int:user_id>/force-password-reset")
@require_auth
@require_staff
def force_password_reset(user_id: int):
    try:
        user_service.force_password_reset(g.auth, user_id)
        return jsonify({"message": "Password reset required. The user has been notified by email."}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to force password reset")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# HIERARCHY
# =============================================================================

@admin_bp.get("/distributors")
@require_auth
@require_roles(ROLE_ADMIN)
def list_distributors():
    try:
        distributors = user_service.admin_distributors(g.auth.user_id)
        return jsonify({"distributors": [d.to_dict() for d in distributors]}), 200
    except Exception:
        current_app.logger.exception("Failed to list distributors")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# REPORTING
# =============================================================================

@admin_bp.get("/stats/revenue-orders")
@require_auth
@require_roles(ROLE_ADMIN)
def revenue_orders():
    """
    Query params:
    - level: admin | distributor | customer
    - parent_id: required for distributor and customer levels
    - date_filter: all | today | this_month | this_year | month | year | custom
    - month, year, start_date, end_date: arguments for the date filter
    """
    try:
        args = request.args
        result = stats_service.revenue_and_orders(
            g.auth,
            level=args.get("level"),
            parent_id=args.get("parent_id"),
            date_filter=args.get("date_filter"),
            month=args.get("month"),
            year=args.get("year"),
            start_date=args.get("start_date"),
            end_date=args.get("end_date"),
        )
        return jsonify(result), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to load revenue stats")
        return jsonify({"error": "Internal server error"}), 500
