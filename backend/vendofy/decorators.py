# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .models.users import ROLE_ADMIN, ROLE_DISTRIBUTOR
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, "auth") and hasattr(g, "current_user")


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: the authenticated User
    - g.auth: the AuthContext (role the user signed in with, super-admin flag, token)

    Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User deleted or deactivated since the token was issued
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Access token required"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        context = session_service.validate_token(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.auth = context

        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles: str):
    """
    Require one of the given roles. The super-admin passes every role check.

    Must be stacked below @require_auth.
    """
    allowed = frozenset(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Access token required"}), 401

            ctx = g.auth
            if not ctx.is_super_admin and ctx.role not in allowed:
                return jsonify({"error": "Insufficient permissions"}), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_super_admin(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Access token required"}), 401

        if not g.auth.is_super_admin:
            return jsonify({"error": "Super admin access required"}), 403

        return f(*args, **kwargs)

    return decorated_function


# Staff: super-admin, admins and distributors (anyone who manages accounts below them)
require_staff = require_roles(ROLE_ADMIN, ROLE_DISTRIBUTOR)
