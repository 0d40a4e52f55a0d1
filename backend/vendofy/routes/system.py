# backend/vendofy/routes/system.py
"""
System health endpoint.

The database check runs a trivial statement through the engine pool; a
failure reports "down" instead of raising so load balancers always get JSON.
"""

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database() -> bool:
    try:
        db.session.execute(text("SELECT 1"))
        return True
    except Exception:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return False


@system_bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "database": "up" if check_database() else "down",
    })
