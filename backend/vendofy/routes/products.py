# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/vendofy/routes/products.py
"""
Product catalog routes.

- Read: any signed-in user; only the super-admin sees unapproved or inactive products
- Create / update: admins (super-admin included)
- Approve / reject / delete: super-admin only
"""
from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError

from ..decorators import require_auth, require_roles, require_super_admin
from ..errors import ServiceError, integrity_response
from ..models.users import ROLE_ADMIN
from ..services import products_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - status: pending | approved | rejected (super-admin only)
    """
    try:
        products = products_service.list_products(g.auth, status=request.args.get("status"))
        return jsonify({"products": [p.to_dict() for p in products], "count": len(products)}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/pending")
@require_auth
@require_super_admin
def list_pending_products():
    try:
        products = products_service.pending_products()
        return jsonify({"products": [p.to_dict() for p in products], "count": len(products)}), 200
    except Exception:
        current_app.logger.exception("Failed to list pending products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@require_auth
@require_roles(ROLE_ADMIN)
def create_product():
    try:
        product = products_service.create_product(g.auth, request.get_json(silent=True) or {})
        message = (
            "Product created successfully."
            if g.auth.is_super_admin
            else "Product submitted for approval."
        )
        return jsonify({"message": message, "product": product.to_dict()}), 201
    except ServiceError as e:
        return e.to_response()
    except IntegrityError as e:
        return integrity_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_roles(ROLE_ADMIN)
def update_product(product_id: int):
    try:
        product = products_service.update_product(g.auth, product_id, request.get_json(silent=True) or {})
        return jsonify({"message": "Product updated successfully.", "product": product.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/approve")
@require_auth
@require_super_admin
def approve_product(product_id: int):
    try:
        product = products_service.approve_product(product_id, g.auth.user_id)
        return jsonify({"message": "Product approved.", "product": product.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to approve product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/reject")
@require_auth
@require_super_admin
def reject_product(product_id: int):
    try:
        data = request.get_json(silent=True) or {}
        product = products_service.reject_product(product_id, g.auth.user_id, data.get("reason"))
        return jsonify({"message": "Product rejected.", "product": product.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to reject product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_super_admin
def delete_product(product_id: int):
    try:
        products_service.delete_product(product_id)
        return jsonify({"message": "Product deleted successfully."}), 200
    except ServiceError as e:
        return e.to_response()
    except IntegrityError as e:
        return integrity_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
