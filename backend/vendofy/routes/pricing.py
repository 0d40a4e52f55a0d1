# Overview: Flask API routes for price overrides and the priced catalog views of distributors and customers.

"""
Pricing routes.

Admin side:       offer products to own distributors at an override price
Distributor side: per-customer override prices, own customers, own assortment
Customer side:    the assortment priced for the caller
"""

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError

from ..decorators import require_auth, require_roles
from ..errors import ServiceError, integrity_response
from ..models.users import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DISTRIBUTOR
from ..services import pricing_service, user_service

pricing_bp = Blueprint("pricing", __name__, url_prefix="/api")


# =============================================================================
# ADMIN PRODUCT USAGE
# =============================================================================

@pricing_bp.get("/admin/products/available")
@require_auth
@require_roles(ROLE_ADMIN)
def available_products():
    try:
        products = pricing_service.available_products()
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except Exception:
        current_app.logger.exception("Failed to list available products")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.get("/admin/products/used")
@require_auth
@require_roles(ROLE_ADMIN)
def used_products():
    try:
        return jsonify({"products": pricing_service.used_products(g.auth.user_id)}), 200
    except Exception:
        current_app.logger.exception("Failed to list used products")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.post("/admin/products/use")
@require_auth
@require_roles(ROLE_ADMIN)
def use_product():
    """Body: {"product_id", "distributor_pricing": [{"distributor_id", "custom_price_cents"}]}."""
    try:
        data = request.get_json(silent=True) or {}
        rows = pricing_service.use_product(g.auth.user_id, data.get("product_id"), data.get("distributor_pricing"))
        return jsonify({
            "message": "Product added to your distributors.",
            "pricing": [row.to_dict() for row in rows],
        }), 200
    except ServiceError as e:
        return e.to_response()
    except IntegrityError as e:
        return integrity_response(e)
    except Exception:
        current_app.logger.exception("Failed to use product")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.put("/admin/products/pricing/<int:pricing_id>")
@require_auth
@require_roles(ROLE_ADMIN)
def update_admin_pricing(pricing_id: int):
    try:
        data = request.get_json(silent=True) or {}
        row = pricing_service.update_admin_pricing(g.auth.user_id, pricing_id, data.get("custom_price_cents"))
        return jsonify({"message": "Pricing updated.", "pricing": row.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to update admin pricing")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.delete("/admin/products/pricing/<int:pricing_id>")
@require_auth
@require_roles(ROLE_ADMIN)
def remove_admin_pricing(pricing_id: int):
    try:
        pricing_service.deactivate_admin_pricing(g.auth.user_id, pricing_id)
        return jsonify({"message": "Product removed from distributor."}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to remove admin pricing")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# DISTRIBUTOR
# =============================================================================

@pricing_bp.get("/distributor/customers")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def distributor_customers():
    try:
        customers = user_service.distributor_customers(g.auth.user_id)
        return jsonify({"customers": [c.to_dict() for c in customers]}), 200
    except Exception:
        current_app.logger.exception("Failed to list distributor customers")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.get("/distributor/products")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def distributor_products():
    try:
        return jsonify({"products": pricing_service.distributor_products(g.current_user)}), 200
    except Exception:
        current_app.logger.exception("Failed to list distributor products")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.get("/distributor/customer-pricing")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def list_customer_pricing():
    try:
        rows = pricing_service.list_customer_pricing(g.auth.user_id)
        return jsonify({"pricing": [row.to_dict() for row in rows]}), 200
    except Exception:
        current_app.logger.exception("Failed to list customer pricing")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.post("/distributor/customer-pricing")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def upsert_customer_pricing():
    """Body: {"customer_id", "product_id", "custom_price_cents"}; updates the existing row if any."""
    try:
        data = request.get_json(silent=True) or {}
        row, created = pricing_service.upsert_customer_pricing(
            g.auth.user_id,
            data.get("customer_id"),
            data.get("product_id"),
            data.get("custom_price_cents"),
        )
        message = "Custom price created." if created else "Custom price updated."
        return jsonify({"message": message, "pricing": row.to_dict()}), 201 if created else 200
    except ServiceError as e:
        return e.to_response()
    except IntegrityError as e:
        return integrity_response(e)
    except Exception:
        current_app.logger.exception("Failed to save customer pricing")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.delete("/distributor/customer-pricing/<int:pricing_id>")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def delete_customer_pricing(pricing_id: int):
    try:
        pricing_service.delete_customer_pricing(g.auth.user_id, pricing_id)
        return jsonify({"message": "Custom price deleted."}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        current_app.logger.exception("Failed to delete customer pricing")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# CUSTOMER
# =============================================================================

@pricing_bp.get("/customer/products")
@require_auth
@require_roles(ROLE_CUSTOMER)
def customer_products():
    try:
        return jsonify({"products": pricing_service.customer_products(g.current_user)}), 200
    except Exception:
        current_app.logger.exception("Failed to list customer products")
        return jsonify({"error": "Internal server error"}), 500
