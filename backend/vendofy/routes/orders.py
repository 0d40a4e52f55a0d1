# Overview: Flask API routes for the order lifecycle; parses input and returns JSON responses.

# backend/vendofy/routes/orders.py
"""
Order routes, grouped by the party acting on the order.

Customer:    place, list, confirm receipt, record payment
Distributor: open orders by date, mark for today, reschedule, escalate to
             admin, in-transit count, confirm receipt (single or bulk)
Admin:       escalation notifications, acknowledge, bulk receipt
Shared:      list/get within scope, delete (customer own, admin in scope)

Bulk endpoints take {"order_ids": [...]} and apply all-or-nothing.
"""

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError

from ..decorators import require_auth, require_roles
from ..errors import ServiceError, integrity_response
from ..models.users import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DISTRIBUTOR
from ..services import order_service

orders_bp = Blueprint("orders", __name__, url_prefix="/api")


def _internal_error(action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# CUSTOMER
# =============================================================================

@orders_bp.post("/customer/orders")
@require_auth
@require_roles(ROLE_CUSTOMER)
def create_order():
    """
    Place an order.

    Body: {"items": [{"product_id", "quantity"}], "desired_delivery_date": ISO-8601}
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.create_order(g.current_user, data.get("items"), data.get("desired_delivery_date"))
        return jsonify({"message": "Order created successfully.", "order": order.to_dict()}), 201
    except ServiceError as e:
        return e.to_response()
    except IntegrityError as e:
        return integrity_response(e)
    except Exception:
        return _internal_error("create order")


@orders_bp.get("/customer/orders")
@require_auth
@require_roles(ROLE_CUSTOMER)
def list_customer_orders():
    try:
        orders = order_service.list_customer_orders(g.auth.user_id)
        return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)}), 200
    except Exception:
        return _internal_error("list customer orders")


@orders_bp.post("/customer/orders/<int:order_id>/received")
@require_auth
@require_roles(ROLE_CUSTOMER)
def customer_mark_received(order_id: int):
    try:
        order = order_service.customer_mark_received(g.auth.user_id, order_id)
        return jsonify({"message": "Order marked as received.", "order": order.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("mark order received")


@orders_bp.put("/customer/orders/<int:order_id>/payment")
@require_auth
@require_roles(ROLE_CUSTOMER)
def update_payment(order_id: int):
    """Body: {"amount_paid_cents": int >= 0}; payment_status is derived."""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_payment(g.auth.user_id, order_id, data.get("amount_paid_cents"))
        return jsonify({"message": "Payment updated.", "order": order.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("update payment")


# =============================================================================
# DISTRIBUTOR
# =============================================================================

@orders_bp.get("/distributor/orders")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def distributor_orders():
    """Open orders grouped by current delivery date (YYYY-MM-DD)."""
    try:
        result = order_service.distributor_open_orders(g.auth.user_id)
        return jsonify({
            "orders_by_date": {
                day: [o.to_dict() for o in orders] for day, orders in result["orders_by_date"].items()
            },
            "all_orders": [o.to_dict() for o in result["all_orders"]],
        }), 200
    except Exception:
        return _internal_error("list distributor orders")


@orders_bp.get("/distributor/orders/in-transit-count")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def in_transit_count():
    try:
        return jsonify({"count": order_service.in_transit_count(g.auth.user_id)}), 200
    except Exception:
        return _internal_error("count in-transit orders")


@orders_bp.post("/distributor/orders/mark-for-today")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def mark_for_today():
    try:
        data = request.get_json(silent=True) or {}
        orders = order_service.mark_for_today(g.auth.user_id, data.get("order_ids"))
        return jsonify({
            "message": f"{len(orders)} order(s) marked for today.",
            "orders": [o.to_dict() for o in orders],
        }), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("mark orders for today")


@orders_bp.put("/distributor/orders/<int:order_id>/delivery-date")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def update_delivery_date(order_id: int):
    """Body: {"delivery_date": ISO-8601}. The customer is emailed (best effort)."""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_delivery_date(g.auth.user_id, order_id, data.get("delivery_date"))
        return jsonify({"message": "Delivery date updated.", "order": order.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("update delivery date")


@orders_bp.post("/distributor/orders/send-to-admin")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def send_to_admin():
    try:
        data = request.get_json(silent=True) or {}
        result = order_service.send_to_admin(g.current_user, data.get("order_ids"))
        return jsonify({"message": "Orders sent to admin.", **result}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("send orders to admin")


@orders_bp.post("/distributor/orders/<int:order_id>/received")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def distributor_mark_received(order_id: int):
    try:
        order = order_service.distributor_mark_received(g.auth.user_id, order_id)
        return jsonify({"message": "Order marked as received.", "order": order.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("mark order received")


@orders_bp.post("/distributor/orders/received")
@require_auth
@require_roles(ROLE_DISTRIBUTOR)
def distributor_mark_received_bulk():
    try:
        data = request.get_json(silent=True) or {}
        orders = order_service.distributor_mark_received_bulk(g.auth.user_id, data.get("order_ids"))
        return jsonify({
            "message": f"{len(orders)} order(s) marked as received.",
            "orders": [o.to_dict() for o in orders],
        }), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("mark orders received")


# =============================================================================
# ADMIN
# =============================================================================

@orders_bp.get("/admin/orders/notifications")
@require_auth
@require_roles(ROLE_ADMIN)
def admin_notifications():
    try:
        orders = order_service.admin_notifications(g.auth)
        return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)}), 200
    except Exception:
        return _internal_error("list order notifications")


@orders_bp.post("/admin/orders/<int:order_id>/acknowledge")
@require_auth
@require_roles(ROLE_ADMIN)
def admin_acknowledge(order_id: int):
    try:
        order = order_service.admin_acknowledge(g.auth, order_id)
        return jsonify({"message": "Notification acknowledged.", "order": order.to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("acknowledge order")


@orders_bp.post("/admin/orders/<int:order_id>/received")
@require_auth
@require_roles(ROLE_ADMIN)
def admin_mark_received(order_id: int):
    try:
        orders = order_service.admin_mark_received(g.auth, [order_id])
        return jsonify({"message": "Order marked as received.", "order": orders[0].to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("mark order received")


@orders_bp.post("/admin/orders/received")
@require_auth
@require_roles(ROLE_ADMIN)
def admin_mark_received_bulk():
    try:
        data = request.get_json(silent=True) or {}
        orders = order_service.admin_mark_received(g.auth, data.get("order_ids"))
        return jsonify({
            "message": f"{len(orders)} order(s) marked as received.",
            "orders": [o.to_dict() for o in orders],
        }), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("mark orders received")


# =============================================================================
# SHARED
# =============================================================================

@orders_bp.get("/orders")
@require_auth
def list_orders():
    try:
        orders = order_service.list_orders(g.auth, status=request.args.get("status"))
        return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("list orders")


@orders_bp.get("/orders/<int:order_id>")
@require_auth
def get_order(order_id: int):
    try:
        return jsonify({"order": order_service.get_order(g.auth, order_id).to_dict()}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("load order")


@orders_bp.delete("/orders/<int:order_id>")
@require_auth
def delete_order(order_id: int):
    try:
        order_service.delete_order(g.auth, order_id)
        return jsonify({"message": "Order deleted successfully."}), 200
    except ServiceError as e:
        return e.to_response()
    except Exception:
        return _internal_error("delete order")
