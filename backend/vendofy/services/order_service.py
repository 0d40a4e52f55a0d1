# Overview: Service-layer operations for the order lifecycle; creation, fulfillment transitions and payment.

"""
Order Service

Lifecycle:

    pending --(distributor mark-for-today)--> in transit --(mark received)--> delivered

- in transit: marked_for_today is set and received_at is not
- delivered: received_at is set and status is "delivered"
- sent_to_admin is an orthogonal flag: the distributor escalated the
  aggregated quantities to its admin. The admin's notification is open until
  admin_received_at or received_at is set.
- payment_status is settable only after receipt and is always derived from
  amount_paid_cents against total_amount_cents.

Once received_at is set an order is frozen except for its payment fields.

Bulk transitions validate every target order first and commit once, so a
batch either applies completely or not at all.

Emails sent on transitions are best effort: the state change is committed
before the message goes out and a mail failure never undoes it.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from collections import OrderedDict

from ..errors import AccessDeniedError, NotFoundError, ServiceError
from ..extensions import db
from ..filters import all_of, apply_filter, eq, is_null, matches
from ..models import Order, OrderItem, Product, User
from ..models.orders import (
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_PENDING,
    ORDER_STATUSES,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_PENDING,
)
from ..models.users import ROLE_CUSTOMER, ROLE_DISTRIBUTOR
from ..time_utils import utcnow
from ..validation import (
    MAX_ITEM_QUANTITY,
    ValidationError,
    parse_datetime,
    parse_id_list,
    parse_int,
    parse_positive_int,
)
from . import email_templates
from .pricing_service import ProductUnavailableError, load_price_book, resolve_unit_price
from .scoping import order_visibility

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5
_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


class OrderError(ServiceError):
    """Raised for order operation errors (400 unless stated otherwise)."""


def generate_order_number() -> str:
    """ORD-<epoch ms>-<9 random chars>."""
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def _unique_order_number() -> str:
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        number = generate_order_number()
        if not db.session.query(Order.id).filter_by(order_number=number).first():
            return number
    raise OrderError("Could not allocate an order number, please retry.", status_code=503)


def payment_status_for(amount_paid_cents: int, total_amount_cents: int) -> str:
    if amount_paid_cents == 0:
        return PAYMENT_STATUS_PENDING
    if amount_paid_cents < total_amount_cents:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_PAID


def _parse_items(items) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items and desired_delivery_date are required.")
    parsed = []
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object with product_id and quantity")
        product_id = parse_positive_int(raw.get("product_id"), "product_id")
        quantity = parse_positive_int(raw.get("quantity"), "quantity")
        if quantity > MAX_ITEM_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_ITEM_QUANTITY}")
        parsed.append((product_id, quantity))
    return parsed


def resolve_hierarchy(customer: User) -> tuple[User, int]:
    """Return (distributor, admin_id) for a customer."""
    distributor = customer.parent
    if not customer.parent_id or distributor is None:
        raise OrderError("Customer has no associated distributor.")
    if distributor.role != ROLE_DISTRIBUTOR:
        raise OrderError("Customer's parent account is not a distributor.")
    admin_id = distributor.parent_id or distributor.created_by_id
    if not admin_id:
        raise OrderError("No admin associated with distributor.")
    return distributor, admin_id


def create_order(customer: User, items, desired_delivery_date) -> Order:
    """
    Place an order for customer.

    Every line is priced and validated before anything is written; one
    unsellable product rejects the whole order.
    """
    if customer.role != ROLE_CUSTOMER:
        raise AccessDeniedError("Access denied. Customer only.")
    if desired_delivery_date in (None, ""):
        raise ValidationError("items and desired_delivery_date are required.")
    lines = _parse_items(items)
    delivery_date = parse_datetime(desired_delivery_date, "desired_delivery_date")

    distributor, admin_id = resolve_hierarchy(customer)

    product_ids = {product_id for product_id, _ in lines}
    products = {
        p.id: p for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    }
    book = load_price_book(
        customer_id=customer.id,
        distributor_id=distributor.id,
        admin_id=admin_id,
        product_ids=product_ids,
    )

    order_items = []
    total = 0
    for product_id, quantity in lines:
        product = products.get(product_id)
        if product is None:
            raise ProductUnavailableError(None, product_id)
        unit_price = resolve_unit_price(product, book)
        line_total = unit_price * quantity
        total += line_total
        order_items.append(OrderItem(
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=unit_price,
            line_total_cents=line_total,
        ))

    order = Order(
        order_number=_unique_order_number(),
        customer_id=customer.id,
        distributor_id=distributor.id,
        admin_id=admin_id,
        total_amount_cents=total,
        status=ORDER_STATUS_PENDING,
        desired_delivery_date=delivery_date,
        current_delivery_date=delivery_date,
        items=order_items,
    )
    db.session.add(order)
    db.session.commit()

    logger.info("Order %s created by customer %s (%s cents)", order.order_number, customer.id, total)
    return order


# =============================================================================
# Customer transitions
# =============================================================================


def list_customer_orders(customer_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter_by(customer_id=customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def _customer_order(customer_id: int, order_id: int) -> Order:
    order = (
        db.session.query(Order)
        .filter_by(id=order_id, customer_id=customer_id)
        .with_for_update()
        .first()
    )
    if not order:
        raise NotFoundError("Order not found or doesn't belong to you.")
    return order


def customer_mark_received(customer_id: int, order_id: int) -> Order:
    """Customer confirms receipt. Independent of the distributor's in-transit flag."""
    order = _customer_order(customer_id, order_id)
    if order.received_at is not None:
        raise OrderError("Order already marked as received.")
    now = utcnow()
    order.received_at = now
    order.status = ORDER_STATUS_DELIVERED
    db.session.commit()
    return order


def update_payment(customer_id: int, order_id: int, amount_paid_cents) -> Order:
    if amount_paid_cents is None:
        raise ValidationError("Valid amount_paid_cents is required.")
    amount = parse_int(amount_paid_cents, "amount_paid_cents")
    if amount < 0:
        raise ValidationError("Valid amount_paid_cents is required.")

    order = _customer_order(customer_id, order_id)
    if order.received_at is None:
        raise OrderError("Order must be marked as received first.")

    order.amount_paid_cents = amount
    order.payment_status = payment_status_for(amount, order.total_amount_cents)
    db.session.commit()
    return order


def delete_order(ctx, order_id: int) -> None:
    """Customers delete their own orders; admins delete orders in their scope."""
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found.")

    if ctx.role == ROLE_CUSTOMER:
        if order.customer_id != ctx.user_id:
            raise AccessDeniedError("Access denied. You can only delete your own orders.")
    elif ctx.is_admin:
        if not matches(order_visibility(ctx), order):
            raise AccessDeniedError("Access denied. Order is outside your scope.")
    else:
        raise AccessDeniedError(
            "Access denied. Only customers, admins, and super admins can delete orders."
        )

    db.session.delete(order)
    db.session.commit()
    logger.info("Order %s deleted by user %s", order.order_number, ctx.user_id)


# =============================================================================
# Distributor transitions
# =============================================================================


def distributor_open_orders(distributor_id: int) -> dict:
    """Orders not yet delivered, grouped by current delivery date (YYYY-MM-DD)."""
    orders = (
        db.session.query(Order)
        .filter(
            Order.distributor_id == distributor_id,
            Order.status != ORDER_STATUS_DELIVERED,
            Order.received_at.is_(None),
        )
        .order_by(Order.current_delivery_date.asc(), Order.created_at.desc(), Order.id.desc())
        .all()
    )
    by_date: "OrderedDict[str, list]" = OrderedDict()
    for order in orders:
        key = order.current_delivery_date.date().isoformat()
        by_date.setdefault(key, []).append(order)
    return {"orders_by_date": by_date, "all_orders": orders}


def _load_batch(order_ids: list[int]) -> list[Order]:
    """Lock and return the requested orders in request order; 404 if any id is unknown."""
    rows = (
        db.session.query(Order)
        .filter(Order.id.in_(order_ids))
        .with_for_update()
        .all()
    )
    by_id = {order.id: order for order in rows}
    missing = [oid for oid in order_ids if oid not in by_id]
    if missing:
        raise NotFoundError("Some orders were not found.", details={"order_ids": missing})
    return [by_id[oid] for oid in order_ids]


def _require_owned(orders: list[Order], distributor_id: int) -> None:
    foreign = [o.id for o in orders if o.distributor_id != distributor_id]
    if foreign:
        raise AccessDeniedError(
            "Some orders don't belong to you.", details={"order_ids": foreign}
        )


def _require_not_received(orders: list[Order], message: str) -> None:
    received = [o.id for o in orders if o.received_at is not None]
    if received:
        raise OrderError(message, details={"order_ids": received})


def _require_in_transit(orders: list[Order]) -> None:
    _require_not_received(orders, "Some orders are already marked as received.")
    not_marked = [o.id for o in orders if not o.marked_for_today]
    if not_marked:
        raise OrderError(
            "Order must be in transit to mark as received.", details={"order_ids": not_marked}
        )


def _apply_received(orders: list[Order]) -> None:
    now = utcnow()
    for order in orders:
        order.received_at = now
        order.admin_received_at = now
        order.status = ORDER_STATUS_DELIVERED


def mark_for_today(distributor_id: int, order_ids) -> list[Order]:
    ids = parse_id_list(order_ids)
    orders = _load_batch(ids)
    _require_owned(orders, distributor_id)
    _require_not_received(orders, "Received orders cannot be marked for today.")

    now = utcnow()
    for order in orders:
        order.marked_for_today = True
        order.current_delivery_date = now
    db.session.commit()
    return orders


def update_delivery_date(distributor_id: int, order_id: int, delivery_date) -> Order:
    """Move the operational date; desired_delivery_date is left untouched."""
    if delivery_date in (None, ""):
        raise ValidationError("delivery_date is required.")
    new_date = parse_datetime(delivery_date, "delivery_date")

    order = db.session.query(Order).filter_by(id=order_id).with_for_update().first()
    if not order or order.distributor_id != distributor_id:
        raise NotFoundError("Order not found or doesn't belong to you.")
    if order.received_at is not None:
        raise OrderError("Received orders cannot be rescheduled.")

    order.current_delivery_date = new_date
    db.session.commit()

    customer = order.customer
    if customer is not None:
        email_templates.send_delivery_date_email(
            customer.email,
            customer.name,
            order.order_number,
            new_date.strftime("%d %B %Y"),
            order.desired_delivery_date.strftime("%d %B %Y"),
        )
    return order


def summarize_items(orders: list[Order]) -> list[dict]:
    """Total quantity per product across orders, in first-seen order."""
    summary: "OrderedDict[int, dict]" = OrderedDict()
    for order in orders:
        for item in order.items:
            entry = summary.get(item.product_id)
            if entry is None:
                summary[item.product_id] = {
                    "product_id": item.product_id,
                    "product_name": item.product.name if item.product else None,
                    "quantity": item.quantity,
                }
            else:
                entry["quantity"] += item.quantity
    return list(summary.values())


def send_to_admin(distributor: User, order_ids) -> dict:
    """Escalate the aggregated quantities of some orders to the distributor's admin."""
    ids = parse_id_list(order_ids)
    orders = _load_batch(ids)
    _require_owned(orders, distributor.id)
    _require_not_received(orders, "Received orders cannot be sent to admin.")

    admin_id = distributor.parent_id or distributor.created_by_id
    if not admin_id:
        raise OrderError("No admin associated with this distributor.")
    admin = db.session.get(User, admin_id)
    if not admin:
        raise NotFoundError("Admin not found.")

    items_summary = summarize_items(orders)

    now = utcnow()
    for order in orders:
        order.sent_to_admin = True
        order.sent_to_admin_at = now
    db.session.commit()

    email_templates.send_order_request_email(admin.email, admin.name, distributor.name, items_summary)
    return {"items_summary": items_summary, "orders_count": len(orders)}


def in_transit_count(distributor_id: int) -> int:
    return (
        db.session.query(Order)
        .filter(
            Order.distributor_id == distributor_id,
            Order.marked_for_today.is_(True),
            Order.received_at.is_(None),
        )
        .count()
    )


def distributor_mark_received(distributor_id: int, order_id: int) -> Order:
    order = db.session.query(Order).filter_by(id=order_id).with_for_update().first()
    if not order:
        raise NotFoundError("Order not found.")
    if order.distributor_id != distributor_id:
        raise AccessDeniedError("Access denied. Order doesn't belong to you.")
    if order.received_at is not None:
        raise OrderError("Order already marked as received.")
    if not order.marked_for_today:
        raise OrderError("Order must be in transit to mark as received.")

    _apply_received([order])
    db.session.commit()
    return order


def distributor_mark_received_bulk(distributor_id: int, order_ids) -> list[Order]:
    ids = parse_id_list(order_ids)
    orders = _load_batch(ids)
    _require_owned(orders, distributor_id)
    _require_in_transit(orders)

    _apply_received(orders)
    db.session.commit()
    return orders


# =============================================================================
# Admin transitions
# =============================================================================


def _require_visible(ctx, orders: list[Order]) -> None:
    scope = order_visibility(ctx)
    hidden = [o.id for o in orders if not matches(scope, o)]
    if hidden:
        raise AccessDeniedError("Access denied.", details={"order_ids": hidden})


def admin_notifications(ctx) -> list[Order]:
    """Escalated orders nobody has acknowledged or received yet."""
    expr = all_of(
        order_visibility(ctx),
        eq("sent_to_admin", True),
        is_null("admin_received_at"),
        is_null("received_at"),
    )
    return (
        apply_filter(db.session.query(Order), expr, Order)
        .order_by(Order.sent_to_admin_at.desc(), Order.id.desc())
        .all()
    )


def admin_acknowledge(ctx, order_id: int) -> Order:
    """Clear the admin's notification without touching fulfillment."""
    order = db.session.query(Order).filter_by(id=order_id).with_for_update().first()
    if not order:
        raise NotFoundError("Order not found.")
    _require_visible(ctx, [order])
    if order.admin_received_at is not None or order.received_at is not None:
        raise OrderError("Order notification already acknowledged.")
    order.admin_received_at = utcnow()
    db.session.commit()
    return order


def admin_mark_received(ctx, order_ids) -> list[Order]:
    """Admin-side receipt of in-transit orders (single id or many)."""
    ids = parse_id_list(order_ids)
    orders = _load_batch(ids)
    _require_visible(ctx, orders)
    _require_in_transit(orders)

    _apply_received(orders)
    db.session.commit()
    return orders


def list_orders(ctx, *, status: str | None = None) -> list[Order]:
    """All orders visible to the caller, newest first."""
    expr = order_visibility(ctx)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid status filter: {status}")
        expr = all_of(expr, eq("status", status))
    return (
        apply_filter(db.session.query(Order), expr, Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def get_order(ctx, order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order or not matches(order_visibility(ctx), order):
        raise NotFoundError("Order not found.")
    return order
