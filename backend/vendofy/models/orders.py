from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_PROCESSING = "processing"
ORDER_STATUS_SHIPPED = "shipped"
ORDER_STATUS_DELIVERED = "delivered"
ORDER_STATUS_CANCELLED = "cancelled"

ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_SHIPPED,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_CANCELLED,
)

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"

# Derived fulfillment states (not stored)
FULFILLMENT_PENDING = "pending"
FULFILLMENT_IN_TRANSIT = "in_transit"
FULFILLMENT_DELIVERED = "delivered"


class Order(db.Model):
    """
    Customer order routed through its distributor and admin.

    desired_delivery_date is the customer's request and never changes;
    current_delivery_date is the operational date the distributor moves.
    Once received_at is set only the payment fields may change.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_distributor_received", "distributor_id", "received_at"),
        db.Index("ix_orders_admin_sent", "admin_id", "sent_to_admin"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=False, unique=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_amount_cents = db.Column(db.BigInteger, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING)

    desired_delivery_date = db.Column(db.DateTime(timezone=True), nullable=False)
    current_delivery_date = db.Column(db.DateTime(timezone=True), nullable=False)

    marked_for_today = db.Column(db.Boolean, nullable=False, default=False)
    sent_to_admin = db.Column(db.Boolean, nullable=False, default=False)
    sent_to_admin_at = db.Column(db.DateTime(timezone=True), nullable=True)
    admin_received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    amount_paid_cents = db.Column(db.BigInteger, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_PENDING)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    customer = db.relationship("User", foreign_keys=[customer_id])
    distributor = db.relationship("User", foreign_keys=[distributor_id])
    admin = db.relationship("User", foreign_keys=[admin_id])
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )

    @property
    def fulfillment_state(self) -> str:
        if self.received_at is not None:
            return FULFILLMENT_DELIVERED
        if self.marked_for_today:
            return FULFILLMENT_IN_TRANSIT
        return FULFILLMENT_PENDING

    @property
    def admin_notification_pending(self) -> bool:
        return bool(self.sent_to_admin) and self.admin_received_at is None and self.received_at is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "customer": self.customer.summary() if self.customer else None,
            "distributor_id": self.distributor_id,
            "distributor": self.distributor.summary() if self.distributor else None,
            "admin_id": self.admin_id,
            "admin": self.admin.summary() if self.admin else None,
            "items": [item.to_dict() for item in self.items],
            "total_amount_cents": self.total_amount_cents,
            "status": self.status,
            "fulfillment_state": self.fulfillment_state,
            "desired_delivery_date": to_utc_z(self.desired_delivery_date),
            "current_delivery_date": to_utc_z(self.current_delivery_date),
            "marked_for_today": self.marked_for_today,
            "sent_to_admin": self.sent_to_admin,
            "sent_to_admin_at": to_utc_z(self.sent_to_admin_at),
            "admin_received_at": to_utc_z(self.admin_received_at),
            "received_at": to_utc_z(self.received_at),
            "amount_paid_cents": self.amount_paid_cents,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Order line. unit_price_cents is frozen when the order is created."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.BigInteger, nullable=False)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": self.product.summary() if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
