from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PRODUCT_STATUS_PENDING = "pending"
PRODUCT_STATUS_APPROVED = "approved"
PRODUCT_STATUS_REJECTED = "rejected"

PRODUCT_STATUSES = (PRODUCT_STATUS_PENDING, PRODUCT_STATUS_APPROVED, PRODUCT_STATUS_REJECTED)


class Product(db.Model):
    """
    Catalog entry with a base price and an approval workflow.

    Products created by the super-admin are approved immediately; products
    created or edited by other admins wait in "pending" for review. Only
    approved and active products can be sold.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_status_active", "status", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price_cents = db.Column(db.Integer, nullable=False)
    image_url = db.Column(db.Text, nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(128), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    status = db.Column(db.String(16), nullable=False, default=PRODUCT_STATUS_PENDING)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    reviewed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    created_by = db.relationship("User", foreign_keys=[created_by_id])
    reviewed_by = db.relationship("User", foreign_keys=[reviewed_by_id])

    @property
    def is_sellable(self) -> bool:
        return self.status == PRODUCT_STATUS_APPROVED and bool(self.is_active)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "image_url": self.image_url,
            "category": self.category,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "image_url": self.image_url,
            "stock": self.stock,
            "category": self.category,
            "is_active": self.is_active,
            "status": self.status,
            "created_by": self.created_by.summary() if self.created_by else None,
            "reviewed_by": self.reviewed_by.summary() if self.reviewed_by else None,
            "reviewed_at": to_utc_z(self.reviewed_at) if self.reviewed_at else None,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class AdminProductPricing(db.Model):
    """An admin offering a product to one of its distributors at a custom price."""
    __tablename__ = "admin_product_pricing"
    __table_args__ = (
        db.UniqueConstraint(
            "admin_id", "distributor_id", "product_id", name="uq_admin_product_pricing_triple"
        ),
        db.Index("ix_admin_product_pricing_distributor", "distributor_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    custom_price_cents = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    admin = db.relationship("User", foreign_keys=[admin_id])
    distributor = db.relationship("User", foreign_keys=[distributor_id])
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "distributor_id": self.distributor_id,
            "distributor": self.distributor.summary() if self.distributor else None,
            "product_id": self.product_id,
            "product": self.product.summary() if self.product else None,
            "custom_price_cents": self.custom_price_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CustomerPricing(db.Model):
    """A distributor's price override for one of its customers."""
    __tablename__ = "customer_pricing"
    __table_args__ = (
        db.UniqueConstraint(
            "distributor_id", "customer_id", "product_id", name="uq_customer_pricing_triple"
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    custom_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    distributor = db.relationship("User", foreign_keys=[distributor_id])
    customer = db.relationship("User", foreign_keys=[customer_id])
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "distributor_id": self.distributor_id,
            "customer_id": self.customer_id,
            "customer": self.customer.summary() if self.customer else None,
            "product_id": self.product_id,
            "product": self.product.summary() if self.product else None,
            "custom_price_cents": self.custom_price_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
