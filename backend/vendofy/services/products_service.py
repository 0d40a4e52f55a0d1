# backend/vendofy/services/products_service.py
"""
Products Service with approval workflow

- Products created by the super-admin are approved immediately; products
  created by other admins wait for review.
- An admin's edit sends the product back to pending. A super-admin's edit
  keeps the current status, except that it lifts a rejection.
- Only the super-admin can toggle is_active, approve, reject or delete.
"""
from __future__ import annotations

import logging

from ..errors import NotFoundError, ServiceError
from ..extensions import db
from ..filters import all_of, apply_filter, eq
from ..models import AdminProductPricing, CustomerPricing, OrderItem, Product
from ..models.catalog import (
    PRODUCT_STATUS_APPROVED,
    PRODUCT_STATUS_PENDING,
    PRODUCT_STATUS_REJECTED,
    PRODUCT_STATUSES,
)
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, ValidationError, enforce_rules_product, validate_payload
from .scoping import product_visibility

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Rejected by super admin"

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description", "price_cents", "image_url", "stock", "category"}),
    required_on_create=frozenset({"name", "price_cents"}),
)


class ProductError(ServiceError):
    """Raised for product operation errors."""


def _clean_patch(payload: dict, partial: bool) -> dict:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    if "image_url" in patch and not patch["image_url"]:
        patch["image_url"] = None
    return patch


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found.")
    return product


def list_products(ctx, status: str | None = None) -> list[Product]:
    """Super-admin sees everything (optionally by status); others see the sellable catalog."""
    expr = product_visibility(ctx)
    if status and ctx.is_super_admin:
        if status not in PRODUCT_STATUSES:
            raise ValidationError(f"Invalid status filter: {status}")
        expr = all_of(expr, eq("status", status))
    return (
        apply_filter(db.session.query(Product), expr, Product)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )


def pending_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter_by(status=PRODUCT_STATUS_PENDING)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )


def create_product(ctx, payload: dict) -> Product:
    patch = _clean_patch(payload, partial=False)
    product = Product(
        **patch,
        is_active=True,
        status=PRODUCT_STATUS_APPROVED if ctx.is_super_admin else PRODUCT_STATUS_PENDING,
        created_by_id=ctx.user_id,
    )
    if ctx.is_super_admin:
        product.reviewed_by_id = ctx.user_id
        product.reviewed_at = utcnow()
    db.session.add(product)
    db.session.commit()
    logger.info("Product %s created by user %s (%s)", product.id, ctx.user_id, product.status)
    return product


def update_product(ctx, product_id: int, payload: dict) -> Product:
    product = get_product(product_id)
    patch = _clean_patch(payload, partial=True)
    for key, value in patch.items():
        setattr(product, key, value)

    if "is_active" in (payload or {}) and ctx.is_super_admin:
        if not isinstance(payload["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        product.is_active = payload["is_active"]

    if not ctx.is_super_admin:
        product.status = PRODUCT_STATUS_PENDING
    elif product.status == PRODUCT_STATUS_REJECTED:
        product.status = PRODUCT_STATUS_APPROVED
        product.rejection_reason = None
        product.reviewed_by_id = ctx.user_id
        product.reviewed_at = utcnow()

    db.session.commit()
    return product


def approve_product(product_id: int, reviewer_id: int) -> Product:
    product = get_product(product_id)
    product.status = PRODUCT_STATUS_APPROVED
    product.reviewed_by_id = reviewer_id
    product.reviewed_at = utcnow()
    product.rejection_reason = None
    db.session.commit()
    return product


def reject_product(product_id: int, reviewer_id: int, reason: str | None = None) -> Product:
    product = get_product(product_id)
    product.status = PRODUCT_STATUS_REJECTED
    product.reviewed_by_id = reviewer_id
    product.reviewed_at = utcnow()
    product.rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    db.session.commit()
    return product


def delete_product(product_id: int) -> None:
    """
    Remove a product and its pricing rows.

    Products referenced by orders are kept for order history; deactivate
    those instead.
    """
    product = get_product(product_id)
    if db.session.query(OrderItem.id).filter_by(product_id=product_id).first():
        raise ProductError("Product has orders and cannot be deleted. Deactivate it instead.")

    db.session.query(AdminProductPricing).filter_by(product_id=product_id).delete(synchronize_session=False)
    db.session.query(CustomerPricing).filter_by(product_id=product_id).delete(synchronize_session=False)
    db.session.delete(product)
    db.session.commit()
    logger.info("Product %s deleted", product_id)
