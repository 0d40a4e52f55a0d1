# Overview: Service exception hierarchy and mapping of store errors to client messages.

from __future__ import annotations

from flask import jsonify
from sqlalchemy.exc import IntegrityError

from .extensions import db


class ServiceError(Exception):
    """
    Base for business-rule failures raised by services.

    status_code is the HTTP status a route should answer with; routes never
    need to know which concrete service raised.
    """
    status_code = 400

    def __init__(self, message: str, status_code: int | None = None, details: dict | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_response(self):
        body = {"error": str(self)}
        if self.details:
            body["details"] = self.details
        return jsonify(body), self.status_code


class NotFoundError(ServiceError):
    status_code = 404


class AccessDeniedError(ServiceError):
    status_code = 403


class AuthenticationError(ServiceError):
    status_code = 401


# Unique constraint / column fragments -> client-facing message
_UNIQUE_MESSAGES = (
    ("users.email", "Email already exists."),
    ("uq_users_email", "Email already exists."),
    ("users.uid", "UID already exists."),
    ("uq_users_uid", "UID already exists."),
    ("orders.order_number", "Order number already exists."),
    ("uq_orders_order_number", "Order number already exists."),
    ("uq_customer_pricing_triple", "Custom price already exists for this customer and product."),
    ("uq_admin_product_pricing_triple", "Pricing already exists for this distributor and product."),
)


def integrity_error_message(exc: IntegrityError) -> str:
    """Field-specific message for a uniqueness violation, generic otherwise."""
    text = str(getattr(exc, "orig", exc))
    for fragment, message in _UNIQUE_MESSAGES:
        if fragment in text:
            return message
    return "Duplicate or invalid reference."


def integrity_response(exc: IntegrityError):
    """Roll back the failed flush and answer 400 with a field-specific message."""
    db.session.rollback()
    return jsonify({"error": integrity_error_message(exc)}), 400
