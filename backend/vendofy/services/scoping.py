# Overview: Role-scoped visibility rules for users, orders and products, expressed as filter trees.

"""
Data visibility by role.

- super-admin: everything
- admin: its own distributors (parent_id = admin) and the customers of
  those distributors (two hops, resolved through a distributor id lookup);
  orders tagged with its admin_id or placed through one of its distributors
- distributor: its own customers (parent_id = distributor) and its own orders
- customer: no users; its own orders

Every list endpoint combines the visibility rule with request filters via
all_of(), so search text or a role filter can only narrow what the caller
is allowed to see.
"""

from __future__ import annotations

from ..extensions import db
from ..filters import (
    MATCH_ALL,
    MATCH_NONE,
    Expr,
    all_of,
    any_of,
    contains,
    eq,
    in_,
)
from ..models import User
from ..models.catalog import PRODUCT_STATUS_APPROVED
from ..models.users import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DISTRIBUTOR, ROLES
from ..validation import ValidationError

USER_SEARCH_FIELDS = ("name", "email", "business_name", "uid", "mobile_no")

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"


def distributor_ids_for_admin(admin_id: int) -> list[int]:
    rows = (
        db.session.query(User.id)
        .filter(User.role == ROLE_DISTRIBUTOR, User.parent_id == admin_id)
        .all()
    )
    return [row[0] for row in rows]


def user_visibility(ctx) -> Expr:
    if ctx.is_super_admin:
        return MATCH_ALL
    if ctx.role == ROLE_ADMIN:
        distributor_ids = distributor_ids_for_admin(ctx.user_id)
        return any_of(
            all_of(eq("role", ROLE_DISTRIBUTOR), eq("parent_id", ctx.user_id)),
            all_of(eq("role", ROLE_CUSTOMER), in_("parent_id", distributor_ids)),
        )
    if ctx.role == ROLE_DISTRIBUTOR:
        return all_of(eq("role", ROLE_CUSTOMER), eq("parent_id", ctx.user_id))
    return MATCH_NONE


def order_visibility(ctx) -> Expr:
    if ctx.is_super_admin:
        return MATCH_ALL
    if ctx.role == ROLE_ADMIN:
        return any_of(
            eq("admin_id", ctx.user_id),
            in_("distributor_id", distributor_ids_for_admin(ctx.user_id)),
        )
    if ctx.role == ROLE_DISTRIBUTOR:
        return eq("distributor_id", ctx.user_id)
    if ctx.role == ROLE_CUSTOMER:
        return eq("customer_id", ctx.user_id)
    return MATCH_NONE


def product_visibility(ctx) -> Expr:
    if ctx.is_super_admin:
        return MATCH_ALL
    return sellable_products()


def sellable_products() -> Expr:
    return all_of(eq("status", PRODUCT_STATUS_APPROVED), eq("is_active", True))


def user_search(text: str | None) -> Expr:
    text = (text or "").strip()
    if not text:
        return MATCH_ALL
    return any_of(*(contains(field, text) for field in USER_SEARCH_FIELDS))


def user_list_filter(ctx, *, search: str | None = None, role: str | None = None, status: str | None = None) -> Expr:
    """Visibility AND search AND role AND status."""
    terms = [user_visibility(ctx), user_search(search)]

    if role and role != "all":
        if role not in ROLES:
            raise ValidationError(f"Invalid role filter: {role}")
        terms.append(eq("role", role))

    if status and status != "all":
        if status not in (STATUS_ACTIVE, STATUS_INACTIVE):
            raise ValidationError(f"Invalid status filter: {status}")
        terms.append(eq("is_active", status == STATUS_ACTIVE))

    return all_of(*terms)
