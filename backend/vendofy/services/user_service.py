# Overview: Service-layer operations for user management within the role hierarchy, plus self-service profile.

"""
User management.

Hierarchy rules for account creation:
- only the super-admin creates admins (no parent)
- admins, including the super-admin, create distributors (parent = creator)
- distributors create customers (parent = creator)

Every operation on an existing account first resolves it through the
caller's visibility scope, so an admin can only touch its own distributors
and their customers. The super-admin account itself is immutable through
these endpoints.
"""

from __future__ import annotations

import logging
import re
import secrets

from ..errors import AccessDeniedError, NotFoundError, ServiceError
from ..extensions import db
from ..filters import apply_filter, eq, all_of, matches
from ..models import (
    AdminProductPricing,
    CustomerPricing,
    Order,
    PendingSettingsChange,
    Product,
    User,
)
from ..models.users import (
    ADDRESS_FIELDS,
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_DISTRIBUTOR,
    ROLE_SUPER_ADMIN,
)
from ..validation import ValidationError, normalize_email
from . import auth_service, email_templates, session_service
from .scoping import user_list_filter, user_visibility
from .settings_service import get_settings

logger = logging.getLogger(__name__)

UID_MAX_LENGTH = 20
UID_ATTEMPTS = 10
MANAGED_ROLES = (ROLE_ADMIN, ROLE_DISTRIBUTOR, ROLE_CUSTOMER)

_PROFILE_STRING_FIELDS = {
    "mobile_no": 32,
    "business_name": 255,
    "registration_no": 128,
}
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


class UserManagementError(ServiceError):
    """Raised for user management rule violations."""


# =============================================================================
# UIDs
# =============================================================================


def generate_uid(role: str, business_name: str | None = None, name: str | None = None) -> str:
    """ROLE prefix (3) + business (6) + name (4) + 4 random digits, at most 20 chars."""
    prefix = role.upper()[:3]
    business = _NON_ALNUM.sub("", business_name or "").upper()[:6]
    name_part = _NON_ALNUM.sub("", name or "").upper()[:4]
    digits = str(1000 + secrets.randbelow(9000))
    return f"{prefix}{business}{name_part}{digits}"[:UID_MAX_LENGTH]


def uid_exists(uid: str) -> bool:
    return db.session.query(User.id).filter_by(uid=uid).first() is not None


def suggest_uid(role: str, business_name: str | None = None, name: str | None = None) -> str:
    if role not in MANAGED_ROLES:
        raise ValidationError("Valid role is required.")
    candidate = generate_uid(role, business_name, name)
    for _ in range(UID_ATTEMPTS):
        if not uid_exists(candidate):
            break
        candidate = generate_uid(role, business_name, name)
    return candidate


# =============================================================================
# Payload helpers
# =============================================================================


def _clean_str(value, name: str, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    value = value.strip()
    if max_length and len(value) > max_length:
        raise ValidationError(f"{name} exceeds max length {max_length}")
    return value or None


def _profile_fields(payload: dict) -> dict:
    """Optional business-identity fields present in payload, cleaned."""
    fields: dict = {}
    for name, max_length in _PROFILE_STRING_FIELDS.items():
        if name in payload:
            fields[name] = _clean_str(payload[name], name, max_length)
    if "registration_copy_url" in payload:
        fields["registration_copy_url"] = _clean_str(payload["registration_copy_url"], "registration_copy_url")
    if "address" in payload:
        address = payload["address"] or {}
        if not isinstance(address, dict):
            raise ValidationError("address must be an object")
        for key in ADDRESS_FIELDS:
            fields[key] = _clean_str(address.get(key), f"address.{key}", 255)
    return fields


def _enforce_field_requirements(role: str, values: dict) -> None:
    requirements = get_settings().requirements_for(role)
    if requirements.get("mobile_no") and not values.get("mobile_no"):
        raise ValidationError("Mobile number is required for this role.")
    if requirements.get("business_name") and not values.get("business_name"):
        raise ValidationError("Business name is required for this role.")
    if requirements.get("address") and not all(
        values.get(key) for key in ("address1", "city", "state", "country")
    ):
        raise ValidationError("Complete address is required for this role.")
    if requirements.get("registration_no") or requirements.get("registration_copy"):
        if not values.get("registration_no") and not values.get("registration_copy_url"):
            raise ValidationError(
                "Either registration number or registration copy is required for this role."
            )


def _email_taken(email: str, exclude_id: int | None = None) -> bool:
    q = db.session.query(User.id).filter(User.email == email)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


def _uid_taken(uid: str, exclude_id: int | None = None) -> bool:
    q = db.session.query(User.id).filter(User.uid == uid)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


# =============================================================================
# Queries
# =============================================================================


def list_users(ctx, *, search: str | None = None, role: str | None = None, status: str | None = None) -> list[User]:
    expr = user_list_filter(ctx, search=search, role=role, status=status)
    return (
        apply_filter(db.session.query(User), expr, User)
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )


def user_stats(ctx) -> dict:
    """Active accounts per role inside the caller's scope."""
    scope = all_of(user_visibility(ctx), eq("is_active", True))
    rows = (
        apply_filter(db.session.query(User.role, db.func.count(User.id)), scope, User)
        .group_by(User.role)
        .all()
    )
    counts = {role: count for role, count in rows}
    stats = {
        ROLE_ADMIN: counts.get(ROLE_ADMIN, 0),
        ROLE_DISTRIBUTOR: counts.get(ROLE_DISTRIBUTOR, 0),
        ROLE_CUSTOMER: counts.get(ROLE_CUSTOMER, 0),
    }
    stats["total"] = sum(stats.values())
    return stats


def admin_distributors(admin_id: int) -> list[User]:
    return (
        db.session.query(User)
        .filter_by(parent_id=admin_id, role=ROLE_DISTRIBUTOR, is_active=True)
        .order_by(User.name)
        .all()
    )


def distributor_customers(distributor_id: int) -> list[User]:
    return (
        db.session.query(User)
        .filter_by(parent_id=distributor_id, role=ROLE_CUSTOMER, is_active=True)
        .order_by(User.name)
        .all()
    )


def get_scoped_user(ctx, user_id: int) -> User:
    """Target lookup through the caller's visibility scope; the super-admin is never a target."""
    user = db.session.get(User, user_id)
    if not user or not matches(user_visibility(ctx), user):
        raise NotFoundError("User not found.")
    if session_service.is_super_admin(user):
        raise AccessDeniedError("Cannot modify the super admin.")
    return user


# =============================================================================
# Commands
# =============================================================================


def _parent_for_new_user(ctx, role: str) -> int | None:
    if role == ROLE_ADMIN:
        if not ctx.is_super_admin:
            raise AccessDeniedError("Only the super admin can create admins.")
        return None
    if role == ROLE_DISTRIBUTOR:
        if not ctx.is_admin:
            raise AccessDeniedError("Only admins can create distributors.")
        return ctx.user_id
    if ctx.role != ROLE_DISTRIBUTOR:
        raise AccessDeniedError("Only distributors can create customers.")
    return ctx.user_id


def create_user(ctx, payload: dict) -> User:
    """
    Create an account below the caller and send the verification email.

    The password given here is only a placeholder until the email is
    verified; verification issues a temporary password.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    name = _clean_str(payload.get("name"), "name", 255)
    role = payload.get("role")
    if not name or not payload.get("email") or not role:
        raise ValidationError("Name, email, and role are required.")
    if role not in MANAGED_ROLES:
        raise ValidationError("Invalid role.")
    email = normalize_email(payload.get("email"))

    parent_id = _parent_for_new_user(ctx, role)

    values = _profile_fields(payload)
    _enforce_field_requirements(role, values)

    if _email_taken(email):
        raise UserManagementError("Email already exists.")

    uid = _clean_str(payload.get("uid"), "uid", UID_MAX_LENGTH)
    if uid:
        if _uid_taken(uid):
            raise UserManagementError("UID already exists.")
    else:
        uid = suggest_uid(role, values.get("business_name"), name)

    password = payload.get("password")
    if password:
        auth_service.validate_password_policy(password)
    else:
        password = auth_service.generate_temporary_password()

    is_active = payload.get("is_active", True)
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean")

    user = User(
        name=name,
        email=email,
        password_hash=auth_service.hash_password(password),
        role=role,
        is_active=is_active,
        uid=uid,
        created_by_id=ctx.user_id,
        parent_id=parent_id,
        email_verified=False,
        **values,
    )
    db.session.add(user)
    db.session.commit()
    logger.info("User %s (%s) created by %s", user.id, role, ctx.user_id)

    auth_service.send_verification(user)
    return user


def update_user(ctx, user_id: int, payload: dict) -> User:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    user = get_scoped_user(ctx, user_id)

    if "name" in payload:
        name = _clean_str(payload["name"], "name", 255)
        if not name:
            raise ValidationError("name cannot be blank")
        user.name = name

    if "email" in payload:
        email = normalize_email(payload["email"])
        if _email_taken(email, exclude_id=user.id):
            raise UserManagementError("Email already exists.")
        user.email = email

    if payload.get("password"):
        auth_service.validate_password_policy(payload["password"])
        user.password_hash = auth_service.hash_password(payload["password"])

    if "is_active" in payload:
        if not isinstance(payload["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        user.is_active = payload["is_active"]

    if "uid" in payload:
        uid = _clean_str(payload["uid"], "uid", UID_MAX_LENGTH)
        if uid and _uid_taken(uid, exclude_id=user.id):
            raise UserManagementError("UID already exists.")
        user.uid = uid

    for key, value in _profile_fields(payload).items():
        setattr(user, key, value)

    db.session.commit()
    return user


def change_role(ctx, user_id: int, role) -> User:
    """Role changes reshape the hierarchy, so only the super-admin may make them."""
    if role not in MANAGED_ROLES:
        raise ValidationError("Valid role is required.")
    if not ctx.is_super_admin:
        raise AccessDeniedError("Only the super admin can change roles.")
    user = get_scoped_user(ctx, user_id)
    user.role = role
    db.session.commit()
    return user


def set_status(ctx, user_id: int, is_active) -> User:
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean.")
    user = get_scoped_user(ctx, user_id)
    user.is_active = is_active
    db.session.commit()
    return user


def force_password_reset(ctx, user_id: int) -> User:
    user = get_scoped_user(ctx, user_id)
    user.must_change_password = True
    db.session.commit()
    email_templates.send_forced_reset_email(user.email, user.name)
    return user


def delete_user(ctx, user_id: int) -> None:
    """
    Delete an account without dependents.

    Accounts that still own other accounts or appear on orders are kept for
    history; deactivate those instead.
    """
    user = get_scoped_user(ctx, user_id)

    if db.session.query(User.id).filter(User.parent_id == user.id).first():
        raise UserManagementError("User still has accounts assigned. Reassign or deactivate instead.")
    has_orders = (
        db.session.query(Order.id)
        .filter(
            (Order.customer_id == user.id)
            | (Order.distributor_id == user.id)
            | (Order.admin_id == user.id)
        )
        .first()
    )
    if has_orders:
        raise UserManagementError("User has orders and cannot be deleted. Deactivate instead.")
    if db.session.query(Product.id).filter(Product.created_by_id == user.id).first():
        raise UserManagementError("User has created products and cannot be deleted. Deactivate instead.")

    db.session.query(CustomerPricing).filter(
        (CustomerPricing.customer_id == user.id) | (CustomerPricing.distributor_id == user.id)
    ).delete(synchronize_session=False)
    db.session.query(AdminProductPricing).filter(
        (AdminProductPricing.distributor_id == user.id) | (AdminProductPricing.admin_id == user.id)
    ).delete(synchronize_session=False)
    db.session.query(PendingSettingsChange).filter_by(requested_by_id=user.id).delete(synchronize_session=False)
    db.session.query(User).filter_by(created_by_id=user.id).update(
        {User.created_by_id: None}, synchronize_session=False
    )
    db.session.delete(user)
    db.session.commit()
    logger.info("User %s deleted by %s", user_id, ctx.user_id)


# =============================================================================
# Self-service profile
# =============================================================================


def update_own_name(ctx, name) -> User:
    name = _clean_str(name, "name", 255)
    if not name:
        raise ValidationError("Name is required.")
    if ctx.is_super_admin or ctx.user.role == ROLE_SUPER_ADMIN:
        raise AccessDeniedError("Super admin name cannot be changed.")
    ctx.user.name = name
    db.session.commit()
    return ctx.user


def set_avatar(user: User, avatar_url) -> User:
    avatar_url = _clean_str(avatar_url, "avatar_url")
    if not avatar_url:
        raise ValidationError("avatar_url is required.")
    user.avatar_url = avatar_url
    db.session.commit()
    return user


def remove_avatar(user: User) -> User:
    user.avatar_url = None
    db.session.commit()
    return user
