from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ROLE_SUPER_ADMIN = "super-admin"
ROLE_ADMIN = "admin"
ROLE_DISTRIBUTOR = "distributor"
ROLE_CUSTOMER = "customer"

ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_DISTRIBUTOR, ROLE_CUSTOMER)

# Roles a user may pick on the login form. The super-admin signs in as "admin".
LOGIN_ROLES = (ROLE_ADMIN, ROLE_DISTRIBUTOR, ROLE_CUSTOMER)

ADDRESS_FIELDS = ("address1", "address2", "city", "district", "pin", "state", "country")


class User(db.Model):
    """
    Account in the tenant hierarchy.

    parent_id is the immediate owner in the hierarchy:
    admin -> distributor, distributor -> customer. A customer's effective
    admin is therefore its distributor's parent.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_parent", "role", "parent_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default=ROLE_CUSTOMER)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    must_change_password = db.Column(db.Boolean, nullable=False, default=False)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Business identity (requirements per role live in SystemSettings.field_requirements)
    uid = db.Column(db.String(20), nullable=True, unique=True)
    mobile_no = db.Column(db.String(32), nullable=True)
    business_name = db.Column(db.String(255), nullable=True)
    address1 = db.Column(db.String(255), nullable=True)
    address2 = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    district = db.Column(db.String(128), nullable=True)
    pin = db.Column(db.String(16), nullable=True)
    state = db.Column(db.String(128), nullable=True)
    country = db.Column(db.String(128), nullable=True)
    registration_no = db.Column(db.String(128), nullable=True)
    registration_copy_url = db.Column(db.Text, nullable=True)
    avatar_url = db.Column(db.Text, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    parent = db.relationship("User", remote_side=[id], foreign_keys=[parent_id])
    created_by = db.relationship("User", remote_side=[id], foreign_keys=[created_by_id])

    def summary(self) -> dict:
        """Compact form embedded in orders and pricing rows."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "business_name": self.business_name,
        }

    def address_dict(self) -> dict:
        return {field: getattr(self, field) for field in ADDRESS_FIELDS}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
            "email_verified": self.email_verified,
            "must_change_password": self.must_change_password,
            "uid": self.uid,
            "mobile_no": self.mobile_no,
            "business_name": self.business_name,
            "address": self.address_dict(),
            "registration_no": self.registration_no,
            "registration_copy_url": self.registration_copy_url,
            "avatar_url": self.avatar_url,
            "created_by_id": self.created_by_id,
            "parent_id": self.parent_id,
            "parent": self.parent.summary() if self.parent else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
