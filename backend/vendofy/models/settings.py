from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

# Keys accepted inside field_requirements[role]
REQUIREMENT_FIELDS = (
    "name",
    "email",
    "mobile_no",
    "business_name",
    "address",
    "registration_no",
    "registration_copy",
)

# Roles whose onboarding requirements admins may propose changes to
PROPOSABLE_ROLES = ("distributor", "customer")

CHANGE_STATUS_PENDING = "pending"
CHANGE_STATUS_APPROVED = "approved"
CHANGE_STATUS_REJECTED = "rejected"

DEFAULT_SESSION_SECONDS = 3600


def default_field_requirements() -> dict:
    return {"admin": {}, "distributor": {}, "customer": {}}


class SystemSettings(db.Model):
    """
    Singleton row with platform-wide configuration.

    JSON columns are replaced wholesale on update; in-place mutation of the
    loaded dict would not be flushed.
    """
    __tablename__ = "system_settings"

    id = db.Column(db.Integer, primary_key=True)

    email_from_address = db.Column(db.String(255), nullable=True)
    smtp_status = db.Column(db.String(16), nullable=False, default="active")

    # Seconds; values below 60 are legacy hour counts
    jwt_session_duration = db.Column(db.Integer, nullable=False, default=DEFAULT_SESSION_SECONDS)
    password_min_length = db.Column(db.Integer, nullable=False, default=8)
    password_require_uppercase = db.Column(db.Boolean, nullable=False, default=False)
    password_require_lowercase = db.Column(db.Boolean, nullable=False, default=False)
    password_require_numbers = db.Column(db.Boolean, nullable=False, default=False)
    password_require_special_chars = db.Column(db.Boolean, nullable=False, default=False)

    feature_toggles = db.Column(db.JSON, nullable=False, default=dict)
    notification_email_enabled = db.Column(db.Boolean, nullable=False, default=True)
    notification_on_site_enabled = db.Column(db.Boolean, nullable=False, default=True)
    field_requirements = db.Column(db.JSON, nullable=False, default=default_field_requirements)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    @property
    def session_ttl_seconds(self) -> int:
        duration = self.jwt_session_duration or DEFAULT_SESSION_SECONDS
        if duration < 60:
            return duration * 3600
        return duration

    def requirements_for(self, role: str) -> dict:
        return dict((self.field_requirements or {}).get(role) or {})

    def password_policy(self) -> dict:
        return {
            "password_min_length": self.password_min_length,
            "password_require_uppercase": self.password_require_uppercase,
            "password_require_lowercase": self.password_require_lowercase,
            "password_require_numbers": self.password_require_numbers,
            "password_require_special_chars": self.password_require_special_chars,
        }

    def to_public_dict(self) -> dict:
        """Read-only subset for admins and distributors."""
        requirements = self.field_requirements or {}
        return {
            "jwt_session_duration": self.jwt_session_duration,
            **self.password_policy(),
            "notification_email_enabled": self.notification_email_enabled,
            "notification_on_site_enabled": self.notification_on_site_enabled,
            "field_requirements": {
                "distributor": requirements.get("distributor") or {},
                "customer": requirements.get("customer") or {},
            },
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email_from_address": self.email_from_address,
            "smtp_status": self.smtp_status,
            "jwt_session_duration": self.jwt_session_duration,
            **self.password_policy(),
            "feature_toggles": self.feature_toggles or {},
            "notification_email_enabled": self.notification_email_enabled,
            "notification_on_site_enabled": self.notification_on_site_enabled,
            "field_requirements": self.field_requirements or default_field_requirements(),
            "updated_at": to_utc_z(self.updated_at),
        }


class PendingSettingsChange(db.Model):
    """An admin's proposed change to distributor/customer field requirements."""
    __tablename__ = "pending_settings_changes"
    __table_args__ = (
        db.Index("ix_pending_settings_changes_requested_status", "requested_by_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    requested_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    field_requirements = db.Column(db.JSON, nullable=False, default=dict)
    status = db.Column(db.String(16), nullable=False, default=CHANGE_STATUS_PENDING)
    reviewed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    requested_by = db.relationship("User", foreign_keys=[requested_by_id])
    reviewed_by = db.relationship("User", foreign_keys=[reviewed_by_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requested_by": self.requested_by.summary() if self.requested_by else None,
            "field_requirements": self.field_requirements or {},
            "status": self.status,
            "reviewed_by": self.reviewed_by.summary() if self.reviewed_by else None,
            "reviewed_at": to_utc_z(self.reviewed_at),
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
