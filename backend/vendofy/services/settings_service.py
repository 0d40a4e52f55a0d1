# Overview: Service-layer operations for system settings and the pending-change approval workflow.

"""
System settings.

A single SystemSettings row holds platform configuration. Only the
super-admin edits it directly. Regular admins may propose changes to the
onboarding field requirements of distributors and customers; a proposal
stays pending until the super-admin approves (merged into settings) or
rejects it. Each admin has at most one pending proposal: submitting again
updates it in place.
"""

from __future__ import annotations

from ..errors import NotFoundError, ServiceError
from ..extensions import db
from ..models import PendingSettingsChange, SystemSettings
from ..models.settings import (
    CHANGE_STATUS_APPROVED,
    CHANGE_STATUS_PENDING,
    CHANGE_STATUS_REJECTED,
    PROPOSABLE_ROLES,
    REQUIREMENT_FIELDS,
    default_field_requirements,
)
from ..time_utils import utcnow
from ..validation import ValidationError, parse_int

DEFAULT_REJECTION_REASON = "Rejected by super admin"

_BOOL_FIELDS = (
    "password_require_uppercase",
    "password_require_lowercase",
    "password_require_numbers",
    "password_require_special_chars",
    "notification_email_enabled",
    "notification_on_site_enabled",
)
_INT_FIELDS = {
    # field -> minimum accepted value
    "jwt_session_duration": 1,
    "password_min_length": 4,
}
_STR_FIELDS = ("email_from_address",)
_SMTP_STATUSES = ("active", "inactive")


class SettingsError(ServiceError):
    """Raised for settings workflow violations."""


def get_settings() -> SystemSettings:
    """Return the singleton settings row, creating it with defaults on first use."""
    settings = db.session.query(SystemSettings).order_by(SystemSettings.id).first()
    if settings is None:
        settings = SystemSettings(field_requirements=default_field_requirements(), feature_toggles={})
        db.session.add(settings)
        db.session.commit()
    return settings


def settings_view(is_super_admin: bool) -> dict:
    settings = get_settings()
    return settings.to_dict() if is_super_admin else settings.to_public_dict()


def normalize_field_requirements(payload, roles=("admin",) + PROPOSABLE_ROLES) -> dict:
    """Validate {role: {field: bool}} and drop nothing silently: unknown keys are errors."""
    if not isinstance(payload, dict):
        raise ValidationError("field_requirements must be an object")
    cleaned: dict = {}
    for role, fields in payload.items():
        if role not in roles:
            raise ValidationError(f"Field requirements cannot be set for role: {role}")
        if not isinstance(fields, dict):
            raise ValidationError(f"field_requirements.{role} must be an object")
        role_fields = {}
        for key, value in fields.items():
            if key not in REQUIREMENT_FIELDS:
                raise ValidationError(f"Unknown requirement field: {key}")
            if not isinstance(value, bool):
                raise ValidationError(f"field_requirements.{role}.{key} must be a boolean")
            role_fields[key] = value
        cleaned[role] = role_fields
    return cleaned


def _merge_requirements(current: dict | None, updates: dict) -> dict:
    merged = {role: dict(fields or {}) for role, fields in (current or default_field_requirements()).items()}
    for role, fields in updates.items():
        merged.setdefault(role, {}).update(fields)
    return merged


def update_settings(payload: dict) -> SystemSettings:
    """Apply a super-admin edit. Only known fields are accepted."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    settings = get_settings()

    for name in _BOOL_FIELDS:
        if name in payload:
            if not isinstance(payload[name], bool):
                raise ValidationError(f"{name} must be a boolean")
            setattr(settings, name, payload[name])

    for name, minimum in _INT_FIELDS.items():
        if name in payload:
            value = parse_int(payload[name], name)
            if value < minimum:
                raise ValidationError(f"{name} must be at least {minimum}")
            setattr(settings, name, value)

    for name in _STR_FIELDS:
        if name in payload:
            value = payload[name]
            setattr(settings, name, value.strip() if isinstance(value, str) and value.strip() else None)

    if "smtp_status" in payload:
        if payload["smtp_status"] not in _SMTP_STATUSES:
            raise ValidationError("smtp_status must be 'active' or 'inactive'")
        settings.smtp_status = payload["smtp_status"]

    if "feature_toggles" in payload:
        toggles = payload["feature_toggles"]
        if not isinstance(toggles, dict) or not all(isinstance(v, bool) for v in toggles.values()):
            raise ValidationError("feature_toggles must map names to booleans")
        settings.feature_toggles = dict(toggles)

    if "field_requirements" in payload:
        updates = normalize_field_requirements(payload["field_requirements"])
        settings.field_requirements = _merge_requirements(settings.field_requirements, updates)

    db.session.commit()
    return settings


def submit_pending_change(requested_by_id: int, field_requirements) -> tuple[PendingSettingsChange, bool]:
    """
    Record an admin's proposal. Returns (change, created).

    An existing pending proposal from the same admin is updated instead of a
    second one being opened.
    """
    cleaned = normalize_field_requirements(field_requirements, roles=PROPOSABLE_ROLES)
    if not cleaned:
        raise ValidationError("field_requirements must include distributor or customer")

    existing = (
        db.session.query(PendingSettingsChange)
        .filter_by(requested_by_id=requested_by_id, status=CHANGE_STATUS_PENDING)
        .first()
    )
    if existing:
        existing.field_requirements = cleaned
        db.session.commit()
        return existing, False

    change = PendingSettingsChange(
        requested_by_id=requested_by_id,
        field_requirements=cleaned,
        status=CHANGE_STATUS_PENDING,
    )
    db.session.add(change)
    db.session.commit()
    return change, True


def list_pending_changes() -> list[PendingSettingsChange]:
    return (
        db.session.query(PendingSettingsChange)
        .filter_by(status=CHANGE_STATUS_PENDING)
        .order_by(PendingSettingsChange.created_at.desc(), PendingSettingsChange.id.desc())
        .all()
    )


def latest_change_for(requested_by_id: int) -> PendingSettingsChange | None:
    return (
        db.session.query(PendingSettingsChange)
        .filter_by(requested_by_id=requested_by_id)
        .order_by(PendingSettingsChange.created_at.desc(), PendingSettingsChange.id.desc())
        .first()
    )


def _load_open_change(change_id: int) -> PendingSettingsChange:
    change = db.session.get(PendingSettingsChange, change_id)
    if not change:
        raise NotFoundError("Pending change not found.")
    if change.status != CHANGE_STATUS_PENDING:
        raise SettingsError("This change has already been processed.")
    return change


def approve_change(change_id: int, reviewer_id: int) -> tuple[PendingSettingsChange, SystemSettings]:
    change = _load_open_change(change_id)
    settings = get_settings()

    updates = {
        role: fields
        for role, fields in (change.field_requirements or {}).items()
        if role in PROPOSABLE_ROLES
    }
    settings.field_requirements = _merge_requirements(settings.field_requirements, updates)

    change.status = CHANGE_STATUS_APPROVED
    change.reviewed_by_id = reviewer_id
    change.reviewed_at = utcnow()
    db.session.commit()
    return change, settings


def reject_change(change_id: int, reviewer_id: int, reason: str | None = None) -> PendingSettingsChange:
    change = _load_open_change(change_id)
    change.status = CHANGE_STATUS_REJECTED
    change.reviewed_by_id = reviewer_id
    change.reviewed_at = utcnow()
    change.rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    db.session.commit()
    return change
