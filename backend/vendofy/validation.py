from __future__ import annotations
from datetime import datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ServiceError
from .time_utils import parse_iso_datetime


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Bulk endpoints take at most this many order ids per call
MAX_BULK_IDS = 500

# Per-line quantity ceiling; keeps line totals inside a BIGINT
MAX_ITEM_QUANTITY = 1_000_000


class ValidationError(ServiceError):
    """400-level input problem."""
    status_code = 400


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: frozenset
    required_on_create: frozenset = field(default_factory=frozenset)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_int(value: Any, name: str) -> int:
    """Strict integer: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{name} must be a plain integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def parse_positive_int(value: Any, name: str) -> int:
    number = parse_int(value, name)
    if number <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    return number


def parse_price_cents(value: Any, name: str = "price_cents") -> int:
    if value is None:
        raise ValidationError(f"{name} is required")
    cents = parse_int(value, name)
    if cents < 0:
        raise ValidationError(f"{name} must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{name} cannot exceed {MAX_PRICE_CENTS}")
    return cents


def parse_datetime(value: Any, name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")
    if dt is None:
        raise ValidationError(f"{name} is required")
    return dt


def parse_id_list(value: Any, name: str = "order_ids") -> list[int]:
    """Non-empty list of integer ids, de-duplicated in input order."""
    if not isinstance(value, list) or not value:
        raise ValidationError(f"{name} must be a non-empty array")
    if len(value) > MAX_BULK_IDS:
        raise ValidationError(f"{name} cannot contain more than {MAX_BULK_IDS} entries")
    ids: list[int] = []
    for raw in value:
        item = parse_positive_int(raw, name)
        if item not in ids:
            ids.append(item)
    return ids


def normalize_email(value: Any) -> str:
    if not isinstance(value, str) or "@" not in value:
        raise ValidationError("A valid email is required")
    email = value.strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError("A valid email is required")
    return email


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, DateTime):
        return parse_datetime(value, col.key)

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against column metadata and a policy allowlist.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    Unknown keys are ignored rather than rejected; clients send whole forms.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = [f for f in sorted(policy.required_on_create) if payload.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields or k not in cols:
            continue
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable and val == "":
            raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Product rules not captured by column metadata."""
    if "price_cents" in patch:
        patch["price_cents"] = parse_price_cents(patch["price_cents"])
    if "stock" in patch and patch["stock"] is not None and patch["stock"] < 0:
        raise ValidationError("stock must be >= 0")
