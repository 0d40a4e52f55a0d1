# Overview: Bearer token issuance, validation and revocation; builds the per-request AuthContext.

"""
Session tokens.

Tokens are HS256 JWTs signed with JWT_SECRET_KEY and carrying the subject id,
the role the user signed in with and the super-admin flag. They are
stateless; logout works through a denylist (RevokedToken) keyed by the
SHA-256 of the token, and every denylist entry expires together with the
token it blocks.

The lifetime comes from SystemSettings.jwt_session_duration so the
super-admin can tune it without a deploy.
"""

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from jose import JWTError, jwt

from ..extensions import db
from ..models import RevokedToken, User
from ..models.users import ROLE_ADMIN, ROLE_SUPER_ADMIN
from ..time_utils import utcnow


@dataclass
class AuthContext:
    """Identity established by require_auth for one request."""
    user: User
    role: str
    is_super_admin: bool
    token: str
    expires_at: datetime

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def is_admin(self) -> bool:
        """Admin-level access: the super-admin or a regular admin."""
        return self.is_super_admin or self.role == ROLE_ADMIN


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_super_admin(user: User) -> bool:
    """The super-admin is whoever owns SUPER_ADMIN_EMAIL (or carries the explicit role)."""
    if user is None:
        return False
    if user.role == ROLE_SUPER_ADMIN:
        return True
    email = current_app.config.get("SUPER_ADMIN_EMAIL")
    return bool(email) and (user.email or "").lower() == email


def session_ttl_seconds() -> int:
    from .settings_service import get_settings
    return get_settings().session_ttl_seconds or int(current_app.config.get("JWT_DEFAULT_TTL_SECONDS", 3600))


def issue_token(user: User, *, role: str, super_admin: bool, ttl_seconds: int | None = None) -> tuple[str, datetime]:
    """Sign a token for user. Returns (token, expires_at)."""
    now = utcnow()
    ttl = ttl_seconds if ttl_seconds is not None else session_ttl_seconds()
    expires_at = now + timedelta(seconds=ttl)
    claims = {
        "sub": str(user.id),
        "role": role,
        "is_super_admin": bool(super_admin),
        "iat": int((now - datetime(1970, 1, 1)).total_seconds()),
        "exp": int((expires_at - datetime(1970, 1, 1)).total_seconds()),
        # Unique per token so two logins in the same second never collide in the denylist
        "jti": uuid.uuid4().hex,
    }
    token = jwt.encode(
        claims,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )
    return token, expires_at


def decode_token(token: str) -> dict | None:
    """Verify signature and expiry. Returns claims or None."""
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except JWTError:
        return None


def is_revoked(token: str) -> bool:
    return db.session.query(RevokedToken.id).filter_by(token_hash=hash_token(token)).first() is not None


def revoke_token(token: str, expires_at: datetime) -> None:
    """Add token to the denylist (idempotent)."""
    token_hash = hash_token(token)
    existing = db.session.query(RevokedToken).filter_by(token_hash=token_hash).first()
    if existing:
        existing.expires_at = expires_at
    else:
        db.session.add(RevokedToken(token_hash=token_hash, expires_at=expires_at))
    db.session.commit()


def purge_expired_revocations(now: datetime | None = None) -> int:
    """Delete denylist entries whose tokens have expired anyway."""
    cutoff = now or utcnow()
    deleted = db.session.query(RevokedToken).filter(RevokedToken.expires_at < cutoff).delete(
        synchronize_session=False
    )
    db.session.commit()
    return deleted


def validate_token(token: str) -> AuthContext | None:
    """
    Resolve a bearer token to an AuthContext.

    Returns None if the token is malformed, expired, revoked, or its subject
    no longer exists or has been deactivated.
    """
    claims = decode_token(token)
    if not claims:
        return None

    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        return None

    if is_revoked(token):
        return None

    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return None

    super_admin = bool(claims.get("is_super_admin")) and is_super_admin(user)
    role = ROLE_SUPER_ADMIN if super_admin else user.role

    return AuthContext(
        user=user,
        role=role,
        is_super_admin=super_admin,
        token=token,
        expires_at=datetime(1970, 1, 1) + timedelta(seconds=int(claims["exp"])),
    )
