# Overview: Service-layer operations for auth; password hashing, login, email verification and password reset.

"""
Authentication Service

WHY: Every account is created by someone above it in the hierarchy and has
to prove ownership of its email before it can sign in. Verification hands
out a temporary password that must be changed; forgotten passwords are
reset with a short-lived six-digit code.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Password policy comes from SystemSettings (min length, character classes)
- Verification tokens and reset codes are stored as SHA-256 hashes only
- Forgot-password never reveals whether an email is registered
"""

import logging
import re
import secrets
import string
from datetime import timedelta

import bcrypt

from ..errors import AccessDeniedError, AuthenticationError, ServiceError
from ..extensions import db
from ..models import EmailVerificationToken, PasswordResetToken, User
from ..models.users import LOGIN_ROLES, ROLE_ADMIN
from ..time_utils import as_naive_utc, utcnow
from ..validation import ValidationError, normalize_email
from . import email_templates, session_service
from .settings_service import get_settings

logger = logging.getLogger(__name__)

VERIFICATION_TOKEN_TTL = timedelta(hours=24)
RESET_CODE_TTL = timedelta(minutes=10)
TEMPORARY_PASSWORD_LENGTH = 12

_RESET_CODE_RE = re.compile(r"^\d{6}$")
_SPECIAL_CHARS = "!@#$%^&*(),.?\":{}|<>"


class AuthError(ServiceError):
    """Raised for authentication workflow failures."""


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't satisfy the configured policy."""


def validate_password_policy(password: str) -> None:
    """Check password against the policy configured in SystemSettings."""
    if not isinstance(password, str) or not password:
        raise PasswordValidationError("Password is required")

    settings = get_settings()
    min_length = settings.password_min_length or 8
    if len(password) < min_length:
        raise PasswordValidationError(f"Password must be at least {min_length} characters long")
    if settings.password_require_uppercase and not re.search(r"[A-Z]", password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")
    if settings.password_require_lowercase and not re.search(r"[a-z]", password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")
    if settings.password_require_numbers and not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")
    if settings.password_require_special_chars and not any(c in _SPECIAL_CHARS for c in password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    """Random password with at least one upper, lower, digit and special character."""
    alphabet = string.ascii_letters + string.digits + "!@#$%&*"
    required = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice("!@#$%&*"),
    ]
    rest = [secrets.choice(alphabet) for _ in range(max(length - len(required), 0))]
    chars = required + rest
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def login(email: str, password: str, role: str) -> dict:
    """
    Authenticate and issue a session token.

    The super-admin is the account owning SUPER_ADMIN_EMAIL and signs in
    with role "admin"; every other account must sign in with its own role
    and must have verified its email.
    """
    if not email or not password or not role:
        raise ValidationError("Email, password and role are required.")
    email = normalize_email(email)
    if role not in LOGIN_ROLES:
        raise ValidationError("Invalid role selected.")

    user = db.session.query(User).filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials.")

    if not user.is_active:
        raise AccessDeniedError("Account is inactive. Please contact an administrator.")

    super_record = session_service.is_super_admin(user)
    if super_record and role != ROLE_ADMIN:
        raise AuthenticationError("Super admin must log in with the Administrator role.")

    if not super_record:
        if not user.email_verified:
            raise AccessDeniedError(
                "Please verify your email address before logging in. "
                "Check your inbox for the verification link."
            )
        if user.role != role:
            raise AccessDeniedError("You are not allowed to log in with this role.")

    token, expires_at = session_service.issue_token(user, role=role, super_admin=super_record)

    user.last_login_at = utcnow()
    db.session.commit()

    logger.info("User %s logged in as %s", user.id, role)
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": role,
        "is_super_admin": super_record,
        "avatar_url": user.avatar_url,
        "uid": user.uid,
        "token": token,
        "expires_at": expires_at,
        "must_change_password": bool(user.must_change_password),
    }


def create_verification_token(email: str) -> str:
    """Issue a single-use verification token for email. Returns the plaintext token."""
    token = secrets.token_urlsafe(32)
    db.session.add(EmailVerificationToken(
        email=email,
        token_hash=session_service.hash_token(token),
        expires_at=utcnow() + VERIFICATION_TOKEN_TTL,
        used=False,
    ))
    return token


def send_verification(user: User) -> bool:
    """Create a token (committed) and email the link. Mail failure is non-fatal."""
    token = create_verification_token(user.email)
    db.session.commit()
    return email_templates.send_verification_email(user.email, user.name, token)


def verify_email(token: str) -> User:
    """
    Consume a verification token.

    Marks the email verified, replaces the password with a temporary one
    that must be changed, and emails it.
    """
    if not token or not isinstance(token, str) or not token.strip():
        raise ValidationError("Verification token is required.")

    record = (
        db.session.query(EmailVerificationToken)
        .filter_by(token_hash=session_service.hash_token(token.strip()), used=False)
        .first()
    )
    if not record or as_naive_utc(record.expires_at) < utcnow():
        raise AuthError("Invalid or expired verification token.")

    user = db.session.query(User).filter_by(email=record.email).first()
    if not user:
        raise AuthError("User not found.")
    if user.email_verified:
        raise AuthError("Email already verified.")

    temporary = generate_temporary_password()
    user.email_verified = True
    user.password_hash = hash_password(temporary)
    user.must_change_password = True
    record.used = True
    db.session.commit()

    email_templates.send_temporary_password_email(user.email, user.name, temporary)
    return user


def request_password_reset(email: str) -> None:
    """Send a reset code if the account exists. Silent otherwise."""
    email = normalize_email(email)
    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        return

    code = f"{secrets.randbelow(1_000_000):06d}"
    record = db.session.query(PasswordResetToken).filter_by(email=email).first()
    if record is None:
        record = PasswordResetToken(email=email)
        db.session.add(record)
    record.code_hash = session_service.hash_token(code)
    record.expires_at = utcnow() + RESET_CODE_TTL
    record.used = False
    db.session.commit()

    email_templates.send_reset_code_email(email, code)


def reset_password(email: str, code: str, new_password: str) -> None:
    if not email or not code or not new_password:
        raise ValidationError("Email, code and new password are required.")
    email = normalize_email(email)
    if not isinstance(code, str) or not _RESET_CODE_RE.match(code):
        raise ValidationError("Invalid code format.")
    validate_password_policy(new_password)

    record = db.session.query(PasswordResetToken).filter_by(email=email, used=False).first()
    if (
        not record
        or as_naive_utc(record.expires_at) < utcnow()
        or not secrets.compare_digest(record.code_hash, session_service.hash_token(code))
    ):
        raise AuthError("Invalid or expired code.")

    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        raise AuthError("User not found.")

    user.password_hash = hash_password(new_password)
    user.must_change_password = False
    record.used = True
    db.session.commit()


def change_password(user: User, current_password: str, new_password: str) -> None:
    """Signed-in password change; clears must_change_password."""
    if not verify_password(current_password or "", user.password_hash):
        raise AuthError("Current password is incorrect.")
    validate_password_policy(new_password)
    user.password_hash = hash_password(new_password)
    user.must_change_password = False
    db.session.commit()
