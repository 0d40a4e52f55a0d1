# Overview: Flask CLI command groups for bootstrap and maintenance.

# backend/vendofy/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create missing tables and the system settings row (idempotent; prefer `flask db upgrade` in production).
# - python -m flask system create-super-admin --name "Owner" --password "Password123!"
#   Create the super-admin account for SUPER_ADMIN_EMAIL (or --email), verified and active.
#
# Maintenance:
# - python -m flask maintenance purge-expired-tokens
#   Delete logout denylist entries whose tokens have expired.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.users import ROLE_SUPER_ADMIN
from .services import auth_service, session_service
from .services.settings_service import get_settings
from .services.user_service import suggest_uid
from .validation import ValidationError, normalize_email


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet and seed default settings."""
    db.create_all()
    settings = get_settings()
    click.echo(f"PASS Database ready (settings id {settings.id})")


@system_group.command('create-super-admin')
@click.option('--email', default=None, help='Defaults to SUPER_ADMIN_EMAIL')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_super_admin(email, name, password):
    """
    Create the platform super-admin.

    The account is stored with role "super-admin", pre-verified, and signs
    in through the admin login.
    """
    email = email or current_app.config.get("SUPER_ADMIN_EMAIL")
    if not email:
        raise click.ClickException("Pass --email or set SUPER_ADMIN_EMAIL.")
    try:
        email = normalize_email(email)
        auth_service.validate_password_policy(password)
    except ValidationError as e:
        raise click.ClickException(str(e))

    if db.session.query(User).filter_by(email=email).first():
        raise click.ClickException(f"User {email} already exists.")

    user = User(
        name=name,
        email=email,
        password_hash=auth_service.hash_password(password),
        role=ROLE_SUPER_ADMIN,
        is_active=True,
        email_verified=True,
        uid=suggest_uid("admin", None, name),
    )
    db.session.add(user)
    db.session.commit()

    click.echo(f"PASS Created super admin {user.email} (ID: {user.id}, UID: {user.uid})")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('purge-expired-tokens')
@with_appcontext
def purge_expired_tokens():
    """Delete revoked-token entries that have expired anyway."""
    deleted = session_service.purge_expired_revocations()
    click.echo(f"Deleted {deleted} expired token revocations.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(maintenance_group)
