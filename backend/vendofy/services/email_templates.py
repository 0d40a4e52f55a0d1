# Overview: HTML bodies for transactional emails; each helper renders and hands off to send_email.

from __future__ import annotations

from html import escape

from flask import current_app

from .mail_service import send_email


def _layout(title: str, body: str) -> str:
    return (
        "<div style=\"font-family:Arial,sans-serif;max-width:600px;margin:0 auto\">"
        f"<h2 style=\"color:#1f2937\">{escape(title)}</h2>"
        f"{body}"
        "<p style=\"color:#6b7280;font-size:12px\">Vendofy</p>"
        "</div>"
    )


def send_verification_email(to: str, name: str, token: str) -> bool:
    link = f"{current_app.config['FRONTEND_URL'].rstrip('/')}/verify-email?token={token}"
    body = (
        f"<p>Hello {escape(name)},</p>"
        "<p>An account has been created for you. Verify your email address to receive your "
        "temporary password. The link expires in 24 hours.</p>"
        f"<p><a href=\"{escape(link)}\">Verify email</a></p>"
    )
    return send_email(to, "Verify your Vendofy account", _layout("Verify your email", body))


def send_temporary_password_email(to: str, name: str, password: str) -> bool:
    body = (
        f"<p>Hello {escape(name)},</p>"
        "<p>Your email is verified. Sign in with this temporary password and change it "
        "right away:</p>"
        f"<p style=\"font-size:18px;font-weight:bold\">{escape(password)}</p>"
    )
    return send_email(to, "Your Vendofy temporary password", _layout("Account ready", body))


def send_forced_reset_email(to: str, name: str) -> bool:
    link = f"{current_app.config['FRONTEND_URL'].rstrip('/')}/login"
    body = (
        f"<p>Hello {escape(name)},</p>"
        "<p>An administrator requires you to change your password. You will be asked to "
        "choose a new one the next time you sign in, or you can use \"Forgot password\" "
        "on the sign-in page.</p>"
        f"<p><a href=\"{escape(link)}\">Sign in</a></p>"
    )
    return send_email(to, "Password reset required", _layout("Password reset required", body))


def send_reset_code_email(to: str, code: str) -> bool:
    body = (
        "<p>Use this code to reset your password. It expires in 10 minutes.</p>"
        f"<p style=\"font-size:24px;letter-spacing:4px;font-weight:bold\">{escape(code)}</p>"
        "<p>If you did not ask for a reset you can ignore this email.</p>"
    )
    return send_email(to, "Vendofy password reset code", _layout("Password reset code", body))


def send_delivery_date_email(to: str, name: str, order_number: str, new_date: str, desired_date: str) -> bool:
    body = (
        f"<p>Hello {escape(name)},</p>"
        f"<p>The delivery date for order <strong>{escape(order_number)}</strong> has changed.</p>"
        f"<p>Requested: {escape(desired_date)}<br>New delivery date: <strong>{escape(new_date)}</strong></p>"
    )
    return send_email(
        to, f"Delivery date updated for order {order_number}", _layout("Delivery date updated", body)
    )


def send_order_request_email(to: str, admin_name: str, distributor_name: str, items_summary: list[dict]) -> bool:
    """items_summary rows: {"product_name", "quantity"}."""
    rows = "".join(
        f"<tr><td>{escape(str(row['product_name']))}</td>"
        f"<td style=\"text-align:right\">{row['quantity']}</td></tr>"
        for row in items_summary
    )
    body = (
        f"<p>Hello {escape(admin_name)},</p>"
        f"<p>{escape(distributor_name)} has requested the following quantities:</p>"
        "<table style=\"width:100%;border-collapse:collapse\">"
        "<tr><th style=\"text-align:left\">Product</th><th style=\"text-align:right\">Quantity</th></tr>"
        f"{rows}</table>"
    )
    return send_email(
        to, f"Order request from {distributor_name}", _layout("New order request", body)
    )
