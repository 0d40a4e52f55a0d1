# Overview: Best-effort outbound email over SMTP; failures are logged, never raised.

"""
Email delivery.

send_email() is the only entry point services use. It returns True/False and
never raises, so a mail outage cannot roll back the state change that
triggered the message. With MAIL_SUPPRESS_SEND the message is appended to
app.extensions["mail_outbox"] instead of being sent (local dev and tests).
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)

OUTBOX_KEY = "mail_outbox"


def outbox() -> list:
    return current_app.extensions.setdefault(OUTBOX_KEY, [])


def _build_message(sender: str, to: str, subject: str, html: str, text: str | None) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to
    if text:
        msg.attach(MIMEText(text, "plain"))
    msg.attach(MIMEText(html, "html"))
    return msg


def _deliver(sender: str, to: str, subject: str, html: str, text: str | None = None) -> None:
    cfg = current_app.config
    if cfg.get("MAIL_SUPPRESS_SEND"):
        outbox().append({"from": sender, "to": to, "subject": subject, "html": html, "text": text})
        return

    msg = _build_message(sender, to, subject, html, text)
    host = cfg["SMTP_HOST"]
    port = int(cfg["SMTP_PORT"])
    timeout = cfg.get("MAIL_TIMEOUT_SECONDS", 10)

    if port == 465:
        with smtplib.SMTP_SSL(host, port, timeout=timeout) as server:
            server.login(cfg["SMTP_USER"], cfg["SMTP_PASSWORD"])
            server.sendmail(sender, [to], msg.as_string())
    else:
        with smtplib.SMTP(host, port, timeout=timeout) as server:
            server.starttls()
            server.login(cfg["SMTP_USER"], cfg["SMTP_PASSWORD"])
            server.sendmail(sender, [to], msg.as_string())


def send_email(to: str, subject: str, html: str, text: str | None = None) -> bool:
    """Send one message. Returns False (and logs) on any failure."""
    if not to:
        logger.warning("Email not sent, no recipient: %s", subject)
        return False

    sender = current_app.config.get("MAIL_FROM") or current_app.config.get("SMTP_USER") or ""
    try:
        _deliver(sender, to, subject, html, text)
    except smtplib.SMTPAuthenticationError:
        logger.exception("SMTP authentication failed sending %r to %s", subject, to)
        return False
    except Exception:
        logger.exception("Failed to send email %r to %s", subject, to)
        return False

    logger.info("Email sent to %s: %s", to, subject)
    return True
