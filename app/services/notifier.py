"""Outbound email notifications via SendGrid. Delivery is best effort: failures return False."""

from __future__ import annotations

import html
import json
import logging
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import quote

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Anything that can deliver an HTML message to one address."""

    def send(self, to_address: str, subject: str, html_body: str) -> bool: ...


def welcome_email(first_name: str) -> tuple[str, str]:
    """Subject and HTML body for the post-registration welcome message."""
    subject = "Welcome to Our Platform!"
    body = (
        f"<h1>Welcome, {html.escape(first_name)}!</h1>"
        "<p>Thank you for registering with our service.</p>"
        "<p>We're excited to have you on board.</p>"
    )
    return subject, body


def reset_password_email(token: str, client_url: str, expire_minutes: int = 60) -> tuple[str, str]:
    """Subject and HTML body carrying the password reset link."""
    link = f"{client_url.rstrip('/')}/reset-password?token={quote(token, safe='')}"
    subject = "Password Reset"
    body = (
        "<h1>Password Reset Request</h1>"
        "<p>You requested a password reset. Please click the link below to reset your password:</p>"
        f'<a href="{html.escape(link, quote=True)}">Reset Password</a>'
        "<p>If you did not request a password reset, please ignore this email.</p>"
        f"<p>This link will expire in {expire_minutes} minutes.</p>"
    )
    return subject, body


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a readable description for a SendGrid error payload."""
    if body in (None, "", b""):
        return None
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(body, str):
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body.strip()[:500] or None
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages = [
                str(item["message"])
                for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)
    try:
        return json.dumps(parsed)[:500]
    except (TypeError, ValueError):
        return None


class SendGridNotifier:
    """Send transactional email with the SendGrid REST API."""

    def __init__(self, settings: Settings, client: SendGridAPIClient | None = None) -> None:
        self._sender = settings.EMAIL_FROM
        api_key = settings.SENDGRID_API_KEY
        if client is not None:
            self._client = client
        elif api_key is not None and api_key.get_secret_value().strip():
            self._client = SendGridAPIClient(api_key.get_secret_value())
        else:
            self._client = None

    @property
    def configured(self) -> bool:
        return self._client is not None

    def send(self, to_address: str, subject: str, html_body: str) -> bool:
        if self._client is None:
            logger.info("SendGrid is not configured; skipping email to %s", to_address)
            return False

        message = Mail(
            from_email=self._sender,
            to_emails=to_address,
            subject=subject,
            html_content=html_body,
        )
        try:
            response = self._client.send(message)
        except Exception as e:
            details = _extract_sendgrid_error_details(getattr(e, "body", None))
            logger.error(
                "SendGrid request failed: status=%s, details=%s",
                getattr(e, "status_code", None),
                details or str(e),
            )
            return False

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            logger.error(
                "SendGrid responded with status %s: %s",
                status_code,
                _extract_sendgrid_error_details(getattr(response, "body", None)),
            )
            return False
        return True
