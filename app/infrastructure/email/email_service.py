"""
Email Service

Transactional email through the Resend HTTP API.

Sending is best effort: when RESEND_API_KEY is missing the message is
skipped, and HTTP failures are logged and reported in the result.
"""

import html
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.config.settings import get_settings


logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


# Template name -> (subject, body). Bodies are plain text with {placeholders}.
TEMPLATES: Dict[str, tuple[str, str]] = {
    "welcome": (
        "Welcome to Zomieks!",
        "Hi {name}, welcome to Zomieks. Your account is ready.",
    ),
    "email_verification": (
        "Verify your email address",
        "Hi {name}, confirm your email address here: {link}",
    ),
    "password_reset": (
        "Reset your password",
        "Hi {name}, reset your password here: {link}. The link expires in 1 hour.",
    ),
    "order_created": (
        "New order {order_number}",
        "Hi {name}, you have a new order: {message}",
    ),
    "order_paid": (
        "Payment received for order {order_number}",
        "Hi {name}, {message}",
    ),
    "order_delivered": (
        "Order {order_number} delivered",
        "Hi {name}, {message}",
    ),
    "order_completed": (
        "Order {order_number} completed",
        "Hi {name}, {message}",
    ),
    "new_message": (
        "New message from {sender}",
        "Hi {name}, {message}",
    ),
    "new_bid": (
        "New bid on {project}",
        "Hi {name}, {message}",
    ),
    "bid_accepted": (
        "Your bid was accepted",
        "Hi {name}, {message}",
    ),
    "dispute_opened": (
        "Dispute opened",
        "Hi {name}, {message}",
    ),
    "dispute_resolved": (
        "Dispute resolved",
        "Hi {name}, {message}",
    ),
    "verification_approved": (
        "Your identity is verified",
        "Hi {name}, {message}",
    ),
    "verification_rejected": (
        "Identity verification needs attention",
        "Hi {name}, {message}",
    ),
    "subscription_activated": (
        "Your Zomieks Pro subscription is active",
        "Hi {name}, {message}",
    ),
    "subscription_expiring": (
        "Your subscription is expiring",
        "Hi {name}, {message}",
    ),
}

# Notification type -> template
NOTIFICATION_TEMPLATES: Dict[str, str] = {
    "order_created": "order_created",
    "order_delivered": "order_delivered",
    "order_completed": "order_completed",
    "payment_received": "order_paid",
    "new_message": "new_message",
    "new_bid": "new_bid",
    "bid_accepted": "bid_accepted",
    "dispute_opened": "dispute_opened",
    "dispute_resolved": "dispute_resolved",
    "verification_approved": "verification_approved",
    "verification_rejected": "verification_rejected",
    "subscription_expiring": "subscription_expiring",
}


class _Defaults(dict):
    """Leaves unknown placeholders empty instead of raising KeyError."""

    def __missing__(self, key: str) -> str:
        return ""


def render_template(template: str, data: Dict[str, Any]) -> tuple[str, str, str]:
    """
    Render a template.

    Returns:
        (subject, html, text)

    Raises:
        KeyError: Unknown template name
    """
    subject, body = TEMPLATES[template]
    values = _Defaults({k: "" if v is None else str(v) for k, v in data.items()})
    subject = subject.format_map(values)
    text = body.format_map(values)
    escaped = _Defaults({k: html.escape(v) for k, v in values.items()})
    html_body = (
        "<!DOCTYPE html><html><body>"
        f"<h1>{html.escape(subject)}</h1>"
        f"<p>{body.format_map(escaped)}</p>"
        "<p>The Zomieks team</p>"
        "</body></html>"
    )
    return subject, html_body, text


class EmailService:
    """Thin client over the Resend API."""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.sender = settings.email_from
        self.reply_to = settings.email_reply_to
        self.timeout = timeout or settings.gateway_timeout_seconds

        if not self.api_key:
            logger.warning("RESEND_API_KEY not configured, emails will be skipped")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send(
        self,
        to_email: str,
        template: str,
        data: Dict[str, Any],
        to_name: Optional[str] = None,
    ) -> EmailResult:
        """Render and send one templated email."""
        if not self.is_configured:
            logger.info(f"[EMAIL] Skipping '{template}' to {to_email}: not configured")
            return EmailResult(success=False, error="Email not configured")

        try:
            subject, html_body, text = render_template(template, data)
        except KeyError:
            logger.error(f"[EMAIL] Unknown template '{template}'")
            return EmailResult(success=False, error=f"Unknown email template: {template}")

        recipient = f"{to_name} <{to_email}>" if to_name else to_email

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.sender,
                        "to": recipient,
                        "reply_to": self.reply_to,
                        "subject": subject,
                        "html": html_body,
                        "text": text,
                    },
                )
                response.raise_for_status()
                message_id = response.json().get("id")

            logger.info(f"[EMAIL] Sent '{template}' to {to_email} ({message_id})")
            return EmailResult(success=True, message_id=message_id)

        except httpx.HTTPStatusError as e:
            logger.warning(f"[EMAIL] HTTP {e.response.status_code} sending '{template}' to {to_email}")
            return EmailResult(success=False, error=f"HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[EMAIL] Error sending '{template}' to {to_email}: {e}")
            return EmailResult(success=False, error=str(e))


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create the email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
