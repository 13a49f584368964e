"""SendGrid email service for EstateFlow.

Sends account verification, change-confirmation, password-reset and
subscription receipts. Uses asyncio.to_thread to wrap the synchronous
SendGrid client.
"""

import asyncio
import logging

import sendgrid
from sendgrid.helpers.mail import Email, HtmlContent, Mail, To

logger = logging.getLogger(__name__)


def _get_config():
    """Get email config from app settings (lazy to avoid import-time issues)."""
    from estateflow.app.config import get_settings
    s = get_settings()
    return s.sendgrid_api_key, s.email_from, s.frontend_url.rstrip("/")


def _get_client() -> sendgrid.SendGridAPIClient:
    """Return a configured SendGrid API client."""
    api_key, _, _ = _get_config()
    return sendgrid.SendGridAPIClient(api_key=api_key)


def _wrap(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; background: #f4f6f8; padding: 24px;">
  <div style="max-width: 560px; margin: 0 auto; background: #ffffff; border-radius: 8px; padding: 32px;">
    <h2 style="color: #1f2937; margin-top: 0;">{title}</h2>
    {body}
    <p style="color: #6b7280; font-size: 12px; margin-top: 32px;">EstateFlow</p>
  </div>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    return (
        f'<p><a href="{url}" style="display: inline-block; background: #2563eb; color: #ffffff; '
        f'padding: 12px 20px; border-radius: 6px; text-decoration: none;">{label}</a></p>'
    )


def _send_mail(mail: Mail) -> bool:
    """Synchronous send via SendGrid. Returns True on success."""
    client = _get_client()
    response = client.send(mail)
    if response.status_code in (200, 201, 202):
        return True
    logger.error(
        "SendGrid returned status %s: %s",
        response.status_code,
        response.body,
    )
    return False


async def _deliver(to_email: str, subject: str, html_body: str, kind: str) -> bool:
    api_key, email_from, _ = _get_config()
    if not api_key:
        logger.warning("SENDGRID_API_KEY not set, skipping %s email", kind)
        return False

    try:
        mail = Mail(
            from_email=Email(email_from, "EstateFlow"),
            to_emails=To(to_email),
            subject=subject,
            html_content=HtmlContent(html_body),
        )
        result = await asyncio.to_thread(_send_mail, mail)
        if result:
            logger.info("%s email sent to %s", kind, to_email)
        return result
    except Exception:
        logger.exception("Failed to send %s email to %s", kind, to_email)
        return False


# ---------------------------------------------------------------------------
# Public async API
# ---------------------------------------------------------------------------


async def send_verification_email(email: str, token: str) -> bool:
    """Send the sign-up verification link.

    Returns:
        True on success, False on failure or when email is not configured.
    """
    _, _, frontend_url = _get_config()
    url = f"{frontend_url}/verify-email?token={token}"
    body = (
        "<p>Thanks for signing up. Please confirm your email address to activate your account.</p>"
        + _button(url, "Verify email")
        + "<p>This link expires in 24 hours.</p>"
    )
    return await _deliver(email, "Verify your EstateFlow account", _wrap("Confirm your email", body), "verification")


async def send_change_confirmation_email(email: str, token: str, change_type: str) -> bool:
    """Send the confirmation link for a pending email or password change."""
    _, _, frontend_url = _get_config()
    url = f"{frontend_url}/confirm-change?token={token}"
    what = "email address" if change_type == "email" else "password"
    body = (
        f"<p>We received a request to change the {what} on your account.</p>"
        + _button(url, "Confirm change")
        + "<p>If you did not request this, you can ignore this email.</p>"
    )
    return await _deliver(email, f"Confirm your {what} change", _wrap("Confirm the change", body), "change confirmation")


async def send_password_reset_email(email: str, token: str) -> bool:
    _, _, frontend_url = _get_config()
    url = f"{frontend_url}/reset-password?token={token}"
    body = (
        "<p>Someone asked to reset the password for this account.</p>"
        + _button(url, "Reset password")
        + "<p>If this wasn't you, no action is needed.</p>"
    )
    return await _deliver(email, "Reset your EstateFlow password", _wrap("Password reset", body), "password reset")


async def send_subscription_success_email(
    email: str,
    plan_name: str,
    price: float,
    currency: str,
    end_date,
) -> bool:
    """Send the receipt after a subscription order is captured."""
    body = (
        f"<p>Your <strong>{plan_name}</strong> subscription is now active.</p>"
        f"<p>Amount paid: {price:.2f} {currency}</p>"
        f"<p>Valid until: {end_date:%Y-%m-%d}</p>"
        "<p>Your account has been upgraded to an agency account.</p>"
    )
    return await _deliver(email, "Your EstateFlow subscription", _wrap("Subscription confirmed", body), "subscription receipt")
