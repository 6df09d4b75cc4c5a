"""
Email Service using Resend

Sends the transactional emails of the account workflows: account validation,
password reset, email change confirmation, and the notice to process owners
that a new account was validated.

``send_email`` returns the provider's message id. Callers treat a missing id as
a failed delivery; nothing is retried.
"""

import asyncio
import logging
from html import escape
from uuid import uuid4

import resend

from grantflow.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = settings.resend_api_key

_LAYOUT = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
        .header {{ color: #14532d; margin-bottom: 24px; }}
        .button {{ display: inline-block; background-color: #14532d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
        .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
    </style>
</head>
<body>
    <div class="container">
        <h1 class="header">{title}</h1>
        {body}
        <div class="footer">
            <p>{footer}</p>
            <p>GrantFlow</p>
        </div>
    </div>
</body>
</html>
"""

_IGNORE_FOOTER = "If you didn't request this, you can safely ignore this email."


def _render(title: str, body: str, footer: str = _IGNORE_FOOTER) -> str:
    return _LAYOUT.format(title=title, body=body, footer=footer)


def _link_block(url: str, label: str, ttl_hours: int) -> str:
    safe_url = escape(url, quote=True)
    return f"""
        <a href="{safe_url}" class="button">{label}</a>
        <p>Or copy and paste this link into your browser:</p>
        <p style="word-break: break-all; color: #3b82f6;">{safe_url}</p>
        <p><strong>This link expires in {ttl_hours} hours.</strong></p>
    """


async def send_email(
    to: list[str],
    subject: str,
    html_content: str,
) -> str | None:
    """
    Send an email using Resend.

    Args:
        to: Recipient email addresses
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        The delivery message id, or None if sending failed
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {', '.join(to)} | SUBJECT: {subject}")
        return f"logged-{uuid4()}"

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": to,
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        message_id = email.get("id") if email else None
        if not message_id:
            logger.error(f"Email provider returned no message id for {', '.join(to)}")
            return None

        logger.info(f"Email sent successfully to {', '.join(to)}, id: {message_id}")
        return message_id
    except Exception as e:
        logger.error(f"Failed to send email to {', '.join(to)}: {e}")
        return None


async def send_account_validation(
    to_email: str,
    username: str,
    validation_url: str,
) -> str | None:
    """Send the account activation link to a newly registered user."""
    body = f"""
        <p>Hello {escape(username)},</p>
        <p>Thank you for registering on GrantFlow. Please activate your account:</p>
        {_link_block(validation_url, "Activate Account", settings.validation_ttl_hours)}
    """
    return await send_email(
        to=[to_email],
        subject="Activate your GrantFlow account",
        html_content=_render("Activate Your Account", body),
    )


async def send_password_reset(
    to_email: str,
    username: str,
    validation_url: str,
) -> str | None:
    """Send the password reset link."""
    body = f"""
        <p>Hello {escape(username)},</p>
        <p>We received a request to reset the password of your GrantFlow account.</p>
        {_link_block(validation_url, "Reset Password", settings.validation_ttl_hours)}
    """
    return await send_email(
        to=[to_email],
        subject="Reset your GrantFlow password",
        html_content=_render("Reset Your Password", body),
    )


async def send_email_change(
    to_email: str,
    username: str,
    validation_url: str,
) -> str | None:
    """Send the confirmation link for an email change to the NEW address."""
    body = f"""
        <p>Hello {escape(username)},</p>
        <p>Please confirm that this address should become the email of your GrantFlow account.</p>
        {_link_block(validation_url, "Confirm Email", settings.validation_ttl_hours)}
    """
    return await send_email(
        to=[to_email],
        subject="Confirm your new GrantFlow email address",
        html_content=_render("Confirm Your Email Address", body),
    )


async def send_user_validated_notice(
    to_emails: list[str],
    username: str,
    user_email: str,
) -> str | None:
    """Tell the process owners that a new account was activated."""
    body = f"""
        <p>A new user has activated their account:</p>
        <ul>
            <li><strong>Username:</strong> {escape(username)}</li>
            <li><strong>Email:</strong> {escape(user_email)}</li>
        </ul>
    """
    return await send_email(
        to=to_emails,
        subject=f"New GrantFlow user: {escape(username)}",
        html_content=_render(
            "New User Validated",
            body,
            footer="You receive this email because you are a process owner.",
        ),
    )
