"""Outbound mail: SMTP delivery, message templates and fire-and-forget dispatch."""

from __future__ import annotations

import asyncio
import html
import logging
from datetime import datetime
from email.message import EmailMessage
from typing import TYPE_CHECKING, Protocol

import aiosmtplib
from aiosmtplib.errors import (
    SMTPAuthenticationError,
    SMTPConnectError,
    SMTPConnectTimeoutError,
    SMTPException,
    SMTPReadTimeoutError,
)

if TYPE_CHECKING:
    from fastapi import BackgroundTasks

    from pickpool.core.config import Settings

logger = logging.getLogger(__name__)

MAX_CONNECT_ATTEMPTS = 3


async def send_email(settings: Settings, to: str, subject: str, html_body: str) -> bool:
    """
    Send one HTML message over SMTP.

    Returns True on success, False otherwise. Never raises: callers are
    background tasks whose failure must not reach the triggering request.
    Only connection failures are retried, since nothing was queued yet.
    """
    if not settings.mail_configured:
        logger.warning("SMTP is not configured; dropping mail subject=%r", subject)
        return False

    message = EmailMessage()
    message["From"] = settings.SMTP_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(html_body, subtype="html")

    password = settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else None
    for attempt in range(MAX_CONNECT_ATTEMPTS):
        try:
            await aiosmtplib.send(
                message,
                hostname=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                username=settings.SMTP_USER,
                password=password,
                use_tls=settings.SMTP_TLS,
                start_tls=settings.SMTP_STARTTLS,
                timeout=settings.SMTP_TIMEOUT_SEC,
            )
            logger.info("Mail sent: subject=%r attempt=%s", subject, attempt + 1)
            return True
        except SMTPReadTimeoutError as e:
            # Server may already have queued it; a retry could send twice.
            logger.error("Mail timed out after data was sent: %s", e)
            return False
        except SMTPAuthenticationError as e:
            logger.error("SMTP authentication failed: %s", e)
            return False
        except (SMTPConnectError, SMTPConnectTimeoutError) as e:
            logger.warning(
                "SMTP connection failed (attempt %s/%s): %s",
                attempt + 1,
                MAX_CONNECT_ATTEMPTS,
                e,
            )
            if attempt < MAX_CONNECT_ATTEMPTS - 1:
                await asyncio.sleep(2**attempt)
        except SMTPException as e:
            logger.error("SMTP error: %s", e)
            return False
        except Exception:
            logger.exception("Unexpected error while sending mail subject=%r", subject)
            return False
    logger.error("Mail not sent after %s connection attempts", MAX_CONNECT_ATTEMPTS)
    return False


class MailDispatcher(Protocol):
    """Schedules a message for delivery without waiting for the result."""

    def dispatch(self, to: str, subject: str, html_body: str) -> None: ...


class BackgroundMailDispatcher:
    """Queues sends on FastAPI BackgroundTasks; they run after the response."""

    def __init__(self, background_tasks: BackgroundTasks, settings: Settings):
        self.background_tasks = background_tasks
        self.settings = settings

    def dispatch(self, to: str, subject: str, html_body: str) -> None:
        self.background_tasks.add_task(send_email, self.settings, to, subject, html_body)


def render_admin_notification(username: str, email: str, registered_at: datetime) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #059669;">New User Registration</h2>
  <p>A new user has registered and is awaiting approval:</p>
  <div style="background-color: #f3f4f6; padding: 15px; border-radius: 8px; margin: 20px 0;">
    <p><strong>Username:</strong> {html.escape(username)}</p>
    <p><strong>Email:</strong> {html.escape(email)}</p>
    <p><strong>Registration Time:</strong> {registered_at.strftime("%Y-%m-%d %H:%M UTC")}</p>
  </div>
  <p>Please log in to the admin panel to approve or reject this user.</p>
</div>
"""


def render_password_reset(username: str, reset_url: str, expire_minutes: int) -> str:
    if expire_minutes % 60 == 0:
        hours = expire_minutes // 60
        lifetime = f"{hours} hour" if hours == 1 else f"{hours} hours"
    else:
        lifetime = f"{expire_minutes} minutes"
    url = html.escape(reset_url, quote=True)
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>Password Reset Request</h2>
  <p>Hello {html.escape(username)},</p>
  <p>You requested to reset your password. Click the link below to set a new password:</p>
  <p style="margin: 20px 0;">
    <a href="{url}" style="background-color: #059669; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">
      Reset Password
    </a>
  </p>
  <p style="color: #666; font-size: 14px;">This link expires in {lifetime}.</p>
  <p style="color: #666; font-size: 14px;">If you did not request this, please ignore this email.</p>
</div>
"""
