"""
Outgoing email for account verification.

Delivery goes through SMTP when SMTP_HOST is configured; otherwise the
message is only logged, which is enough for local development.
"""

import datetime
import logging
from html import escape
from typing import Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.errors import ConnectionErrors

from .config import Settings

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Welcome! Please Verify Your Email Address"

VERIFICATION_HTML = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #1a3c7a; font-size: 24px;">Welcome to Visitor Management System</h1>
  <p>Hello {first_name},</p>
  <p>Thank you for registering with us! To get started, please verify your email address by clicking the button below.</p>
  <p style="text-align: center; margin: 30px 0;">
    <a href="{link}" style="background-color: #007bff; color: #ffffff; padding: 14px 30px; text-decoration: none; border-radius: 6px;">Verify Your Email</a>
  </p>
  <p style="font-size: 14px; color: #666666;">If the button doesn't work, copy and paste this link into your browser:</p>
  <p style="font-size: 14px; word-break: break-all;"><a href="{link}">{link}</a></p>
  <p style="font-size: 14px; color: #666666;">If you didn't create this account, you can safely ignore this email.</p>
  <p style="font-size: 12px; color: #999999; text-align: center;">Visitor Management System &copy; {year}</p>
</div>
"""


DEFAULT_SENDER = "no-reply@vms.com"


def connection_config(settings: Settings) -> ConnectionConfig:
    """fastapi-mail connection settings built from SMTP_* variables."""
    return ConnectionConfig(
        MAIL_USERNAME=settings.smtp_user or "",
        MAIL_PASSWORD=settings.smtp_password or "",
        MAIL_FROM=settings.mail_from or DEFAULT_SENDER,
        MAIL_FROM_NAME="Visitor Management System",
        MAIL_SERVER=settings.smtp_host,
        MAIL_PORT=settings.smtp_port,
        MAIL_STARTTLS=not settings.smtp_ssl,
        MAIL_SSL_TLS=settings.smtp_ssl,
        USE_CREDENTIALS=bool(settings.smtp_user),
        VALIDATE_CERTS=True,
    )


# PUBLIC_INTERFACE
class Mailer:
    """Sends verification emails through fastapi-mail."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.fastmail: Optional[FastMail] = None
        if settings.smtp_host:
            self.fastmail = FastMail(connection_config(settings))

    def verification_link(self, token: str) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}/api/verify-email?token={token}"

    def build_verification_message(self, to_address: str, first_name: str, link: str) -> MessageSchema:
        html = VERIFICATION_HTML.format(
            first_name=escape(first_name),
            link=escape(link, quote=True),
            year=datetime.date.today().year,
        )
        return MessageSchema(
            subject=VERIFICATION_SUBJECT,
            recipients=[to_address],
            body=html,
            subtype=MessageType.html,
        )

    # PUBLIC_INTERFACE
    async def send_verification_email(self, to_address: str, first_name: str, token: str) -> None:
        """
        Runs as a background task after registration has committed, so a
        delivery failure is logged rather than surfaced to the client.
        """
        link = self.verification_link(token)
        if self.fastmail is None:
            logger.info("SMTP not configured; verification link for %s: %s", to_address, link)
            return
        try:
            await self.fastmail.send_message(self.build_verification_message(to_address, first_name, link))
        except ConnectionErrors:
            logger.exception("Failed to send verification email to %s", to_address)
            return
        logger.info("Verification email sent successfully to: %s", to_address)
