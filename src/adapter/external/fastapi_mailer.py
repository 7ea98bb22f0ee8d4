"""SMTP mailer built on fastapi-mail.

Implements the Mailer port. Sends are bounded by MAIL_TIMEOUT_SECONDS; any
transport failure surfaces as EmailDeliveryError so callers decide whether
the failure matters.
"""

import logging
import os
from datetime import datetime, timezone

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.errors import ConnectionErrors
from jinja2 import Template

from domain.model.errors import EmailDeliveryError

logger = logging.getLogger(__name__)

APP_NAME = "Todo App"

WELCOME_TEMPLATE = Template("""
<html>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #6200EE;">Welcome to {{ app_name }}, {{ name }}!</h1>
    <p>Your account is ready. Start organizing your tasks right away.</p>
    <p style="color: #9ca3af; font-size: 12px;">&copy; {{ current_year }} {{ app_name }}</p>
</body>
</html>
""")

PASSWORD_RESET_TEMPLATE = Template("""
<html>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #6200EE;">Reset your password</h1>
    <p>We received a request to reset the password for your {{ app_name }} account.</p>
    <p>
        <a href="{{ reset_url }}"
           style="background-color: #6200EE; color: #F5F5F5; padding: 12px 30px;
                  text-decoration: none; border-radius: 5px; font-weight: bold;">
            Reset Password
        </a>
    </p>
    <p>This link expires in {{ expire_minutes }} minutes. If you did not ask for a reset,
       you can ignore this email; your password will not change.</p>
    <p style="color: #6b7280; font-size: 14px; word-break: break-all;">{{ reset_url }}</p>
</body>
</html>
""")


def build_connection_config() -> ConnectionConfig:
    """Read SMTP settings from the environment."""
    server = os.getenv("MAIL_SERVER", "")
    username = os.getenv("MAIL_USERNAME", "")
    if not server:
        logger.warning("MAIL_SERVER not configured; outgoing email is suppressed")

    return ConnectionConfig(
        MAIL_USERNAME=username,
        MAIL_PASSWORD=os.getenv("MAIL_PASSWORD", ""),
        MAIL_FROM=os.getenv("MAIL_FROM") or username or "noreply@example.com",
        MAIL_FROM_NAME=os.getenv("MAIL_FROM_NAME", APP_NAME),
        MAIL_PORT=int(os.getenv("MAIL_PORT", 587)),
        MAIL_SERVER=server or "localhost",
        MAIL_STARTTLS=True,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=bool(username),
        VALIDATE_CERTS=True,
        TIMEOUT=int(os.getenv("MAIL_TIMEOUT_SECONDS", 10)),
        SUPPRESS_SEND=0 if server else 1,
    )


class FastApiMailer:
    """Mailer adapter sending HTML mail over SMTP."""

    def __init__(self, config: ConnectionConfig | None = None, reset_expire_minutes: int = 10):
        self.fastmail = FastMail(config or build_connection_config())
        self.reset_expire_minutes = reset_expire_minutes

    async def send_welcome(self, email: str, name: str) -> None:
        body = WELCOME_TEMPLATE.render(
            app_name=APP_NAME,
            name=name,
            current_year=datetime.now(timezone.utc).year,
        )
        await self._send(email, f"Welcome to {APP_NAME}!", body, kind="welcome")

    async def send_password_reset(self, email: str, reset_url: str) -> None:
        body = PASSWORD_RESET_TEMPLATE.render(
            app_name=APP_NAME,
            reset_url=reset_url,
            expire_minutes=self.reset_expire_minutes,
        )
        await self._send(email, f"Reset Your Password - {APP_NAME}", body, kind="password_reset")

    async def _send(self, email: str, subject: str, body: str, kind: str) -> None:
        message = MessageSchema(
            subject=subject,
            recipients=[email],
            body=body,
            subtype=MessageType.html,
        )
        try:
            await self.fastmail.send_message(message)
        except (ConnectionErrors, OSError) as e:
            logger.error(
                "Failed to send email",
                extra={"kind": kind, "email": email, "error": str(e)[:200]},
            )
            raise EmailDeliveryError() from e

        logger.info("Email sent", extra={"kind": kind, "email": email})
