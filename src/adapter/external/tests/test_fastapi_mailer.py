"""Tests for the fastapi-mail backed Mailer."""

import unittest
from unittest.mock import AsyncMock, patch

from fastapi_mail import ConnectionConfig
from fastapi_mail.errors import ConnectionErrors

from adapter.external.fastapi_mailer import FastApiMailer, build_connection_config
from domain.model.errors import EmailDeliveryError


def _config() -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME="",
        MAIL_PASSWORD="",
        MAIL_FROM="noreply@example.com",
        MAIL_PORT=587,
        MAIL_SERVER="localhost",
        MAIL_STARTTLS=True,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=False,
        SUPPRESS_SEND=1,
    )


class TestFastApiMailer(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.mailer = FastApiMailer(config=_config(), reset_expire_minutes=10)
        self.mailer.fastmail.send_message = AsyncMock()

    async def test_password_reset_contains_link_and_expiry(self):
        await self.mailer.send_password_reset("alice@example.com", "https://todo.example/reset-password/abc123")

        message = self.mailer.fastmail.send_message.call_args[0][0]
        self.assertEqual(len(message.recipients), 1)
        self.assertIn("alice@example.com", str(message.recipients[0]))
        self.assertIn("https://todo.example/reset-password/abc123", message.body)
        self.assertIn("10 minutes", message.body)

    async def test_welcome_greets_by_name(self):
        await self.mailer.send_welcome("alice@example.com", "Alice")

        message = self.mailer.fastmail.send_message.call_args[0][0]
        self.assertIn("Alice", message.body)
        self.assertIn("Welcome", message.subject)

    async def test_smtp_failure_becomes_email_delivery_error(self):
        self.mailer.fastmail.send_message.side_effect = ConnectionErrors("refused")

        with self.assertRaises(EmailDeliveryError):
            await self.mailer.send_password_reset("alice@example.com", "https://x/reset-password/abc")

    async def test_network_failure_becomes_email_delivery_error(self):
        self.mailer.fastmail.send_message.side_effect = TimeoutError("timed out")

        with self.assertRaises(EmailDeliveryError):
            await self.mailer.send_welcome("alice@example.com", "Alice")


class TestConnectionConfig(unittest.TestCase):

    @patch.dict("os.environ", {"MAIL_SERVER": "", "MAIL_USERNAME": ""})
    def test_unconfigured_server_suppresses_send(self):
        self.assertTrue(build_connection_config().SUPPRESS_SEND)

    @patch.dict("os.environ", {
        "MAIL_SERVER": "smtp.example.com",
        "MAIL_USERNAME": "mailer@example.com",
        "MAIL_TIMEOUT_SECONDS": "7",
    })
    def test_configured_server(self):
        config = build_connection_config()
        self.assertFalse(config.SUPPRESS_SEND)
        self.assertEqual(config.MAIL_SERVER, "smtp.example.com")
        self.assertEqual(config.TIMEOUT, 7)
        self.assertTrue(config.USE_CREDENTIALS)


if __name__ == "__main__":
    unittest.main()
