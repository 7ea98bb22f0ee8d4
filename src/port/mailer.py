"""Mailer port: outbound interface for transactional email."""

from typing import Protocol


class Mailer(Protocol):
    """Port for sending account emails.

    Implementations raise EmailDeliveryError when the message could not be
    handed to the mail server within their timeout.
    """

    async def send_welcome(self, email: str, name: str) -> None: ...

    async def send_password_reset(self, email: str, reset_url: str) -> None: ...
